"""Create users, buyers and buyer_history

Revision ID: 3f1a9c7d2e64
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c7d2e64'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


CITY = sa.Enum('Chandigarh', 'Mohali', 'Zirakpur', 'Panchkula', 'Other', name='city')
PROPERTY_TYPE = sa.Enum('Apartment', 'Villa', 'Plot', 'Office', 'Retail', name='property_type')
BHK = sa.Enum('1', '2', '3', '4', 'Studio', name='bhk')
PURPOSE = sa.Enum('Buy', 'Rent', name='purpose')
TIMELINE = sa.Enum('0-3m', '3-6m', '>6m', 'Exploring', name='timeline')
SOURCE = sa.Enum('Website', 'Referral', 'Walk-in', 'Call', 'Other', name='source')
STATUS = sa.Enum('New', 'Qualified', 'Contacted', 'Visited', 'Negotiation', 'Converted', 'Dropped',
                 name='status')


def upgrade() -> None:
    # -- users: local mirror of provider identities --
    op.create_table(
        'users',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('email', sa.Text(), nullable=False),
        sa.Column('full_name', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )

    # -- buyers --
    op.create_table(
        'buyers',
        sa.Column('id', sa.Text(), primary_key=True),
        sa.Column('full_name', sa.String(80), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(15), nullable=False),
        sa.Column('city', CITY, nullable=False),
        sa.Column('property_type', PROPERTY_TYPE, nullable=False),
        sa.Column('bhk', BHK, nullable=True),
        sa.Column('purpose', PURPOSE, nullable=False),
        sa.Column('budget_min', sa.Integer(), nullable=True),
        sa.Column('budget_max', sa.Integer(), nullable=True),
        sa.Column('timeline', TIMELINE, nullable=False),
        sa.Column('source', SOURCE, nullable=False),
        sa.Column('status', STATUS, nullable=False, server_default='New'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('owner_id', sa.Text(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_buyers_owner_id', 'buyers', ['owner_id'])
    op.create_index('ix_buyers_updated_at', 'buyers', ['updated_at'])

    # -- buyer_history: append-only, removed with its buyer --
    op.create_table(
        'buyer_history',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('buyer_id', sa.Text(), sa.ForeignKey('buyers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('changed_by', sa.Text(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('changed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('diff', sa.JSON(), nullable=False),
    )
    op.create_index('ix_buyer_history_buyer_id', 'buyer_history', ['buyer_id'])


def downgrade() -> None:
    op.drop_index('ix_buyer_history_buyer_id', table_name='buyer_history')
    op.drop_table('buyer_history')
    op.drop_index('ix_buyers_updated_at', table_name='buyers')
    op.drop_index('ix_buyers_owner_id', table_name='buyers')
    op.drop_table('buyers')
    op.drop_table('users')

    bind = op.get_bind()
    for enum in (CITY, PROPERTY_TYPE, BHK, PURPOSE, TIMELINE, SOURCE, STATUS):
        enum.drop(bind, checkfirst=True)
