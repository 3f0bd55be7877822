"""
BuyerHistory model — append-only audit trail, one row per recorded mutation.

diff is either {"action": "created"|"imported", "data": <buyer dict>} or a
mapping of changed field → {"old": ..., "new": ...}.
"""
from sqlalchemy import Column, Integer, Text, DateTime, JSON, ForeignKey
from sqlalchemy.orm import relationship

from buyerleads.database import Base
from buyerleads.timestamps import format_timestamp


class BuyerHistory(Base):
    __tablename__ = 'buyer_history'

    id = Column(Integer, primary_key=True, autoincrement=True)
    buyer_id = Column(Text, ForeignKey('buyers.id', ondelete='CASCADE'), nullable=False, index=True)
    changed_by = Column(Text, ForeignKey('users.id'), nullable=False)
    changed_at = Column(DateTime(timezone=True), nullable=False)
    diff = Column(JSON, nullable=False)

    buyer = relationship('Buyer', back_populates='history')
    changed_by_user = relationship('User', lazy='joined')

    def to_dict(self):
        return {
            'id': self.id,
            'buyerId': self.buyer_id,
            'changedBy': self.changed_by_user.to_summary() if self.changed_by_user else {'id': self.changed_by},
            'changedAt': format_timestamp(self.changed_at),
            'diff': self.diff,
        }
