"""
Buyer model — one row per property lead, owned by the user who created it.
"""
import uuid

from sqlalchemy import Column, Text, String, Integer, DateTime, JSON, Enum, ForeignKey, Index
from sqlalchemy.orm import relationship

from buyerleads.config import (
    CITIES, PROPERTY_TYPES, BHK_OPTIONS, PURPOSES, TIMELINES, SOURCES, STATUSES, DEFAULT_STATUS,
)
from buyerleads.database import Base
from buyerleads.timestamps import format_timestamp


# camelCase field name → ORM attribute
FIELD_COLUMNS = {
    'fullName': 'full_name',
    'email': 'email',
    'phone': 'phone',
    'city': 'city',
    'propertyType': 'property_type',
    'bhk': 'bhk',
    'purpose': 'purpose',
    'budgetMin': 'budget_min',
    'budgetMax': 'budget_max',
    'timeline': 'timeline',
    'source': 'source',
    'notes': 'notes',
    'tags': 'tags',
    'status': 'status',
}


def _new_id():
    return str(uuid.uuid4())


class Buyer(Base):
    __tablename__ = 'buyers'

    id = Column(Text, primary_key=True, default=_new_id)
    full_name = Column(String(80), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(15), nullable=False)
    city = Column(Enum(*CITIES, name='city'), nullable=False)
    property_type = Column(Enum(*PROPERTY_TYPES, name='property_type'), nullable=False)
    bhk = Column(Enum(*BHK_OPTIONS, name='bhk'), nullable=True)
    purpose = Column(Enum(*PURPOSES, name='purpose'), nullable=False)
    budget_min = Column(Integer, nullable=True)
    budget_max = Column(Integer, nullable=True)
    timeline = Column(Enum(*TIMELINES, name='timeline'), nullable=False)
    source = Column(Enum(*SOURCES, name='source'), nullable=False)
    status = Column(Enum(*STATUSES, name='status'), nullable=False, default=DEFAULT_STATUS)
    notes = Column(Text, nullable=True)
    tags = Column(JSON, nullable=False, default=list)  # sorted, de-duplicated
    owner_id = Column(Text, ForeignKey('users.id'), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    owner = relationship('User', lazy='joined')
    history = relationship(
        'BuyerHistory',
        back_populates='buyer',
        cascade='all, delete-orphan',
        order_by='BuyerHistory.changed_at.desc()',
    )

    __table_args__ = (
        Index('ix_buyers_updated_at', 'updated_at'),
    )

    def field_values(self):
        """Current values keyed by camelCase field name (tags as a sorted list)."""
        values = {field: getattr(self, attr) for field, attr in FIELD_COLUMNS.items()}
        values['tags'] = sorted(values['tags'] or [])
        return values

    def to_dict(self):
        return {
            'id': self.id,
            'ownerId': self.owner_id,
            **self.field_values(),
            'createdAt': format_timestamp(self.created_at),
            'updatedAt': format_timestamp(self.updated_at),
        }
