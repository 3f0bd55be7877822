"""
User model — local mirror of identities owned by the external provider.

Rows are created lazily on a user's first create/import so buyers and history
entries have something to reference and to display.
"""
from sqlalchemy import Column, Text, DateTime

from buyerleads.database import Base
from buyerleads.timestamps import now_utc


class User(Base):
    __tablename__ = 'users'

    id = Column(Text, primary_key=True)  # opaque id from the identity provider
    email = Column(Text, nullable=False)
    full_name = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=now_utc)

    def to_summary(self):
        return {
            'id': self.id,
            'email': self.email,
            'fullName': self.full_name,
        }
