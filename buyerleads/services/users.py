"""
Acting user — the identity forwarded by the external provider, mirrored into
the local users table on first use.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from buyerleads.models.user import User
from buyerleads.timestamps import now_utc

logger = logging.getLogger('services.users')


@dataclass(frozen=True)
class ActingUser:
    id: str
    email: str
    full_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email.split('@')[0]


def ensure_user(session, acting_user: ActingUser) -> User:
    """
    Upsert-on-first-use. Adds the row to the session without committing, so it
    rides on the caller's transaction.
    """
    user = session.get(User, acting_user.id)
    if user is None:
        now = now_utc()
        user = User(
            id=acting_user.id,
            email=acting_user.email,
            full_name=acting_user.display_name,
            created_at=now,
            updated_at=now,
        )
        session.add(user)
        session.flush()
        logger.info("Created local user %s (%s)", acting_user.id, acting_user.email)
    return user
