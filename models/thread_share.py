"""
Thread share model for token-based access to a conversation.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from .base import UUID, Base, utcnow


class SharePermission(str, enum.Enum):
    """Share permission enumeration."""

    READ = "read"
    COLLABORATE = "collaborate"


class ThreadShare(Base):
    """
    Represents a share link for a thread.

    Expiry is evaluated when the share is read; expired rows are not swept.
    """

    __tablename__ = "thread_shares"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    thread_id = Column(String(64), ForeignKey("threads.id", ondelete="CASCADE"), nullable=False, index=True)
    share_token = Column(String(128), nullable=False, unique=True, index=True)
    permissions = Column(String(20), nullable=False, default=SharePermission.READ.value)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    thread = relationship("Thread", back_populates="shares")

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at < (now or utcnow())
