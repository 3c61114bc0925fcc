"""
Thread model: the local shadow of an upstream assistant conversation.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .base import UUID, BaseModel, JSONType, utcnow


class Thread(BaseModel):
    """
    Represents a conversation thread.

    The primary key is the identifier assigned by the assistant service; it is
    never generated locally. ``message_count`` and ``messages`` are an advisory
    cache of content owned by the assistant service.
    """

    __tablename__ = "threads"

    id = Column(String(64), primary_key=True)
    project_id = Column(UUID(), ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)
    title = Column(String(255), nullable=False, default="New Chat")
    last_activity = Column(DateTime, default=utcnow, nullable=False)
    message_count = Column(Integer, nullable=False, default=0)

    # Legacy cached mirror of the upstream messages (older schema variants)
    messages = Column(JSONType, nullable=True)

    # Relationships
    project = relationship("Project", back_populates="threads")
    shares = relationship(
        "ThreadShare",
        back_populates="thread",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
