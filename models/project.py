"""
Project model for grouping conversation threads.
"""

from sqlalchemy import Column, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel


class Project(BaseModel):
    """
    Represents a project entity in the application.

    Threads reference their project by foreign key only; deleting a project
    detaches its threads instead of deleting them.
    """

    __tablename__ = "projects"

    name = Column(String(255), nullable=False)
    description = Column(Text)
    color = Column(String(20), nullable=False, default="#2563eb")

    # Relationships
    threads = relationship(
        "Thread",
        back_populates="project",
        passive_deletes=True,
        order_by="Thread.last_activity.desc()",
    )
