"""
Blob file model for files mirrored into external blob storage.
"""

import uuid

from sqlalchemy import BigInteger, Column, DateTime, String

from .base import UUID, Base, utcnow


class BlobFile(Base):
    """
    Bookkeeping row for one object in blob storage.

    ``accessed_at`` is bumped on every successful read and drives the storage
    janitor's least-recently-accessed eviction order.
    """

    __tablename__ = "blob_files"

    id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    # Uploads can precede thread creation, so there is no FK to threads
    thread_id = Column(String(64), nullable=True, index=True)
    openai_file_id = Column(String(64), nullable=True, index=True)
    blob_url = Column(String(1024), nullable=False)
    filename = Column(String(255), nullable=False)
    content_type = Column(String(255), nullable=False, default="application/octet-stream")
    file_size = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    accessed_at = Column(DateTime, default=utcnow, nullable=False, index=True)
