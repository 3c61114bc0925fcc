"""
Aggregate blob storage metrics (singleton row).
"""

import uuid

from sqlalchemy import BigInteger, Column, DateTime, Integer

from .base import UUID, Base, utcnow

STORAGE_METRICS_ID = uuid.UUID("00000000-0000-0000-0000-000000000000")


class StorageMetrics(Base):
    """
    Running totals over ``blob_files``.

    Maintained incrementally by the upload and cleanup paths, so it can drift
    from the real sum; the recalculation endpoint rebuilds it from a full scan.
    """

    __tablename__ = "storage_metrics"

    id = Column(UUID(), primary_key=True, default=lambda: STORAGE_METRICS_ID)
    total_size_bytes = Column(BigInteger, nullable=False, default=0)
    file_count = Column(Integer, nullable=False, default=0)
    last_cleanup_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
