"""
Models package initialization.
"""

from .base import Base, BaseModel
from .blob_file import BlobFile
from .project import Project
from .storage_metrics import STORAGE_METRICS_ID, StorageMetrics
from .thread import Thread
from .thread_share import SharePermission, ThreadShare

__all__ = [
    "Base",
    "BaseModel",
    "Project",
    "Thread",
    "ThreadShare",
    "SharePermission",
    # Blob storage bookkeeping
    "BlobFile",
    "StorageMetrics",
    "STORAGE_METRICS_ID",
]
