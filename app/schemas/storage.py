"""Blob storage statistics and cleanup schemas."""

from __future__ import annotations

from datetime import datetime

from .base import BaseSchema

MB = 1024 * 1024


def to_mb(size_bytes: int) -> float:
    return round(size_bytes / MB, 2)


class SizeValue(BaseSchema):
    bytes: int
    mb: float

    @classmethod
    def of(cls, size_bytes: int) -> SizeValue:
        return cls(bytes=size_bytes, mb=to_mb(size_bytes))


class StorageUsage(BaseSchema):
    percentage: float
    remaining: SizeValue


class RecentFile(BaseSchema):
    filename: str
    size_mb: float
    created_at: datetime
    accessed_at: datetime


class CleanupStatus(BaseSchema):
    threshold: SizeValue
    triggered: bool
    required: bool


class StorageStatsResponse(BaseSchema):
    total_size_bytes: int
    total_size_mb: float
    file_count: int
    last_cleanup_at: datetime | None = None
    updated_at: datetime | None = None
    limit: SizeValue
    usage: StorageUsage
    recent_files: list[RecentFile] = []
    cleanup: CleanupStatus


class DeletedFile(BaseSchema):
    filename: str
    size: int
    created_at: datetime


class CleanupResult(BaseSchema):
    performed: bool
    message: str
    current_size: int
    threshold: int
    deleted_count: int = 0
    deleted_size: int = 0
    new_total_size: int
    deleted_files: list[DeletedFile] = []


class RecalculateResponse(BaseSchema):
    total_size_bytes: int
    total_size_mb: float
    file_count: int
