"""Blob storage bookkeeping and the quota janitor."""

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import asc, desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import Settings, settings
from app.exceptions.assistant import BlobStorageError
from app.exceptions.base import ValidationError
from app.schemas.storage import SizeValue, to_mb
from app.services.blob_storage import BlobStorageClient
from models.base import utcnow
from models.blob_file import BlobFile
from models.storage_metrics import STORAGE_METRICS_ID, StorageMetrics

logger = logging.getLogger(__name__)

RECENT_FILES_LIMIT = 5


class StorageService:
    """Service class for storage metrics and cleanup.

    ``StorageMetrics`` is a single row of running totals. Uploads add to it,
    cleanup subtracts from it and ``recalculate`` rebuilds it from
    ``blob_files``.
    """

    def __init__(self, db: AsyncSession, blob_storage: BlobStorageClient | None = None, config: Settings = settings):
        self.db = db
        self.blob_storage = blob_storage
        self.config = config

    async def get_metrics(self) -> StorageMetrics:
        metrics = await self.db.get(StorageMetrics, STORAGE_METRICS_ID)
        if metrics is None:
            metrics = StorageMetrics(id=STORAGE_METRICS_ID, total_size_bytes=0, file_count=0)
            self.db.add(metrics)
            await self.db.flush()
        return metrics

    async def record_file(self, file_size: int) -> StorageMetrics:
        """Add one stored file to the running totals. The caller commits."""
        metrics = await self.get_metrics()
        metrics.total_size_bytes = (metrics.total_size_bytes or 0) + file_size
        metrics.file_count = (metrics.file_count or 0) + 1
        metrics.updated_at = utcnow()
        return metrics

    async def get_stats(self) -> dict[str, Any]:
        metrics = await self.get_metrics()
        await self._commit()

        result = await self.db.execute(
            select(BlobFile).order_by(desc(BlobFile.created_at)).limit(RECENT_FILES_LIMIT)
        )
        recent = result.scalars().all()

        total = metrics.total_size_bytes or 0
        limit = self.config.storage_limit_bytes
        threshold = self.config.storage_cleanup_threshold_bytes
        return {
            "total_size_bytes": total,
            "total_size_mb": to_mb(total),
            "file_count": metrics.file_count or 0,
            "last_cleanup_at": metrics.last_cleanup_at,
            "updated_at": metrics.updated_at,
            "limit": SizeValue.of(limit),
            "usage": {
                "percentage": round(total / limit * 100, 2) if limit else 0.0,
                "remaining": SizeValue.of(max(0, limit - total)),
            },
            "recent_files": [
                {
                    "filename": f.filename,
                    "size_mb": to_mb(f.file_size or 0),
                    "created_at": f.created_at,
                    "accessed_at": f.accessed_at,
                }
                for f in recent
            ],
            "cleanup": {
                "threshold": SizeValue.of(threshold),
                "triggered": total > threshold,
                "required": total > limit,
            },
        }

    async def recalculate(self) -> dict[str, Any]:
        """Rebuild the running totals from a full scan of ``blob_files``."""
        total, count = await self._scan_totals()
        metrics = await self.get_metrics()
        metrics.total_size_bytes = total
        metrics.file_count = count
        metrics.updated_at = utcnow()
        await self._commit()

        logger.info(f"Storage metrics recalculated: {count} files, {to_mb(total)} MB")
        return {"total_size_bytes": total, "total_size_mb": to_mb(total), "file_count": count}

    async def run_cleanup(self, now: datetime | None = None) -> dict[str, Any]:
        """Delete least-recently-accessed blobs until usage drops to the target.

        Only files not accessed within the retention window are candidates, so
        a pass can end above target. Files whose blob delete fails are kept.
        Overlapping passes are not guarded against.
        """
        now = now or utcnow()
        current, count = await self._scan_totals()
        threshold = self.config.storage_cleanup_threshold_bytes

        if current <= threshold:
            return {
                "performed": False,
                "message": "Storage usage is below the cleanup threshold",
                "current_size": current,
                "threshold": threshold,
                "new_total_size": current,
            }

        to_free = current - self.config.storage_cleanup_target_bytes
        cutoff = now - timedelta(days=self.config.storage_retention_days)
        result = await self.db.execute(
            select(BlobFile).where(BlobFile.accessed_at < cutoff).order_by(asc(BlobFile.accessed_at))
        )

        deleted_size = 0
        deleted_files: list[dict[str, Any]] = []
        for blob_file in result.scalars().all():
            if deleted_size >= to_free:
                break
            try:
                if self.blob_storage is not None:
                    await self.blob_storage.delete(blob_file.blob_url)
            except BlobStorageError as e:
                logger.warning(f"Failed to delete blob {blob_file.blob_url}: {e.message}")
                continue
            await self.db.delete(blob_file)
            deleted_size += blob_file.file_size or 0
            deleted_files.append(
                {"filename": blob_file.filename, "size": blob_file.file_size or 0, "created_at": blob_file.created_at}
            )

        metrics = await self.get_metrics()
        metrics.total_size_bytes = max(0, current - deleted_size)
        metrics.file_count = max(0, count - len(deleted_files))
        metrics.last_cleanup_at = now
        metrics.updated_at = now
        await self._commit()

        if deleted_size < to_free:
            logger.warning(
                f"Storage cleanup freed {to_mb(deleted_size)} MB of {to_mb(to_free)} MB needed; "
                "remaining files are within the retention window"
            )
        logger.info(f"Storage cleanup deleted {len(deleted_files)} files ({to_mb(deleted_size)} MB)")
        return {
            "performed": True,
            "message": f"Deleted {len(deleted_files)} files",
            "current_size": current,
            "threshold": threshold,
            "deleted_count": len(deleted_files),
            "deleted_size": deleted_size,
            "new_total_size": metrics.total_size_bytes,
            "deleted_files": deleted_files,
        }

    # Private helper methods
    async def _scan_totals(self) -> tuple[int, int]:
        result = await self.db.execute(select(func.coalesce(func.sum(BlobFile.file_size), 0), func.count(BlobFile.id)))
        total, count = result.one()
        return int(total or 0), int(count or 0)

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to update storage metrics: {str(e)}") from e
