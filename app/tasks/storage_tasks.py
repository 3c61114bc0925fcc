"""Celery tasks for blob storage housekeeping."""

import asyncio
import logging
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import all models to ensure they're registered before creating session
import models  # noqa: F401
from app.celery_app import celery_app
from app.core.config import Settings, settings
from app.domains.storage.service import StorageService
from app.services.blob_storage import BlobStorageClient

logger = logging.getLogger(__name__)


async def run_storage_cleanup(
    session_factory: async_sessionmaker[AsyncSession],
    blob_storage: BlobStorageClient,
    config: Settings = settings,
) -> dict[str, Any]:
    """One cleanup pass in a fresh session."""
    async with session_factory() as session:
        return await StorageService(session, blob_storage, config).run_cleanup()


async def _cleanup_with_own_resources() -> dict[str, Any]:
    # Workers run outside the web process, so the task owns its engine and HTTP client
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    try:
        async with httpx.AsyncClient(timeout=settings.assistant_request_timeout) as client:
            blob_storage = BlobStorageClient.from_settings(client, settings)
            return await run_storage_cleanup(session_factory, blob_storage)
    finally:
        await engine.dispose()


@celery_app.task(name="app.tasks.storage_tasks.cleanup_storage_task", bind=True)
def cleanup_storage_task(self) -> dict[str, Any]:
    """Scheduled storage cleanup. Failures are logged and not retried."""
    logger.info(f"Starting storage cleanup (Task ID: {self.request.id})")
    result = asyncio.run(_cleanup_with_own_resources())
    result.pop("deleted_files", None)
    logger.info(f"Storage cleanup finished: {result}")
    return result
