"""Unit tests for the scheduled storage cleanup."""

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.celery_app import celery_app
from app.core.config import Settings
from app.services.blob_storage import BlobStorageClient
from app.tasks.storage_tasks import cleanup_storage_task, run_storage_cleanup
from models import Base
from models.base import utcnow

from factories import BlobFileFactory


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tasks.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


class TestRunStorageCleanup:
    @pytest.mark.asyncio
    async def test_cleanup_pass_in_own_session(self, session_factory):
        async with session_factory() as session:
            session.add_all(
                [
                    BlobFileFactory.build(file_size=600, accessed_at=utcnow() - timedelta(days=30)),
                    BlobFileFactory.build(file_size=300, accessed_at=utcnow()),
                ]
            )
            await session.commit()
        blob_storage = MagicMock(spec=BlobStorageClient)
        blob_storage.delete = AsyncMock(return_value=None)
        config = Settings(
            storage_limit_bytes=1000,
            storage_cleanup_threshold_bytes=800,
            storage_cleanup_target_bytes=500,
        )

        result = await run_storage_cleanup(session_factory, blob_storage, config)

        assert result["performed"] is True
        assert result["deleted_count"] == 1
        assert result["new_total_size"] == 300
        blob_storage.delete.assert_awaited_once()


class TestCleanupStorageTask:
    def test_task_drops_file_list_from_result(self):
        result = {"performed": True, "deleted_count": 2, "deleted_files": [{"filename": "a.pdf"}]}

        with patch(
            "app.tasks.storage_tasks._cleanup_with_own_resources", AsyncMock(return_value=result)
        ) as cleanup:
            outcome = cleanup_storage_task()

        cleanup.assert_awaited_once()
        assert outcome == {"performed": True, "deleted_count": 2}

    def test_beat_schedule(self):
        entry = celery_app.conf.beat_schedule["cleanup-blob-storage"]

        assert entry["task"] == cleanup_storage_task.name
        assert isinstance(entry["schedule"], timedelta)
        assert entry["options"]["expires"] == entry["schedule"].total_seconds()

    def test_routed_to_maintenance_queue(self):
        assert celery_app.conf.task_routes["app.tasks.storage_tasks.*"] == {"queue": "maintenance"}
