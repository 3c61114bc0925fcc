"""File upload and serving."""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import Settings, settings
from app.domains.storage.service import StorageService
from app.exceptions.assistant import BlobStorageError, UpstreamError
from app.exceptions.base import ValidationError
from app.exceptions.files import FileTooLargeError, StoredFileNotFoundError, UnsupportedFileTypeError
from app.services.assistant_gateway import AssistantGateway
from app.services.blob_storage import BlobStorageClient
from app.shared.file_types import (
    DEFAULT_CONTENT_TYPE,
    content_type_from_filename,
    default_filename,
    file_url,
    is_allowed_upload,
)
from models.base import utcnow
from models.blob_file import BlobFile

logger = logging.getLogger(__name__)


@dataclass
class ServedFile:
    content: bytes
    content_type: str
    filename: str


class FileService:
    """Service class for uploads and file downloads."""

    def __init__(
        self,
        db: AsyncSession,
        gateway: AssistantGateway,
        blob_storage: BlobStorageClient,
        config: Settings = settings,
    ):
        self.db = db
        self.gateway = gateway
        self.blob_storage = blob_storage
        self.config = config

    def validate_upload(self, filename: str | None, content_type: str | None, size: int | None) -> None:
        """Reject oversize or disallowed uploads before anything leaves the process."""
        if size is not None and size > self.config.max_upload_size:
            raise FileTooLargeError(
                f"File exceeds the {self.config.max_upload_size // (1024 * 1024)} MB limit",
                details={"size": size, "max_size": self.config.max_upload_size},
            )
        if not is_allowed_upload(
            content_type,
            filename,
            self.config.allowed_upload_types,
            self.config.allowed_upload_extensions,
        ):
            raise UnsupportedFileTypeError(
                f"File type {content_type or 'unknown'} is not supported",
                details={"content_type": content_type, "filename": filename},
            )

    async def upload(
        self,
        filename: str,
        content: bytes,
        content_type: str | None,
        purpose: str = "assistants",
        thread_id: str | None = None,
    ) -> dict[str, Any]:
        """Upload to the assistant service and mirror into blob storage when configured."""
        self.validate_upload(filename, content_type, len(content))
        self.gateway.ensure_configured(require_assistant=False)

        uploaded = await self.gateway.upload_file(filename, content, content_type, purpose)
        file_id = uploaded["id"]
        content_type = content_type or content_type_from_filename(filename) or DEFAULT_CONTENT_TYPE

        blob_url = None
        if self.blob_storage.is_configured:
            try:
                blob = await self.blob_storage.put(f"uploads/{file_id}/{filename}", content, content_type)
                blob_url = blob.get("url")
            except BlobStorageError as e:
                logger.warning(f"Blob mirror failed for {file_id}, serving from the assistant service: {e.message}")

        if blob_url:
            await self._record_blob(file_id, blob_url, filename, content_type, len(content), thread_id)

        return {
            "file_id": file_id,
            "filename": filename,
            "size": len(content),
            "content_type": content_type,
            "url": file_url(file_id),
            "blob_url": blob_url,
            "thread_id": thread_id,
        }

    async def serve(self, file_id: str) -> ServedFile:
        """File bytes from blob storage when mirrored, otherwise from the assistant service."""
        record = await self._find_record(file_id)
        if record is not None:
            try:
                content = await self.blob_storage.download(record.blob_url)
            except BlobStorageError as e:
                logger.warning(f"Blob read failed for {file_id}, falling back to the assistant service: {e.message}")
            else:
                record.accessed_at = utcnow()
                await self._commit("update file access time")
                return ServedFile(
                    content=content,
                    content_type=record.content_type or DEFAULT_CONTENT_TYPE,
                    filename=record.filename,
                )

        self.gateway.ensure_configured(require_assistant=False)
        try:
            metadata, content = await self.gateway.get_file(file_id)
        except UpstreamError as e:
            if e.upstream_status == 404:
                raise StoredFileNotFoundError(file_id) from e
            raise

        filename = metadata.get("filename") or default_filename(file_id)
        content_type = content_type_from_filename(filename) or DEFAULT_CONTENT_TYPE
        return ServedFile(content=content, content_type=content_type, filename=filename)

    # Private helper methods
    async def _find_record(self, file_id: str) -> BlobFile | None:
        result = await self.db.execute(
            select(BlobFile).where(BlobFile.openai_file_id == file_id).order_by(desc(BlobFile.created_at)).limit(1)
        )
        return result.scalar_one_or_none()

    async def _record_blob(
        self,
        file_id: str,
        blob_url: str,
        filename: str,
        content_type: str,
        size: int,
        thread_id: str | None,
    ) -> None:
        self.db.add(
            BlobFile(
                thread_id=thread_id,
                openai_file_id=file_id,
                blob_url=blob_url,
                filename=filename,
                content_type=content_type,
                file_size=size,
            )
        )
        await StorageService(self.db, config=self.config).record_file(size)
        await self._commit("record uploaded file")
        logger.info(f"Recorded blob for {file_id} ({size} bytes)")

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to {action}: {str(e)}") from e
