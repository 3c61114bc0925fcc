"""Thread API controller with FastAPI endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_assistant_gateway, get_blob_storage, get_db
from app.domains.thread.service import ThreadService
from app.schemas.base import ResponseSchema
from app.schemas.thread import (
    ThreadCleanupResponse,
    ThreadDetail,
    ThreadResponse,
    ThreadSyncRequest,
    ThreadSyncResponse,
    ThreadUpsert,
)
from app.services.assistant_gateway import AssistantGateway
from app.services.blob_storage import BlobStorageClient
from app.services.thread_export import ThreadExporter, archive_filename
from app.shared.pagination import PaginatedResponse, PaginationParams

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/threads", tags=["threads"])


@router.get("", response_model=ResponseSchema)
async def list_threads(
    project_id: UUID | None = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
):
    """List thread records, most recent activity first."""
    service = ThreadService(db)
    result = await service.list_threads(project_id, PaginationParams(page=page, size=size))

    payload = PaginatedResponse[ThreadResponse](
        **{**result, "items": [ThreadResponse.model_validate(t) for t in result["items"]]}
    )
    return ResponseSchema(
        status="success",
        message="Threads retrieved successfully",
        data=payload.model_dump(),
    )


@router.post("", response_model=ResponseSchema)
async def save_thread(thread_data: ThreadUpsert, db: AsyncSession = Depends(get_db)):
    """Create or overwrite the local record of a thread."""
    service = ThreadService(db)
    thread = await service.upsert_thread(thread_data)

    return ResponseSchema(
        status="success",
        message="Thread saved successfully",
        data=ThreadResponse.model_validate(thread).model_dump(),
    )


@router.post("/sync", response_model=ResponseSchema)
async def sync_threads(
    sync_request: ThreadSyncRequest,
    db: AsyncSession = Depends(get_db),
    gateway: AssistantGateway = Depends(get_assistant_gateway),
):
    """Import existing assistant threads into a project."""
    service = ThreadService(db)
    result = await service.sync_threads(sync_request, gateway)

    return ResponseSchema(
        status="success",
        message=f"Synced {result['synced']} of {result['total_threads']} threads",
        data=ThreadSyncResponse.model_validate(result).model_dump(),
    )


@router.post("/cleanup", response_model=ResponseSchema)
async def cleanup_threads(db: AsyncSession = Depends(get_db)):
    """Strip leaked search scaffold from cached messages, never touching file links."""
    service = ThreadService(db)
    result = await service.cleanup_threads()

    return ResponseSchema(
        status="success",
        message="Thread cleanup completed",
        data=ThreadCleanupResponse.model_validate(result).model_dump(),
    )


@router.get("/{thread_id}", response_model=ResponseSchema)
async def get_thread(
    thread_id: str = Path(..., description="Thread ID"),
    db: AsyncSession = Depends(get_db),
    gateway: AssistantGateway = Depends(get_assistant_gateway),
):
    """Get a thread record with its messages from the assistant service."""
    service = ThreadService(db)
    detail = await service.get_thread_detail(thread_id, gateway)

    return ResponseSchema(
        status="success",
        message="Thread retrieved successfully",
        data=ThreadDetail.model_validate(detail).model_dump(),
    )


@router.delete("/{thread_id}", response_model=ResponseSchema)
async def delete_thread(
    thread_id: str = Path(..., description="Thread ID"),
    db: AsyncSession = Depends(get_db),
):
    """Delete the local thread record and its share links."""
    service = ThreadService(db)
    await service.delete_thread(thread_id)

    return ResponseSchema(
        status="success",
        message="Thread deleted successfully",
        data={"id": thread_id},
    )


@router.post("/{thread_id}/download")
async def download_thread(
    thread_id: str = Path(..., description="Thread ID"),
    db: AsyncSession = Depends(get_db),
    gateway: AssistantGateway = Depends(get_assistant_gateway),
    blob_storage: BlobStorageClient = Depends(get_blob_storage),
):
    """Download the conversation and its files as a ZIP archive."""
    gateway.ensure_configured(require_assistant=False)
    files = await ThreadService(db).get_thread_files(thread_id)

    archive = await ThreadExporter(gateway, blob_storage).build_archive(thread_id, files)

    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": f'attachment; filename="{archive_filename(thread_id)}"'},
    )
