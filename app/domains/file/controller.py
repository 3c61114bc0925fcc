"""File API controller with FastAPI endpoints."""

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Path, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_assistant_gateway, get_blob_storage, get_db
from app.domains.file.service import FileService
from app.schemas.base import ResponseSchema
from app.schemas.file import FileUploadResponse
from app.services.assistant_gateway import AssistantGateway
from app.services.blob_storage import BlobStorageClient
from app.shared.file_types import FILE_URL_PREFIX

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["files"])

CACHE_CONTROL = "public, max-age=31536000"


def get_file_service(
    db: AsyncSession = Depends(get_db),
    gateway: AssistantGateway = Depends(get_assistant_gateway),
    blob_storage: BlobStorageClient = Depends(get_blob_storage),
) -> FileService:
    return FileService(db, gateway, blob_storage)


def content_disposition(filename: str, inline: bool) -> str:
    disposition = "inline" if inline else "attachment"
    return f"{disposition}; filename*=UTF-8''{quote(filename)}"


@router.post("/upload", response_model=ResponseSchema, status_code=201)
async def upload_file(
    file: UploadFile = File(...),
    purpose: str = Form("assistants"),
    thread_id: str | None = Form(None),
    service: FileService = Depends(get_file_service),
):
    """Upload a file for use by the assistant."""
    filename = file.filename or "upload"
    # Reject on the declared size before reading the body
    service.validate_upload(filename, file.content_type, file.size)
    content = await file.read()

    uploaded = await service.upload(
        filename=filename,
        content=content,
        content_type=file.content_type,
        purpose=purpose,
        thread_id=thread_id,
    )
    return ResponseSchema(
        status="success",
        message="File uploaded successfully",
        data=FileUploadResponse.model_validate(uploaded).model_dump(),
    )


@router.get(FILE_URL_PREFIX.removeprefix("/api") + "{file_id}")
async def get_file(
    file_id: str = Path(..., description="Assistant file ID"),
    preview: bool = Query(False, description="Serve inline instead of as an attachment"),
    service: FileService = Depends(get_file_service),
):
    """Serve an uploaded or assistant-generated file."""
    served = await service.serve(file_id)

    headers = {
        "Content-Disposition": content_disposition(served.filename, inline=preview),
        "Cache-Control": CACHE_CONTROL,
    }
    if not preview:
        headers["X-Content-Type-Options"] = "nosniff"
    return Response(content=served.content, media_type=served.content_type, headers=headers)
