"""File upload schemas."""

from __future__ import annotations

from .base import BaseSchema


class FileUploadResponse(BaseSchema):
    file_id: str
    filename: str
    size: int
    content_type: str
    url: str
    blob_url: str | None = None
    thread_id: str | None = None
