"""Thread and message schemas."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal
from uuid import UUID

from pydantic import Field, field_validator

from .base import BaseSchema, RequestSchema
from .project import ProjectResponse


class MessageRole(str, Enum):
    """Message role enumeration."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class MessageFile(BaseSchema):
    """File referenced by a message."""

    type: str
    file_id: str | None = None
    url: str | None = None
    description: str


class MessageResponse(BaseSchema):
    """One message as held by the assistant service."""

    id: str | None = None
    role: MessageRole
    content: str
    files: list[MessageFile] = []
    timestamp: datetime | None = None


class ThreadUpsert(RequestSchema):
    """Create or overwrite the local record of an assistant thread."""

    id: str = Field(..., min_length=1, max_length=64)
    project_id: UUID | None = None
    title: str | None = Field(None, max_length=255)
    message_count: int | None = Field(None, ge=0)
    messages: list[dict[str, Any]] | None = None

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Thread id cannot be empty")
        return v


class ThreadResponse(BaseSchema):
    """Local thread record."""

    id: str
    project_id: UUID | None = None
    title: str
    last_activity: datetime
    message_count: int = 0
    created_at: datetime
    updated_at: datetime


class ThreadDetail(BaseSchema):
    """Thread record with its project and the messages fetched from the assistant service."""

    thread: ThreadResponse | None = None
    project: ProjectResponse | None = None
    messages: list[MessageResponse] = []


class ThreadSyncRequest(RequestSchema):
    """Import assistant threads into a project."""

    project_id: UUID
    thread_ids: list[str] = Field(..., min_length=1)
    generate_smart_titles: bool = True


class ThreadSyncResult(BaseSchema):
    thread_id: str
    status: Literal["synced", "title_updated", "already_exists", "error"]
    title: str | None = None
    message_count: int | None = None
    error: str | None = None


class ThreadSyncResponse(BaseSchema):
    sync_results: list[ThreadSyncResult]
    total_threads: int
    synced: int
    title_updated: int
    smart_titles_generated: int
    errors: int


class ThreadCleanupResponse(BaseSchema):
    """Outcome of the bulk cleanup of cached message content."""

    processed: int
    cleaned: int
    skipped: int
    files_preserved: int
