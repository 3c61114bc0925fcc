"""Chat schemas for request/response serialization."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import Field, field_validator

from .base import BaseSchema, RequestSchema


class ChatRequest(RequestSchema):
    """One chat turn.

    ``message`` may already carry client-side context; ``original_message`` is
    the text as typed and is what gets stored in the thread and searched for.
    """

    message: str = Field(..., min_length=1, description="Message text sent to the assistant")
    original_message: str | None = Field(None, description="Message as typed by the user")
    thread_id: str | None = Field(None, description="Existing thread, null for a new one")
    project_id: UUID | None = Field(None, description="Project for a newly created thread")
    web_search_enabled: bool = False
    file_ids: list[str] = Field(default_factory=list, description="Uploaded file ids to attach")
    share_token: str | None = Field(None, description="Collaborate share token when chatting on a shared thread")
    use_json_format: bool = False

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message is required")
        return v

    @property
    def stored_message(self) -> str:
        return self.original_message or self.message


class SearchSource(BaseSchema):
    title: str
    url: str
    score: float | None = None


class ChatResponse(BaseSchema):
    reply: str
    thread_id: str
    run_state: str
    web_search_performed: bool = False
    search_sources: list[SearchSource] = []
    use_json_format: bool = False
    parsed_response: dict[str, Any] | None = None


class ExtractRequest(RequestSchema):
    content: str = Field(..., min_length=1)


class CopyOption(BaseSchema):
    label: str
    content: str
    type: str
