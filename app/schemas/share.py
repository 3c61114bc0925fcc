"""Thread share schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field

from models.thread_share import SharePermission

from .base import BaseSchema, RequestSchema
from .thread import MessageResponse, ThreadResponse

MIN_EXPIRY_DAYS = 1
MAX_EXPIRY_DAYS = 30


class ShareCreate(RequestSchema):
    permissions: SharePermission = SharePermission.READ
    expiry_days: int = Field(default=MIN_EXPIRY_DAYS, ge=MIN_EXPIRY_DAYS, le=MAX_EXPIRY_DAYS)


class ShareResponse(BaseSchema):
    id: UUID
    thread_id: str
    share_token: str
    permissions: SharePermission
    expires_at: datetime
    created_at: datetime
    share_url: str
    is_expired: bool = False


class SharedThreadResponse(BaseSchema):
    share: ShareResponse
    thread: ThreadResponse
    messages: list[MessageResponse] = []
