"""Share service layer.

A share token is the only credential in the system. Expiry is checked each
time a token is read; expired rows are left in place.
"""

import logging
import secrets
from datetime import timedelta
from typing import Any

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.core.config import Settings, settings
from app.domains.thread.service import ThreadService
from app.exceptions.base import ValidationError
from app.exceptions.share import (
    InvalidShareRequestError,
    ShareExpiredError,
    ShareNotFoundError,
    SharePermissionError,
)
from app.schemas.share import ShareCreate
from app.services.assistant_gateway import AssistantGateway, to_messages
from models.base import utcnow
from models.thread_share import SharePermission, ThreadShare

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def generate_share_token() -> str:
    """64 hex characters from the OS CSPRNG."""
    return secrets.token_hex(TOKEN_BYTES)


def build_share_url(token: str, base_url: str | None = None) -> str:
    return f"{(base_url or settings.public_base_url).rstrip('/')}/shared/thread/{token}"


class ShareService:
    """Service class for thread share links."""

    def __init__(self, db: AsyncSession, config: Settings = settings):
        self.db = db
        self.config = config

    async def create_share(self, thread_id: str, data: ShareCreate, gateway: AssistantGateway) -> dict[str, Any]:
        """Create a share token for a thread known locally or to the assistant service."""
        if not self.config.share_min_expiry_days <= data.expiry_days <= self.config.share_max_expiry_days:
            raise InvalidShareRequestError(
                f"Expiry must be between {self.config.share_min_expiry_days} "
                f"and {self.config.share_max_expiry_days} days"
            )

        await ThreadService(self.db).ensure_shadow(thread_id, gateway)

        share = ThreadShare(
            thread_id=thread_id,
            share_token=generate_share_token(),
            permissions=data.permissions.value,
            expires_at=utcnow() + timedelta(days=data.expiry_days),
        )
        try:
            self.db.add(share)
            await self.db.commit()
            await self.db.refresh(share)
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to create share: {str(e)}") from e

        logger.info(f"Share created for thread {thread_id} ({share.permissions}, {data.expiry_days} days)")
        return self.share_dict(share)

    async def list_shares(self, thread_id: str) -> list[dict[str, Any]]:
        result = await self.db.execute(
            select(ThreadShare).where(ThreadShare.thread_id == thread_id).order_by(desc(ThreadShare.created_at))
        )
        now = utcnow()
        return [self.share_dict(share, now) for share in result.scalars().all()]

    async def revoke_share(self, thread_id: str, token: str) -> None:
        share = await self._get_by_token(token)
        if share is None or share.thread_id != thread_id:
            raise ShareNotFoundError()
        try:
            await self.db.delete(share)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to revoke share: {str(e)}") from e
        logger.info(f"Share revoked for thread {thread_id}")

    async def resolve(self, token: str) -> ThreadShare:
        """Live share for ``token``; unknown tokens are 404 and expired ones 410."""
        share = await self._get_by_token(token)
        if share is None:
            raise ShareNotFoundError()
        if share.is_expired():
            raise ShareExpiredError()
        return share

    async def get_shared_thread(self, token: str, gateway: AssistantGateway) -> dict[str, Any]:
        share = await self.resolve(token)
        thread = await ThreadService(self.db).get_thread_or_404(share.thread_id)

        gateway.ensure_configured(require_assistant=False)
        messages = to_messages(await gateway.list_messages(share.thread_id))
        return {"share": self.share_dict(share), "thread": thread, "messages": messages}

    async def authorize_chat(self, token: str, thread_id: str | None) -> ThreadShare:
        """Check that ``token`` lets a visitor post to ``thread_id``."""
        share = await self.resolve(token)
        if share.permissions != SharePermission.COLLABORATE.value:
            raise SharePermissionError("This share link is read-only")
        if thread_id and share.thread_id != thread_id:
            raise SharePermissionError("Share link does not belong to this thread")
        return share

    def share_dict(self, share: ThreadShare, now=None) -> dict[str, Any]:
        return {
            "id": share.id,
            "thread_id": share.thread_id,
            "share_token": share.share_token,
            "permissions": share.permissions,
            "expires_at": share.expires_at,
            "created_at": share.created_at,
            "share_url": build_share_url(share.share_token, self.config.public_base_url),
            "is_expired": share.is_expired(now),
        }

    async def _get_by_token(self, token: str) -> ThreadShare | None:
        result = await self.db.execute(select(ThreadShare).where(ThreadShare.share_token == token))
        return result.scalar_one_or_none()
