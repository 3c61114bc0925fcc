"""Thread service layer.

The local ``threads`` row is a shadow of a conversation owned by the
assistant service. Its ``message_count`` and legacy ``messages`` columns are
an advisory cache: read paths always fetch messages from the assistant
service and refresh the count, and concurrent writers simply overwrite each
other.
"""

import json
import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.exceptions.assistant import UpstreamError
from app.exceptions.base import NotFoundError, ValidationError
from app.schemas.thread import ThreadSyncRequest, ThreadUpsert
from app.services.assistant_gateway import AssistantGateway, to_messages
from app.shared.pagination import PaginationParams, paginate
from app.shared.sanitizer import count_file_references, safe_clean
from app.shared.titles import (
    DEFAULT_TITLE,
    generate_contextual_title,
    is_generic_title,
    title_from_first_message,
)
from models.base import utcnow
from models.blob_file import BlobFile
from models.project import Project
from models.thread import Thread
from models.thread_share import ThreadShare

logger = logging.getLogger(__name__)

# Messages posted per chat turn: the user message and the assistant reply
MESSAGES_PER_TURN = 2


class ThreadService:
    """Service class for thread business logic."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_thread(self, thread_id: str) -> Thread | None:
        result = await self.db.execute(select(Thread).where(Thread.id == thread_id))
        return result.scalar_one_or_none()

    async def get_thread_or_404(self, thread_id: str) -> Thread:
        thread = await self.get_thread(thread_id)
        if not thread:
            raise NotFoundError("Thread not found")
        return thread

    async def list_threads(
        self, project_id: UUID | None = None, pagination: PaginationParams | None = None
    ) -> dict[str, Any]:
        stmt = select(Thread)
        if project_id:
            stmt = stmt.where(Thread.project_id == project_id)
        stmt = stmt.order_by(desc(Thread.last_activity))
        return await paginate(self.db, stmt, pagination or PaginationParams())

    async def upsert_thread(self, data: ThreadUpsert) -> Thread:
        """Create or overwrite a thread record (last write wins)."""
        if data.project_id:
            await self._ensure_project(data.project_id)

        thread = await self.get_thread(data.id)
        if thread is None:
            thread = Thread(id=data.id, message_count=0)
            self.db.add(thread)

        fields = data.model_fields_set
        if "project_id" in fields:
            thread.project_id = data.project_id
        thread.title = data.title or thread.title or DEFAULT_TITLE
        if data.message_count is not None:
            thread.message_count = data.message_count
        elif data.messages is not None:
            thread.message_count = len(data.messages)
        thread.last_activity = utcnow()

        return await self._commit(thread, "save thread")

    async def touch_thread(
        self,
        thread_id: str,
        first_message: str,
        project_id: UUID | None = None,
    ) -> Thread:
        """Record a completed chat turn on the thread's shadow row."""
        thread = await self.get_thread(thread_id)
        if thread is None:
            if project_id and not await self.db.get(Project, project_id):
                logger.warning(f"Project {project_id} not found, saving thread {thread_id} unassigned")
                project_id = None
            thread = Thread(
                id=thread_id,
                project_id=project_id,
                title=title_from_first_message(first_message),
                message_count=0,
            )
            self.db.add(thread)
        elif project_id and thread.project_id is None:
            thread.project_id = project_id

        thread.message_count = (thread.message_count or 0) + MESSAGES_PER_TURN
        thread.last_activity = utcnow()
        return await self._commit(thread, "update thread")

    async def ensure_shadow(self, thread_id: str, gateway: AssistantGateway) -> Thread:
        """Local record for a thread, creating one if the assistant service knows it."""
        thread = await self.get_thread(thread_id)
        if thread:
            return thread

        gateway.ensure_configured(require_assistant=False)
        try:
            await gateway.retrieve_thread(thread_id)
        except UpstreamError as e:
            if e.upstream_status == 404:
                raise NotFoundError("Thread not found") from e
            raise
        thread = Thread(id=thread_id, title=DEFAULT_TITLE, message_count=0)
        self.db.add(thread)
        return await self._commit(thread, "create thread record")

    async def get_thread_detail(self, thread_id: str, gateway: AssistantGateway) -> dict[str, Any]:
        """Thread record, its project and the messages re-fetched from the assistant service."""
        thread = await self.get_thread(thread_id)
        project = await self.db.get(Project, thread.project_id) if thread and thread.project_id else None

        gateway.ensure_configured(require_assistant=False)
        messages = to_messages(await gateway.list_messages(thread_id))

        if thread and thread.message_count != len(messages):
            thread.message_count = len(messages)
            thread = await self._commit(thread, "refresh thread cache")

        return {"thread": thread, "project": project, "messages": messages}

    async def delete_thread(self, thread_id: str) -> None:
        """Delete the local record and its shares; the assistant-side thread is left alone."""
        await self.get_thread_or_404(thread_id)
        try:
            await self.db.execute(delete(ThreadShare).where(ThreadShare.thread_id == thread_id))
            await self.db.execute(delete(Thread).where(Thread.id == thread_id))
            await self.db.commit()
            logger.info(f"Thread record {thread_id} deleted")
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to delete thread: {str(e)}") from e

    async def get_thread_files(self, thread_id: str) -> list[BlobFile]:
        result = await self.db.execute(
            select(BlobFile).where(BlobFile.thread_id == thread_id).order_by(BlobFile.created_at)
        )
        return list(result.scalars().all())

    async def sync_threads(self, request: ThreadSyncRequest, gateway: AssistantGateway) -> dict[str, Any]:
        """Import assistant threads into a project, generating titles from their messages."""
        await self._ensure_project(request.project_id)
        gateway.ensure_configured(require_assistant=False)

        results: list[dict[str, Any]] = []
        smart_titles = 0

        for thread_id in request.thread_ids:
            existing = await self.get_thread(thread_id)
            if existing:
                if request.generate_smart_titles and is_generic_title(existing.title):
                    try:
                        messages = to_messages(await gateway.list_messages(thread_id))
                    except UpstreamError as e:
                        logger.error(f"Failed to fetch messages for title of {thread_id}: {e.message}")
                        messages = []
                    title = generate_contextual_title(messages) if messages else existing.title
                    if title != existing.title:
                        existing.title = title
                        await self._commit(existing, "update thread title")
                        smart_titles += 1
                        results.append({"thread_id": thread_id, "status": "title_updated", "title": title})
                        continue
                results.append({"thread_id": thread_id, "status": "already_exists"})
                continue

            try:
                await gateway.retrieve_thread(thread_id)
                messages = to_messages(await gateway.list_messages(thread_id))
            except UpstreamError as e:
                logger.error(f"Error syncing thread {thread_id}: {e.message}")
                results.append({"thread_id": thread_id, "status": "error", "error": e.message})
                continue

            if request.generate_smart_titles and messages:
                title = generate_contextual_title(messages)
                smart_titles += 1
            else:
                first_user = next((m for m in messages if m["role"] == "user"), None)
                title = (first_user["content"][:50].strip() if first_user else "") or "Untitled"

            thread = Thread(
                id=thread_id,
                project_id=request.project_id,
                title=title,
                message_count=len(messages),
                last_activity=utcnow(),
            )
            self.db.add(thread)
            try:
                await self.db.commit()
            except SQLAlchemyError as e:
                await self.db.rollback()
                logger.error(f"Failed to save thread {thread_id}: {e}")
                results.append({"thread_id": thread_id, "status": "error", "error": str(e)})
                continue
            logger.info(f"Synced thread {thread_id} with title {title!r}")
            results.append(
                {"thread_id": thread_id, "status": "synced", "title": title, "message_count": len(messages)}
            )

        return {
            "sync_results": results,
            "total_threads": len(request.thread_ids),
            "synced": sum(1 for r in results if r["status"] == "synced"),
            "title_updated": sum(1 for r in results if r["status"] == "title_updated"),
            "smart_titles_generated": smart_titles,
            "errors": sum(1 for r in results if r["status"] == "error"),
        }

    async def cleanup_threads(self) -> dict[str, int]:
        """Strip leaked search scaffold from legacy cached messages.

        A thread is left untouched when its file reference count would change.
        """
        result = await self.db.execute(select(Thread).where(Thread.messages.is_not(None)))
        threads = result.scalars().all()

        processed = cleaned = skipped = files_preserved = 0
        for thread in threads:
            processed += 1
            messages = thread.messages
            if not isinstance(messages, list):
                continue

            original_refs = count_file_references(json.dumps(messages))
            changed = False
            cleaned_messages = []
            for message in messages:
                if isinstance(message, dict) and isinstance(message.get("content"), str):
                    content = safe_clean(message["content"])
                    if content != message["content"]:
                        changed = True
                        message = {**message, "content": content}
                cleaned_messages.append(message)

            if count_file_references(json.dumps(cleaned_messages)) != original_refs:
                logger.error(f"Thread {thread.id} would lose file references, skipping")
                skipped += 1
                continue
            files_preserved += original_refs

            if changed:
                thread.messages = cleaned_messages
                cleaned += 1

        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to save cleaned threads: {str(e)}") from e

        logger.info(f"Cleanup processed {processed} threads, cleaned {cleaned}, skipped {skipped}")
        return {
            "processed": processed,
            "cleaned": cleaned,
            "skipped": skipped,
            "files_preserved": files_preserved,
        }

    # Private helper methods
    async def _ensure_project(self, project_id: UUID) -> Project:
        project = await self.db.get(Project, project_id)
        if not project:
            raise NotFoundError("Project not found")
        return project

    async def _commit(self, thread: Thread, action: str) -> Thread:
        try:
            await self.db.commit()
            await self.db.refresh(thread)
            return thread
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise ValidationError(f"Failed to {action}: {str(e)}") from e
