"""Chat turn orchestration.

One turn posts the user's message to an assistant thread, optionally
augments it with web search results, starts a run, waits for it and returns
the cleaned reply. Run failure and timeout come back as reply text, never as
errors, and a failed search only degrades the turn.
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.domains.share.service import ShareService
from app.domains.thread.service import ThreadService
from app.exceptions.assistant import SearchServiceError, UpstreamError
from app.exceptions.base import ValidationError
from app.schemas.chat import ChatRequest
from app.services.assistant_gateway import (
    CODE_INTERPRETER,
    FILE_SEARCH,
    AssistantGateway,
    extract_text,
    latest_assistant_message,
)
from app.services.run_poller import RunPoller, RunState
from app.services.search_service import (
    SEARCH_RUN_INSTRUCTIONS,
    WebSearchService,
    build_json_format_request,
    build_search_context,
    build_search_failure_note,
    format_sources_block,
)
from app.shared.sanitizer import parse_json_reply, sanitize

logger = logging.getLogger(__name__)

RUN_FAILED_TEXT = "The assistant run failed. Please try again."
RUN_TIMED_OUT_TEXT = "The assistant is taking too long to respond. Please try again."
FETCH_FAILED_TEXT = "Failed to fetch response."

JSON_RESPONSE_FORMAT = {"type": "json_object"}


class ChatService:
    """Service class for chat turns."""

    def __init__(
        self,
        db: AsyncSession,
        gateway: AssistantGateway,
        search: WebSearchService,
        poller: RunPoller,
    ):
        self.db = db
        self.gateway = gateway
        self.search = search
        self.poller = poller

    async def send_message(self, request: ChatRequest) -> dict[str, Any]:
        thread_id = request.thread_id
        if request.share_token:
            share = await ShareService(self.db).authorize_chat(request.share_token, thread_id)
            thread_id = share.thread_id

        self.gateway.ensure_configured()

        if not thread_id:
            thread_id = await self.gateway.create_thread()

        web_search_performed, sources, enhanced_message = await self._augment(request)

        await self.gateway.post_message(thread_id, request.stored_message, attachments=request.file_ids or None)
        if enhanced_message:
            try:
                await self.gateway.post_message(thread_id, enhanced_message)
            except UpstreamError as e:
                logger.error(f"Failed to add context message to thread {thread_id}: {e.message}")

        tools = [CODE_INTERPRETER]
        if request.file_ids or request.web_search_enabled:
            tools.append(FILE_SEARCH)
        run_id = await self.gateway.start_run(
            thread_id,
            tools,
            additional_instructions=SEARCH_RUN_INSTRUCTIONS if web_search_performed else None,
            response_format=JSON_RESPONSE_FORMAT if request.use_json_format else None,
        )

        state = await self.poller.wait(thread_id, run_id)
        reply = await self._reply_for(thread_id, state)

        parsed_response = None
        if request.use_json_format and state is RunState.COMPLETED:
            parsed_response = parse_json_reply(reply)
        json_ok = parsed_response is not None and not (parsed_response.get("metadata") or {}).get(
            "parsing_failed"
        )
        if sources and state is RunState.COMPLETED and not json_ok:
            reply += format_sources_block(sources)

        await self._record_turn(thread_id, request)

        return {
            "reply": reply,
            "thread_id": thread_id,
            "run_state": state.value,
            "web_search_performed": web_search_performed,
            "search_sources": sources,
            "use_json_format": request.use_json_format,
            "parsed_response": parsed_response,
        }

    async def _augment(self, request: ChatRequest) -> tuple[bool, list[dict[str, Any]], str | None]:
        """Search results and the context message to post after the user's message."""
        if request.web_search_enabled:
            if not self.search.is_enabled:
                logger.warning("Web search requested but no search API key is configured")
                return False, [], build_search_failure_note(request.message, request.use_json_format)
            try:
                result = await self.search.search(request.stored_message)
            except SearchServiceError as e:
                logger.warning(f"Web search failed, continuing without results: {e.message}")
                return False, [], build_search_failure_note(request.message, request.use_json_format)
            return True, result.sources, build_search_context(request.message, result, request.use_json_format)

        if request.use_json_format:
            return False, [], build_json_format_request(request.message)
        return False, [], None

    async def _reply_for(self, thread_id: str, state: RunState) -> str:
        if state is RunState.FAILED:
            return RUN_FAILED_TEXT
        if state is RunState.TIMED_OUT:
            return RUN_TIMED_OUT_TEXT

        try:
            raw_messages = await self.gateway.list_messages(thread_id)
        except UpstreamError as e:
            logger.error(f"Failed to fetch reply from thread {thread_id}: {e.message}")
            return FETCH_FAILED_TEXT
        return sanitize(extract_text(latest_assistant_message(raw_messages)))

    async def _record_turn(self, thread_id: str, request: ChatRequest) -> None:
        try:
            await ThreadService(self.db).touch_thread(thread_id, request.stored_message, request.project_id)
        except ValidationError as e:
            logger.error(f"Failed to record chat turn on thread {thread_id}: {e.message}")
