"""Chat API controller with FastAPI endpoints."""

import logging

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_assistant_gateway, get_db, get_run_poller, get_search_service
from app.domains.chat.service import ChatService
from app.schemas.base import ResponseSchema
from app.schemas.chat import ChatRequest, ChatResponse, CopyOption, ExtractRequest
from app.services.assistant_gateway import AssistantGateway
from app.services.run_poller import RunPoller
from app.services.search_service import WebSearchService
from app.shared.extraction import build_copy_options

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("", response_model=ResponseSchema)
async def send_chat_message(
    chat_request: ChatRequest = Body(...),
    db: AsyncSession = Depends(get_db),
    gateway: AssistantGateway = Depends(get_assistant_gateway),
    search: WebSearchService = Depends(get_search_service),
    poller: RunPoller = Depends(get_run_poller),
):
    """Send a message to the assistant and wait for its reply.

    The call blocks until the run finishes or polling gives up. A
    failed or slow run is reported in ``reply``, not as an HTTP error.
    """
    service = ChatService(db, gateway, search, poller)
    result = await service.send_message(chat_request)

    return ResponseSchema(
        status="success",
        message="Message sent successfully",
        data=ChatResponse.model_validate(result).model_dump(),
    )


@router.post("/extract", response_model=ResponseSchema)
async def extract_copy_options(extract_request: ExtractRequest):
    """Split a reply into copyable fragments: tables, code blocks and lists."""
    options = [CopyOption.model_validate(o) for o in build_copy_options(extract_request.content)]

    return ResponseSchema(
        status="success",
        message="Content extracted successfully",
        data={"options": [o.model_dump() for o in options]},
    )
