"""Share API controller with FastAPI endpoints."""

import logging

from fastapi import APIRouter, Body, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_assistant_gateway, get_db
from app.domains.share.service import ShareService
from app.schemas.base import ResponseSchema
from app.schemas.share import ShareCreate, SharedThreadResponse, ShareResponse
from app.services.assistant_gateway import AssistantGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["shares"])


@router.post("/threads/{thread_id}/shares", response_model=ResponseSchema, status_code=201)
async def create_share(
    thread_id: str = Path(..., description="Thread ID"),
    share_data: ShareCreate | None = Body(None),
    db: AsyncSession = Depends(get_db),
    gateway: AssistantGateway = Depends(get_assistant_gateway),
):
    """Create a share link for a thread."""
    share = await ShareService(db).create_share(thread_id, share_data or ShareCreate(), gateway)

    return ResponseSchema(
        status="success",
        message="Share link created successfully",
        data=ShareResponse.model_validate(share).model_dump(),
    )


@router.get("/threads/{thread_id}/shares", response_model=ResponseSchema)
async def list_shares(
    thread_id: str = Path(..., description="Thread ID"),
    db: AsyncSession = Depends(get_db),
):
    """List a thread's share links, expired ones included."""
    shares = await ShareService(db).list_shares(thread_id)

    return ResponseSchema(
        status="success",
        message="Share links retrieved successfully",
        data={"shares": [ShareResponse.model_validate(s).model_dump() for s in shares], "total": len(shares)},
    )


@router.delete("/threads/{thread_id}/shares", response_model=ResponseSchema)
async def revoke_share(
    thread_id: str = Path(..., description="Thread ID"),
    token: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    """Revoke a share link."""
    await ShareService(db).revoke_share(thread_id, token)

    return ResponseSchema(status="success", message="Share link revoked successfully", data=None)


@router.get("/shared/thread/{token}", response_model=ResponseSchema)
async def get_shared_thread(
    token: str = Path(..., description="Share token"),
    db: AsyncSession = Depends(get_db),
    gateway: AssistantGateway = Depends(get_assistant_gateway),
):
    """Read a shared thread. Unknown tokens are 404, expired ones 410."""
    shared = await ShareService(db).get_shared_thread(token, gateway)

    return ResponseSchema(
        status="success",
        message="Shared thread retrieved successfully",
        data=SharedThreadResponse.model_validate(shared).model_dump(),
    )
