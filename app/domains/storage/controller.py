"""Storage API controller with FastAPI endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_blob_storage, get_db
from app.domains.storage.service import StorageService
from app.schemas.base import ResponseSchema
from app.schemas.storage import CleanupResult, RecalculateResponse, StorageStatsResponse
from app.services.blob_storage import BlobStorageClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/storage", tags=["storage"])


@router.get("/stats", response_model=ResponseSchema)
async def get_storage_stats(db: AsyncSession = Depends(get_db)):
    """Blob storage usage against the configured limit."""
    stats = await StorageService(db).get_stats()

    return ResponseSchema(
        status="success",
        message="Storage statistics retrieved successfully",
        data=StorageStatsResponse.model_validate(stats).model_dump(),
    )


@router.post("/stats/recalculate", response_model=ResponseSchema)
async def recalculate_storage_stats(db: AsyncSession = Depends(get_db)):
    """Rebuild the storage totals from the recorded files."""
    totals = await StorageService(db).recalculate()

    return ResponseSchema(
        status="success",
        message="Storage statistics recalculated",
        data=RecalculateResponse.model_validate(totals).model_dump(),
    )


@router.post("/cleanup", response_model=ResponseSchema)
async def run_storage_cleanup(
    db: AsyncSession = Depends(get_db),
    blob_storage: BlobStorageClient = Depends(get_blob_storage),
):
    """Run one storage cleanup pass now."""
    result = await StorageService(db, blob_storage).run_cleanup()

    return ResponseSchema(
        status="success",
        message=result["message"],
        data=CleanupResult.model_validate(result).model_dump(),
    )
