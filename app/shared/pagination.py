"""Offset pagination for list endpoints."""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.sql import Select

T = TypeVar("T")


class PaginationParams(BaseModel):
    page: int = Field(default=1, ge=1, description="Page number (1-based)")
    size: int = Field(default=50, ge=1, le=200, description="Page size")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.size


class PaginatedResponse(BaseModel, Generic[T]):
    """One page of results plus the paging counters."""

    items: list[T]
    total: int
    page: int
    size: int
    has_next: bool
    has_prev: bool
    total_pages: int


async def paginate(db: AsyncSession, query: Select, pagination: PaginationParams) -> dict[str, Any]:
    """Run ``query`` for one page and count the full result set.

    Returns a dict shaped like ``PaginatedResponse`` with ORM rows as items.
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0
    total_pages = -(-total // pagination.size)

    result = await db.execute(query.offset(pagination.offset).limit(pagination.size))

    return {
        "items": result.scalars().all(),
        "total": total,
        "page": pagination.page,
        "size": pagination.size,
        "has_next": pagination.page < total_pages,
        "has_prev": pagination.page > 1,
        "total_pages": total_pages,
    }
