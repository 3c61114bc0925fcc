"""Project schemas for request/response serialization."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field, field_validator

from .base import BaseModelSchema, BaseSchema, RequestSchema

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"


class ProjectBase(RequestSchema):
    """Base project schema with common fields."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    color: str = Field(default="#2563eb", pattern=HEX_COLOR)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate and clean the project name."""
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("Project name cannot be empty or only whitespace")
        return v


class ProjectCreate(ProjectBase):
    """Schema for creating a new project."""


class ProjectUpdate(RequestSchema):
    """Schema for updating a project."""

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    color: str | None = Field(None, pattern=HEX_COLOR)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        """Validate and clean the project name."""
        if v is not None and isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("Project name cannot be empty or only whitespace")
        return v


class ThreadSummary(BaseSchema):
    """Thread as listed under its project."""

    id: str
    title: str
    last_activity: datetime
    message_count: int = 0


class ProjectResponse(BaseModelSchema):
    """Schema for project response."""

    name: str
    description: str | None = None
    color: str
    thread_count: int = 0


class ProjectWithThreads(ProjectResponse):
    """Schema for project with its threads, newest activity first."""

    threads: list[ThreadSummary] = []


class ProjectListResponse(BaseSchema):
    """Schema for project list response."""

    projects: list[ProjectWithThreads]
    total: int
