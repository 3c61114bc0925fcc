"""Base schemas for the application."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base schema class with common configuration."""

    model_config = ConfigDict(from_attributes=True)


class RequestSchema(BaseSchema):
    """Request body accepting camelCase keys as well as snake_case."""

    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class BaseModelSchema(BaseSchema):
    """Base schema for database models."""

    id: UUID
    created_at: datetime
    updated_at: datetime


class ResponseSchema(BaseSchema):
    """Standard API response schema."""

    status: str
    message: str | None = None
    data: dict | None = None
