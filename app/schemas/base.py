"""Base schemas for the application."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema class with common configuration."""
    model_config = ConfigDict(from_attributes=True)


class BaseModelSchema(BaseSchema):
    """Base schema for database models."""
    id: UUID
    created_at: datetime
    updated_at: datetime


class ResponseSchema(BaseSchema):
    """Acknowledgement body for operations that return no resource."""
    status: str
    message: Optional[str] = None
    data: Optional[dict] = None


class ErrorBody(BaseSchema):
    """The ``error`` member of every failure response."""
    kind: str
    message: str
    code: Optional[str] = None
    details: Optional[Any] = None


class ErrorResponse(BaseSchema):
    """Standard failure envelope."""
    status: str = "error"
    error: ErrorBody
    timestamp: datetime
    request_id: Optional[str] = None
