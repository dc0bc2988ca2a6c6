"""Notification schemas for request/response serialization."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import Field

from .base import BaseModelSchema, BaseSchema
from .messaging import UserSummary


class NotificationResponse(BaseModelSchema):
    """Schema for notification response."""

    user_id: UUID
    type: str
    title: str
    message: str
    action_url: str | None = None
    related_entity_id: str | None = None
    related_entity_type: str | None = None
    actor_id: UUID | None = None
    is_read: bool
    is_deleted: bool = False
    metadata: dict[str, Any] | None = None
    actor: UserSummary | None = None


class UnreadCountResponse(BaseSchema):
    """Schema for the unread badge counter."""

    count: int = Field(..., ge=0)


class MarkAllReadResponse(BaseSchema):
    """Schema returned by the bulk mark-as-read operation."""

    status: str = "success"
    updated: int = Field(..., ge=0)


NotificationResponse.model_rebuild()
