"""Push channel event schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field

from models.base import utc_now

from .base import BaseSchema


class EventType:
    """Event names published on the push channel."""

    MESSAGE_CREATED = "message.created"
    MESSAGE_UPDATED = "message.updated"
    MESSAGE_DELETED = "message.deleted"
    CONVERSATION_READ = "conversation.read"
    CONVERSATION_DELETED = "conversation.deleted"
    NOTIFICATION_CREATED = "notification.created"


class Event(BaseSchema):
    """A single push event delivered to a subscriber."""

    type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)

    def to_sse(self) -> str:
        """Render the event as a Server-Sent-Events frame."""
        return f"event: {self.type}\ndata: {self.model_dump_json()}\n\n"
