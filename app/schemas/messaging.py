"""Messaging schemas for request/response serialization."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import ConfigDict, Field

from models.conversation import ConversationType

from .base import BaseModelSchema, BaseSchema


class UserSummary(BaseSchema):
    """Public profile fragment embedded in participants and notifications."""

    id: UUID
    username: str | None = None
    full_name: str | None = None


class DirectConversationCreate(BaseSchema):
    """Schema for opening a direct conversation."""

    user_id: UUID = Field(..., description="The other member of the conversation")


class GroupConversationCreate(BaseSchema):
    """Schema for creating a group conversation."""

    name: str = Field(..., min_length=1, max_length=255, description="Group name")
    description: str | None = Field(None, max_length=2000, description="Optional description")


class ParticipantAdd(BaseSchema):
    """Schema for adding a member to a group conversation."""

    user_id: UUID
    role: str = Field(default="member", pattern="^(member|moderator|admin)$")


class MessageCreate(BaseSchema):
    """Schema for sending a message."""

    content: str = Field(..., min_length=1, max_length=50000, description="Message content")
    reply_to_id: UUID | None = Field(None, description="Message being replied to")
    message_type: str = Field(default="text", pattern="^(text|image|file)$")
    attachment_url: str | None = Field(None, max_length=1000)


class MessageUpdate(BaseSchema):
    """Schema for editing a message."""

    content: str = Field(..., min_length=1, max_length=50000, description="New content")


class ParticipantResponse(BaseModelSchema):
    """Schema for a conversation participant with its read cursor."""

    conversation_id: UUID
    user_id: UUID
    role: str
    joined_at: datetime
    last_read_at: datetime
    is_active: bool
    user: UserSummary | None = None


class MessageResponse(BaseModelSchema):
    """Schema for message response."""

    conversation_id: UUID
    sender_id: UUID
    content: str
    message_type: str
    attachment_url: str | None = None
    reply_to_id: UUID | None = None
    is_edited: bool = False
    edited_at: datetime | None = None
    is_deleted: bool = False
    deleted_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ConversationResponse(BaseModelSchema):
    """Schema for conversation response."""

    type: ConversationType
    name: str | None = None
    description: str | None = None
    created_by: UUID
    last_message_at: datetime | None = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class ConversationDetailResponse(ConversationResponse):
    """Conversation with its active participants."""

    participants: list[ParticipantResponse] = Field(default_factory=list)


class ConversationListItem(ConversationDetailResponse):
    """Conversation list entry enriched with the caller's unread state."""

    last_message: MessageResponse | None = None
    unread: bool = False


ConversationDetailResponse.model_rebuild()
ConversationListItem.model_rebuild()
