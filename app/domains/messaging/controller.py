"""Messaging API controller with FastAPI endpoints."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db, validate_token
from app.domains.messaging.service import MessagingService
from app.schemas.base import ResponseSchema
from app.schemas.messaging import (
    ConversationDetailResponse,
    ConversationListItem,
    ConversationResponse,
    DirectConversationCreate,
    GroupConversationCreate,
    MessageCreate,
    MessageResponse,
    MessageUpdate,
    ParticipantAdd,
    ParticipantResponse,
)
from models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/conversations",
    tags=["conversations"],
    dependencies=[Depends(validate_token)],
)

messages_router = APIRouter(
    prefix="/api/messages",
    tags=["messages"],
    dependencies=[Depends(validate_token)],
)


@router.get("", response_model=list[ConversationListItem])
async def list_conversations(
    _request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's conversations, most recently active first."""
    service = MessagingService(db)
    return await service.list_conversations(current_user.id)


@router.get("/search", response_model=list[ConversationListItem])
async def search_conversations(
    _request: Request,
    q: str = Query(..., max_length=255, description="Text to look for in group name or description"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Search the caller's conversations."""
    service = MessagingService(db)
    return await service.search_conversations(current_user.id, q)


@router.post("/direct", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_direct_conversation(
    _request: Request,
    response: Response,
    data: DirectConversationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Open the direct conversation with another member, reusing an existing one."""
    service = MessagingService(db)
    conversation, created = await service.get_or_create_direct_conversation(current_user.id, data.user_id)
    if not created:
        response.status_code = status.HTTP_200_OK
    return ConversationResponse.model_validate(conversation)


@router.post("/group", response_model=ConversationResponse, status_code=status.HTTP_201_CREATED)
async def create_group_conversation(
    _request: Request,
    data: GroupConversationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a group conversation moderated by the caller."""
    service = MessagingService(db)
    conversation = await service.create_group_conversation(current_user.id, data.name, data.description)
    return ConversationResponse.model_validate(conversation)


@router.get("/{conversation_id}", response_model=ConversationDetailResponse)
async def get_conversation(
    _request: Request,
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a conversation with its participants and their read cursors."""
    service = MessagingService(db)
    return await service.get_conversation(conversation_id, current_user.id)


@router.delete("/{conversation_id}", response_model=ResponseSchema)
async def delete_conversation(
    _request: Request,
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate a conversation."""
    service = MessagingService(db)
    await service.delete_conversation(conversation_id, current_user.id)
    return ResponseSchema(status="success", message="Conversation deleted successfully")


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    _request: Request,
    conversation_id: UUID = Path(..., description="Conversation ID"),
    limit: int | None = Query(None, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List visible messages in chronological order."""
    service = MessagingService(db)
    messages = await service.list_messages(conversation_id, current_user.id, limit=limit, offset=offset)
    return [MessageResponse.model_validate(message) for message in messages]


@router.post(
    "/{conversation_id}/messages", response_model=MessageResponse, status_code=status.HTTP_201_CREATED
)
async def send_message(
    _request: Request,
    data: MessageCreate,
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Send a message to a conversation."""
    service = MessagingService(db)
    message = await service.send_message(
        conversation_id,
        current_user.id,
        data.content,
        reply_to_id=data.reply_to_id,
        message_type=data.message_type,
        attachment_url=data.attachment_url,
    )
    return MessageResponse.model_validate(message)


@router.post("/{conversation_id}/read", response_model=ResponseSchema)
async def mark_conversation_read(
    _request: Request,
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark the conversation read for the caller."""
    service = MessagingService(db)
    participant = await service.mark_read(conversation_id, current_user.id)
    return ResponseSchema(
        status="success",
        message="Conversation marked as read",
        data={"last_read_at": participant.last_read_at.isoformat()},
    )


@router.post(
    "/{conversation_id}/participants",
    response_model=ParticipantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_participant(
    _request: Request,
    data: ParticipantAdd,
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Add a member to a group conversation."""
    service = MessagingService(db)
    return await service.add_participant(conversation_id, current_user.id, data.user_id, data.role)


@router.post("/{conversation_id}/leave", response_model=ResponseSchema)
async def leave_conversation(
    _request: Request,
    conversation_id: UUID = Path(..., description="Conversation ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Leave a group conversation."""
    service = MessagingService(db)
    await service.leave_conversation(conversation_id, current_user.id)
    return ResponseSchema(status="success", message="Left conversation successfully")


@messages_router.put("/{message_id}", response_model=MessageResponse)
async def edit_message(
    _request: Request,
    data: MessageUpdate,
    message_id: UUID = Path(..., description="Message ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Edit one of the caller's messages."""
    service = MessagingService(db)
    message = await service.edit_message(message_id, current_user.id, data.content)
    return MessageResponse.model_validate(message)


@messages_router.delete("/{message_id}", response_model=ResponseSchema)
async def delete_message(
    _request: Request,
    message_id: UUID = Path(..., description="Message ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete one of the caller's messages."""
    service = MessagingService(db)
    await service.delete_message(message_id, current_user.id)
    return ResponseSchema(status="success", message="Message deleted successfully")
