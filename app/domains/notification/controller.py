"""Notification API controller."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_current_user, get_db, validate_token
from app.domains.notification.service import NotificationService, notification_to_response
from app.schemas.base import ResponseSchema
from app.schemas.notification import MarkAllReadResponse, NotificationResponse, UnreadCountResponse
from models.user import User


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/notifications",
    tags=["notifications"],
    dependencies=[Depends(validate_token)],
)


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    _request: Request,
    limit: int | None = Query(None, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's notifications, newest first."""
    service = NotificationService(db)
    return await service.list_notifications(current_user.id, limit=limit)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    _request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get the number of unread notifications."""
    service = NotificationService(db)
    return UnreadCountResponse(count=await service.unread_count(current_user.id))


@router.put("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    _request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark every notification of the caller read."""
    service = NotificationService(db)
    return MarkAllReadResponse(updated=await service.mark_all_read(current_user.id))


@router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    _request: Request,
    notification_id: UUID = Path(..., description="Notification ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Mark one notification read."""
    service = NotificationService(db)
    notification = await service.mark_read(notification_id, current_user.id)
    return notification_to_response(notification)


@router.delete("/{notification_id}", response_model=ResponseSchema)
async def delete_notification(
    _request: Request,
    notification_id: UUID = Path(..., description="Notification ID"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete one notification."""
    service = NotificationService(db)
    await service.delete_notification(notification_id, current_user.id)
    return ResponseSchema(status="success", message="Notification deleted successfully")
