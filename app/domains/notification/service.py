"""Notification service layer: the per-user activity inbox."""

import logging
from collections.abc import Iterable
from datetime import timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.domains.events.broker import EventBroker, event_broker
from app.exceptions.notification import (
    InvalidNotificationError,
    NotificationNotFoundError,
    NotificationOwnershipError,
)
from app.schemas.events import Event, EventType
from app.schemas.messaging import UserSummary
from app.schemas.notification import NotificationResponse
from models import Notification, User, utc_now


logger = logging.getLogger(__name__)


def notification_to_response(notification: Notification, actor: User | None = None) -> NotificationResponse:
    """Build the API representation without touching lazy relationships."""
    return NotificationResponse(
        id=notification.id,
        created_at=notification.created_at,
        updated_at=notification.updated_at,
        user_id=notification.user_id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        action_url=notification.action_url,
        related_entity_id=notification.related_entity_id,
        related_entity_type=notification.related_entity_type,
        actor_id=notification.actor_id,
        is_read=notification.is_read,
        is_deleted=notification.is_deleted,
        metadata=notification.extra,
        actor=UserSummary.model_validate(actor) if actor is not None else None,
    )


class NotificationService:
    """Service class for notification operations."""

    def __init__(self, db: AsyncSession, broker: EventBroker | None = None):
        self.db = db
        self.broker = broker or event_broker

    async def notify(
        self,
        user_id: UUID,
        type: str,
        title: str,
        message: str,
        *,
        action_url: str | None = None,
        related_entity_id: Any = None,
        related_entity_type: str | None = None,
        actor_id: UUID | None = None,
        metadata: dict | None = None,
        commit: bool = True,
    ) -> Notification | None:
        """Create one inbox entry for ``user_id``.

        Returns None when the actor is the recipient. With ``commit=False`` the
        row is only flushed so it joins the caller's transaction, and the
        caller is responsible for committing and calling :meth:`publish_created`.
        """
        if not type or not title or not message:
            raise InvalidNotificationError("Notification type, title and message are required")
        if actor_id is not None and str(actor_id) == str(user_id):
            logger.debug(f"Skipping self-notification of type {type} for user {user_id}")
            return None

        related_entity_id = str(related_entity_id) if related_entity_id is not None else None

        existing = await self._find_duplicate(user_id, type, related_entity_id, actor_id)
        if existing is not None:
            logger.debug(f"Deduplicated {type} notification for user {user_id}")
            return existing

        notification = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            action_url=action_url,
            related_entity_id=related_entity_id,
            related_entity_type=related_entity_type,
            actor_id=actor_id,
            extra=metadata,
            is_read=False,
            is_deleted=False,
        )
        try:
            self.db.add(notification)
            if not commit:
                await self.db.flush()
                return notification
            await self.db.commit()
            await self.db.refresh(notification)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to create notification for user {user_id}: {str(e)}")
            raise

        logger.info(f"Created {type} notification {notification.id} for user {user_id}")
        self.publish_created([notification])
        return notification

    async def _find_duplicate(
        self, user_id: UUID, type: str, related_entity_id: str | None, actor_id: UUID | None
    ) -> Notification | None:
        window = settings.notification_dedupe_window_seconds
        if window <= 0:
            return None
        since = utc_now() - timedelta(seconds=window)
        query = select(Notification).where(
            and_(
                Notification.user_id == user_id,
                Notification.type == type,
                Notification.is_deleted.is_(False),
                Notification.created_at >= since,
                Notification.related_entity_id.is_(None)
                if related_entity_id is None
                else Notification.related_entity_id == related_entity_id,
                Notification.actor_id.is_(None) if actor_id is None else Notification.actor_id == actor_id,
            )
        )
        result = await self.db.execute(query.order_by(Notification.created_at.desc()).limit(1))
        return result.scalar_one_or_none()

    def publish_created(self, notifications: Iterable[Notification]) -> None:
        """Push ``notification.created`` events for committed notifications."""
        for notification in notifications:
            event = Event(
                type=EventType.NOTIFICATION_CREATED,
                payload=notification_to_response(notification).model_dump(mode="json"),
            )
            self.broker.publish([notification.user_id], event)

    async def list_notifications(self, user_id: UUID, limit: int | None = None) -> list[NotificationResponse]:
        """Non-deleted notifications of the user, newest first, with actor summaries."""
        limit = limit or settings.notifications_page_size
        query = (
            select(Notification, User)
            .outerjoin(User, User.id == Notification.actor_id)
            .where(and_(Notification.user_id == user_id, Notification.is_deleted.is_(False)))
            .order_by(Notification.created_at.desc())
            .limit(limit)
        )
        result = await self.db.execute(query)
        return [notification_to_response(notification, actor) for notification, actor in result.all()]

    async def unread_count(self, user_id: UUID) -> int:
        """Count unread, non-deleted notifications of the user."""
        query = select(func.count(Notification.id)).where(
            and_(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
                Notification.is_deleted.is_(False),
            )
        )
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def _get_owned(self, notification_id: UUID, user_id: UUID) -> Notification:
        result = await self.db.execute(select(Notification).where(Notification.id == notification_id))
        notification = result.scalar_one_or_none()
        if notification is None or notification.is_deleted:
            raise NotificationNotFoundError()
        if str(notification.user_id) != str(user_id):
            logger.warning(f"User {user_id} attempted to access notification {notification_id}")
            raise NotificationOwnershipError()
        return notification

    async def mark_read(self, notification_id: UUID, user_id: UUID) -> Notification:
        """Mark one notification read. Already-read notifications are left as is."""
        notification = await self._get_owned(notification_id, user_id)
        if notification.is_read:
            return notification
        try:
            notification.is_read = True
            await self.db.commit()
            await self.db.refresh(notification)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to mark notification {notification_id} read: {str(e)}")
            raise
        return notification

    async def mark_all_read(self, user_id: UUID) -> int:
        """Mark every unread notification of the user read in one statement."""
        try:
            result = await self.db.execute(
                update(Notification)
                .where(
                    and_(
                        Notification.user_id == user_id,
                        Notification.is_read.is_(False),
                        Notification.is_deleted.is_(False),
                    )
                )
                .values(is_read=True, updated_at=utc_now())
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to mark all notifications read for user {user_id}: {str(e)}")
            raise
        logger.info(f"Marked {result.rowcount} notifications read for user {user_id}")
        return result.rowcount or 0

    async def delete_notification(self, notification_id: UUID, user_id: UUID) -> None:
        """Soft-delete one notification owned by the user."""
        notification = await self._get_owned(notification_id, user_id)
        try:
            notification.is_deleted = True
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to delete notification {notification_id}: {str(e)}")
            raise
        logger.info(f"Deleted notification {notification_id} for user {user_id}")
