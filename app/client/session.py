"""Client-side messaging session: polling surfaces plus guarded mutations."""

import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

from app.core.config import settings
from app.exceptions.base import BaseAppException
from app.schemas.messaging import ConversationListItem, MessageResponse, ParticipantResponse
from app.schemas.notification import NotificationResponse
from app.shared.read_state import seen_by_all
from models.notification import NotificationType

from .alerts import AlertSink, LoggingAlertSink, raise_alert
from .api_client import MessagingApiClient
from .polling import PollingSurface, SnapshotDeltaDetector

logger = logging.getLogger(__name__)

MESSAGE_ALERT_TITLE = "ANETI - Nova Mensagem"
NOTIFICATION_ALERT_TITLE = "ANETI - Nova Notificação"


def _item_id(item) -> str:
    return str(item.id)


class MessagingClientSession:
    """Keeps the conversation list, active conversation and badges fresh.

    Four surfaces run on their own timers: the conversation list, the
    messages of the active conversation (only while one is active), the
    message bell (unread ``message`` notifications) and the notification
    count. User mutations go through a pending guard: while one is in flight
    further mutations are rejected, and failures are handed to ``on_toast``
    without touching local state.
    """

    def __init__(
        self,
        api: MessagingApiClient,
        user_id: UUID | None = None,
        alert_sink: AlertSink | None = None,
        on_toast: Callable[[BaseAppException], Any] | None = None,
    ):
        self.api = api
        self.user_id = user_id
        self.alert_sink = alert_sink or LoggingAlertSink()
        self.on_toast = on_toast

        self.conversations: list[ConversationListItem] = []
        self.messages: list[MessageResponse] = []
        self.participants: list[ParticipantResponse] = []
        self.unread_messages: list[NotificationResponse] = []
        self.unread_count = 0
        self.active_conversation_id: UUID | None = None
        self.pending = False

        self.conversation_list = PollingSurface(
            "conversation-list",
            self.api.list_conversations,
            settings.poll_conversations_interval,
            on_update=self._set_conversations,
        )
        self.message_bell = PollingSurface(
            "message-bell",
            self._fetch_unread_messages,
            settings.poll_message_bell_interval,
            detector=SnapshotDeltaDetector(key=_item_id),
            on_update=self._set_unread_messages,
            on_new_items=self._alert_new_message_notifications,
        )
        self.notification_count = PollingSurface(
            "notification-count",
            self.api.unread_count,
            settings.poll_notification_count_interval,
            detector=SnapshotDeltaDetector(size=int),
            on_update=self._set_unread_count,
            on_new_items=self._alert_new_notifications,
        )
        self.active_messages: PollingSurface | None = None

    # Reconciliation callbacks

    def _set_conversations(self, conversations: list[ConversationListItem]) -> None:
        self.conversations = conversations

    def _set_unread_messages(self, notifications: list[NotificationResponse]) -> None:
        self.unread_messages = notifications

    def _set_unread_count(self, count: int) -> None:
        self.unread_count = count

    def _set_messages(self, messages: list[MessageResponse]) -> None:
        self.messages = messages

    async def _fetch_unread_messages(self) -> list[NotificationResponse]:
        notifications = await self.api.list_notifications()
        return [n for n in notifications if n.type == NotificationType.MESSAGE.value and not n.is_read]

    async def _fetch_active_conversation(self) -> list[MessageResponse]:
        conversation_id = self.active_conversation_id
        detail = await self.api.get_conversation(conversation_id)
        messages = await self.api.list_messages(conversation_id)
        self.participants = detail.participants
        return messages

    def _alert_new_message_notifications(self, notifications: list[NotificationResponse]) -> None:
        latest = notifications[0]
        raise_alert(self.alert_sink, MESSAGE_ALERT_TITLE, latest.message, tooltip=latest.message)

    def _alert_new_notifications(self, count: int) -> None:
        raise_alert(
            self.alert_sink,
            NOTIFICATION_ALERT_TITLE,
            f"Você tem {count} notificações não lidas",
        )

    def _alert_new_messages(self, messages: list[MessageResponse]) -> None:
        latest = messages[-1]
        if self.user_id is not None and str(latest.sender_id) == str(self.user_id):
            return
        raise_alert(self.alert_sink, MESSAGE_ALERT_TITLE, latest.content)

    # Lifecycle

    def start(self) -> None:
        self.conversation_list.start()
        self.message_bell.start()
        self.notification_count.start()

    async def stop(self) -> None:
        await self.deactivate_conversation()
        for surface in (self.conversation_list, self.message_bell, self.notification_count):
            await surface.stop()

    async def activate_conversation(self, conversation_id: UUID) -> None:
        """Open a conversation: start its 2s loop and mark it read."""
        if self.active_conversation_id == conversation_id and self.active_messages is not None:
            return
        await self.deactivate_conversation()

        self.active_conversation_id = conversation_id
        self.active_messages = PollingSurface(
            f"messages-{conversation_id}",
            self._fetch_active_conversation,
            settings.poll_messages_interval,
            detector=SnapshotDeltaDetector(key=_item_id),
            on_update=self._set_messages,
            on_new_items=self._alert_new_messages,
        )
        self.active_messages.start()
        try:
            await self.api.mark_read(conversation_id)
        except BaseAppException as e:
            logger.warning(f"Could not mark conversation {conversation_id} read: {e}")

    async def deactivate_conversation(self) -> None:
        """Close the active conversation and cancel its loop."""
        if self.active_messages is not None:
            await self.active_messages.stop()
        self.active_messages = None
        self.active_conversation_id = None
        self.messages = []
        self.participants = []

    # Read receipts

    def seen_by_all(self, message: MessageResponse) -> bool:
        """Double-check state of a message in the active conversation."""
        return seen_by_all(message, self.participants)

    # Mutations

    async def _mutate(self, label: str, operation: Callable[[], Awaitable[Any]]) -> Any:
        if self.pending:
            logger.debug(f"Rejected {label}: another action is in flight")
            return None
        self.pending = True
        try:
            return await operation()
        except BaseAppException as e:
            logger.warning(f"{label} failed: {e}")
            if self.on_toast is not None:
                self.on_toast(e)
            return None
        finally:
            self.pending = False

    async def send_message(self, content: str) -> MessageResponse | None:
        """Send to the active conversation, then refresh its messages."""
        conversation_id = self.active_conversation_id
        if conversation_id is None:
            return None
        message = await self._mutate("send message", lambda: self.api.send_message(conversation_id, content))
        if message is not None and self.active_messages is not None:
            await self.active_messages.poll_once()
        return message

    async def edit_message(self, message_id: UUID, content: str) -> MessageResponse | None:
        return await self._mutate("edit message", lambda: self.api.edit_message(message_id, content))

    async def delete_message(self, message_id: UUID) -> bool:
        result = await self._mutate("delete message", lambda: self.api.delete_message(message_id))
        if result is None:
            return False
        self.messages = [m for m in self.messages if m.id != message_id]
        return True

    async def open_direct_conversation(self, user_id: UUID) -> UUID | None:
        """Find or create the direct conversation with ``user_id`` and activate it."""
        conversation = await self._mutate(
            "open conversation", lambda: self.api.create_direct_conversation(user_id)
        )
        if conversation is None:
            return None
        await self.activate_conversation(conversation.id)
        return conversation.id

    async def create_group(self, name: str, description: str | None = None) -> UUID | None:
        conversation = await self._mutate(
            "create group", lambda: self.api.create_group_conversation(name, description)
        )
        return conversation.id if conversation is not None else None

    async def delete_conversation(self, conversation_id: UUID) -> bool:
        result = await self._mutate(
            "delete conversation", lambda: self.api.delete_conversation(conversation_id)
        )
        if result is None:
            return False
        if self.active_conversation_id == conversation_id:
            await self.deactivate_conversation()
        self.conversations = [c for c in self.conversations if c.id != conversation_id]
        return True
