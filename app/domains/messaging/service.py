"""Messaging service layer: conversations, messages and read cursors."""

import logging
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.domains.events.broker import EventBroker, event_broker
from app.domains.notification.producers import NotificationProducer
from app.domains.notification.service import NotificationService
from app.domains.user.service import UserService
from app.exceptions.messaging import (
    AlreadyParticipantError,
    ConversationNotFoundError,
    ConversationRoleError,
    DirectConversationMembershipError,
    InvalidConversationError,
    InvalidMessageError,
    MessageNotFoundError,
    MessageOwnershipError,
    MessagingLockedError,
    MessagingOperationError,
    NotAParticipantError,
    SelfConversationError,
)
from app.schemas.events import Event, EventType
from app.schemas.messaging import (
    ConversationDetailResponse,
    ConversationListItem,
    ConversationResponse,
    MessageResponse,
    ParticipantResponse,
    UserSummary,
)
from app.shared.read_state import is_unread
from models import (
    Conversation,
    ConversationParticipant,
    ConversationType,
    Message,
    MessageType,
    ParticipantRole,
    User,
    direct_pair_key,
    utc_now,
)


logger = logging.getLogger(__name__)


class MessagingService:
    """Service class for direct and group messaging.

    Every timestamp that orders messages or moves a read cursor is assigned
    here from the server clock.
    """

    def __init__(self, db: AsyncSession, broker: EventBroker | None = None):
        self.db = db
        self.broker = broker or event_broker
        self.users = UserService(db)
        self.notifications = NotificationService(db, self.broker)
        self.producer = NotificationProducer(self.notifications)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def _get_active_conversation(self, conversation_id: UUID) -> Conversation:
        result = await self.db.execute(
            select(Conversation).where(
                and_(Conversation.id == conversation_id, Conversation.is_active.is_(True))
            )
        )
        conversation = result.scalar_one_or_none()
        if conversation is None:
            raise ConversationNotFoundError()
        return conversation

    async def _get_participant(
        self, conversation_id: UUID, user_id: UUID
    ) -> ConversationParticipant | None:
        result = await self.db.execute(
            select(ConversationParticipant).where(
                and_(
                    ConversationParticipant.conversation_id == conversation_id,
                    ConversationParticipant.user_id == user_id,
                )
            )
        )
        return result.scalar_one_or_none()

    async def _require_participant(
        self, conversation_id: UUID, user_id: UUID
    ) -> ConversationParticipant:
        participant = await self._get_participant(conversation_id, user_id)
        if participant is None or not participant.is_active:
            logger.warning(f"User {user_id} is not a participant of conversation {conversation_id}")
            raise NotAParticipantError()
        return participant

    async def _get_live_message(self, message_id: UUID) -> Message:
        result = await self.db.execute(select(Message).where(Message.id == message_id))
        message = result.scalar_one_or_none()
        if message is None or message.is_deleted:
            raise MessageNotFoundError()
        return message

    async def _active_participant_ids(self, conversation_id: UUID) -> list[UUID]:
        result = await self.db.execute(
            select(ConversationParticipant.user_id).where(
                and_(
                    ConversationParticipant.conversation_id == conversation_id,
                    ConversationParticipant.is_active.is_(True),
                )
            )
        )
        return list(result.scalars().all())

    async def _participant_responses(self, conversation_id: UUID) -> list[ParticipantResponse]:
        result = await self.db.execute(
            select(ConversationParticipant, User)
            .join(User, User.id == ConversationParticipant.user_id)
            .where(
                and_(
                    ConversationParticipant.conversation_id == conversation_id,
                    ConversationParticipant.is_active.is_(True),
                )
            )
            .order_by(ConversationParticipant.joined_at)
        )
        return [
            ParticipantResponse(
                id=participant.id,
                created_at=participant.created_at,
                updated_at=participant.updated_at,
                conversation_id=participant.conversation_id,
                user_id=participant.user_id,
                role=participant.role,
                joined_at=participant.joined_at,
                last_read_at=participant.last_read_at,
                is_active=participant.is_active,
                user=UserSummary.model_validate(user),
            )
            for participant, user in result.all()
        ]

    async def _last_message(self, conversation_id: UUID) -> Message | None:
        result = await self.db.execute(
            select(Message)
            .where(and_(Message.conversation_id == conversation_id, Message.is_deleted.is_(False)))
            .order_by(Message.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _require_messaging_plan(self, user: User) -> None:
        if UserService.is_free_tier(user):
            logger.warning(f"Messaging blocked for user {user.id} on plan {user.plan_name!r}")
            raise MessagingLockedError()

    def _publish(self, user_ids, event_type: str, payload: dict) -> None:
        self.broker.publish(user_ids, Event(type=event_type, payload=payload))

    async def _commit(self, action: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to {action}: {str(e)}")
            raise MessagingOperationError(f"Failed to {action}") from e

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def get_or_create_direct_conversation(
        self, initiator_id: UUID, target_user_id: UUID
    ) -> tuple[Conversation, bool]:
        """Return the active direct conversation of the pair, creating it if needed.

        The second element tells whether a new conversation was created.
        """
        if str(initiator_id) == str(target_user_id):
            raise SelfConversationError()

        initiator = await self.users.require_active_user(initiator_id)
        await self._require_messaging_plan(initiator)
        await self.users.require_active_user(target_user_id)

        key = direct_pair_key(initiator_id, target_user_id)
        existing = await self._find_direct(key)
        if existing is not None:
            return existing, False

        now = utc_now()
        conversation = Conversation(
            type=ConversationType.DIRECT,
            created_by=initiator_id,
            direct_key=key,
            last_message_at=now,
            is_active=True,
        )
        try:
            self.db.add(conversation)
            await self.db.flush()
            for user_id in (initiator_id, target_user_id):
                self.db.add(
                    ConversationParticipant(
                        conversation_id=conversation.id,
                        user_id=user_id,
                        role=ParticipantRole.MEMBER,
                        joined_at=now,
                        last_read_at=now,
                    )
                )
            await self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent create of the same pair
            await self.db.rollback()
            existing = await self._find_direct(key)
            if existing is None:
                raise MessagingOperationError("Failed to create direct conversation") from None
            return existing, False
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to create direct conversation: {str(e)}")
            raise MessagingOperationError("Failed to create direct conversation") from e

        await self.db.refresh(conversation)
        logger.info(f"Created direct conversation {conversation.id} between {initiator_id} and {target_user_id}")
        return conversation, True

    async def _find_direct(self, key: str) -> Conversation | None:
        result = await self.db.execute(
            select(Conversation).where(
                and_(
                    Conversation.direct_key == key,
                    Conversation.type == ConversationType.DIRECT,
                    Conversation.is_active.is_(True),
                )
            )
        )
        return result.scalar_one_or_none()

    async def create_direct_conversation(self, initiator_id: UUID, target_user_id: UUID) -> Conversation:
        """Find or create the direct conversation between two users."""
        conversation, _ = await self.get_or_create_direct_conversation(initiator_id, target_user_id)
        return conversation

    async def create_group_conversation(
        self, creator_id: UUID, name: str, description: str | None = None
    ) -> Conversation:
        """Create a group whose only initial participant is its moderator creator."""
        name = (name or "").strip()
        if not name:
            raise InvalidConversationError("Group name is required", field="name")
        if len(name) > settings.group_name_max_length:
            raise InvalidConversationError(
                f"Group name cannot exceed {settings.group_name_max_length} characters", field="name"
            )

        creator = await self.users.require_active_user(creator_id)
        await self._require_messaging_plan(creator)

        now = utc_now()
        conversation = Conversation(
            type=ConversationType.GROUP,
            name=name,
            description=(description or "").strip() or None,
            created_by=creator_id,
            last_message_at=now,
            is_active=True,
        )
        try:
            self.db.add(conversation)
            await self.db.flush()
            self.db.add(
                ConversationParticipant(
                    conversation_id=conversation.id,
                    user_id=creator_id,
                    role=ParticipantRole.MODERATOR,
                    joined_at=now,
                    last_read_at=now,
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to create group conversation: {str(e)}")
            raise MessagingOperationError("Failed to create group conversation") from e

        await self.db.refresh(conversation)
        logger.info(f"Created group conversation {conversation.id} by {creator_id}")
        return conversation

    async def get_conversation(self, conversation_id: UUID, caller_id: UUID) -> ConversationDetailResponse:
        """Conversation with its active participants, visible to participants only."""
        conversation = await self._get_active_conversation(conversation_id)
        participant = await self._get_participant(conversation_id, caller_id)
        if participant is None or not participant.is_active:
            raise ConversationNotFoundError()
        return ConversationDetailResponse(
            **ConversationResponse.model_validate(conversation).model_dump(),
            participants=await self._participant_responses(conversation_id),
        )

    async def list_conversations(self, user_id: UUID, search: str | None = None) -> list[ConversationListItem]:
        """Active conversations of the user, most recently active first.

        Each entry carries its last visible message and whether that message
        is unread for the user.
        """
        query = (
            select(Conversation, ConversationParticipant.last_read_at)
            .join(ConversationParticipant, ConversationParticipant.conversation_id == Conversation.id)
            .where(
                and_(
                    ConversationParticipant.user_id == user_id,
                    ConversationParticipant.is_active.is_(True),
                    Conversation.is_active.is_(True),
                )
            )
        )
        if search:
            pattern = f"%{search}%"
            query = query.where(or_(Conversation.name.ilike(pattern), Conversation.description.ilike(pattern)))
        query = query.order_by(Conversation.last_message_at.desc(), Conversation.created_at.desc())

        result = await self.db.execute(query)
        items = []
        for conversation, last_read_at in result.all():
            last_message = await self._last_message(conversation.id)
            items.append(
                ConversationListItem(
                    **ConversationResponse.model_validate(conversation).model_dump(),
                    participants=await self._participant_responses(conversation.id),
                    last_message=MessageResponse.model_validate(last_message) if last_message else None,
                    unread=last_message is not None and is_unread(last_message.created_at, last_read_at),
                )
            )
        return items

    async def search_conversations(self, user_id: UUID, q: str) -> list[ConversationListItem]:
        """Case-insensitive search on group name and description."""
        q = (q or "").strip()
        if not q:
            raise InvalidConversationError("Search query is required", field="q")
        return await self.list_conversations(user_id, search=q)

    async def delete_conversation(self, conversation_id: UUID, requester_id: UUID) -> None:
        """Deactivate a conversation. Direct conversations also lose their messages."""
        conversation = await self._get_active_conversation(conversation_id)
        await self._require_participant(conversation_id, requester_id)
        recipients = await self._active_participant_ids(conversation_id)

        now = utc_now()
        conversation.is_active = False
        if conversation.type == ConversationType.DIRECT:
            await self.db.execute(
                update(Message)
                .where(and_(Message.conversation_id == conversation_id, Message.is_deleted.is_(False)))
                .values(is_deleted=True, deleted_at=now, updated_at=now)
                .execution_options(synchronize_session=False)
            )
        await self._commit("delete conversation")

        logger.info(f"Conversation {conversation_id} deactivated by {requester_id}")
        self._publish(
            recipients, EventType.CONVERSATION_DELETED, {"conversation_id": str(conversation_id)}
        )

    async def leave_conversation(self, conversation_id: UUID, user_id: UUID) -> None:
        """Leave a group. The group is deactivated once nobody is left."""
        conversation = await self._get_active_conversation(conversation_id)
        if conversation.type == ConversationType.DIRECT:
            raise DirectConversationMembershipError()
        participant = await self._require_participant(conversation_id, user_id)

        participant.is_active = False
        await self.db.flush()
        remaining = await self._active_participant_ids(conversation_id)
        if not remaining:
            conversation.is_active = False
        await self._commit("leave conversation")
        logger.info(f"User {user_id} left conversation {conversation_id}")

    async def add_participant(
        self,
        conversation_id: UUID,
        actor_id: UUID,
        user_id: UUID,
        role: str = ParticipantRole.MEMBER,
    ) -> ParticipantResponse:
        """Add (or re-add) a member to a group. Requires a moderator or admin."""
        conversation = await self._get_active_conversation(conversation_id)
        if conversation.type == ConversationType.DIRECT:
            raise DirectConversationMembershipError()
        actor = await self._require_participant(conversation_id, actor_id)
        if actor.role not in ParticipantRole.MANAGERS:
            raise ConversationRoleError()
        user = await self.users.require_active_user(user_id)

        now = utc_now()
        participant = await self._get_participant(conversation_id, user_id)
        if participant is not None and participant.is_active:
            raise AlreadyParticipantError()
        if participant is None:
            participant = ConversationParticipant(
                conversation_id=conversation_id,
                user_id=user_id,
                role=role,
                joined_at=now,
                last_read_at=now,
            )
            self.db.add(participant)
        else:
            participant.is_active = True
            participant.role = role
            participant.joined_at = now
            participant.last_read_at = max(participant.last_read_at, now)
        await self._commit("add participant")
        await self.db.refresh(participant)

        logger.info(f"User {user_id} added to conversation {conversation_id} by {actor_id}")
        return ParticipantResponse(
            id=participant.id,
            created_at=participant.created_at,
            updated_at=participant.updated_at,
            conversation_id=participant.conversation_id,
            user_id=participant.user_id,
            role=participant.role,
            joined_at=participant.joined_at,
            last_read_at=participant.last_read_at,
            is_active=participant.is_active,
            user=UserSummary.model_validate(user),
        )

    async def mark_read(self, conversation_id: UUID, user_id: UUID) -> ConversationParticipant:
        """Move the caller's read cursor to now. The cursor never moves backwards."""
        await self._get_active_conversation(conversation_id)
        participant = await self._require_participant(conversation_id, user_id)

        now = utc_now()
        if participant.last_read_at is None or now > participant.last_read_at:
            participant.last_read_at = now
            await self._commit("mark conversation read")
            await self.db.refresh(participant)

        recipients = await self._active_participant_ids(conversation_id)
        self._publish(
            [r for r in recipients if str(r) != str(user_id)],
            EventType.CONVERSATION_READ,
            {
                "conversation_id": str(conversation_id),
                "user_id": str(user_id),
                "last_read_at": participant.last_read_at.isoformat(),
            },
        )
        return participant

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def _clean_content(self, content: str | None) -> str:
        content = (content or "").strip()
        if not content:
            raise InvalidMessageError("Message content cannot be empty")
        if len(content) > settings.message_max_length:
            raise InvalidMessageError(
                f"Message content cannot exceed {settings.message_max_length} characters"
            )
        return content

    async def list_messages(
        self,
        conversation_id: UUID,
        caller_id: UUID,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Message]:
        """Visible messages in chronological order.

        ``limit`` and ``offset`` page backwards from the newest message, so
        the default page always holds the latest messages.
        """
        await self._get_active_conversation(conversation_id)
        await self._require_participant(conversation_id, caller_id)

        limit = min(limit or settings.messages_page_size, settings.messages_max_page_size)
        result = await self.db.execute(
            select(Message)
            .where(and_(Message.conversation_id == conversation_id, Message.is_deleted.is_(False)))
            .order_by(Message.created_at.desc(), Message.id.desc())
            .offset(max(offset, 0))
            .limit(limit)
        )
        return list(reversed(result.scalars().all()))

    async def send_message(
        self,
        conversation_id: UUID,
        sender_id: UUID,
        content: str,
        reply_to_id: UUID | None = None,
        message_type: str = MessageType.TEXT,
        attachment_url: str | None = None,
    ) -> Message:
        """Post a message, bump the conversation and notify the other participants."""
        content = self._clean_content(content)
        if message_type not in MessageType.ALL:
            raise InvalidMessageError(f"Unsupported message type: {message_type}", field="message_type")

        sender = await self.users.require_active_user(sender_id)
        conversation = await self._get_active_conversation(conversation_id)
        participant = await self._require_participant(conversation_id, sender_id)
        await self._require_messaging_plan(sender)

        if reply_to_id is not None:
            result = await self.db.execute(select(Message).where(Message.id == reply_to_id))
            replied = result.scalar_one_or_none()
            if replied is None or replied.is_deleted or replied.conversation_id != conversation.id:
                raise InvalidMessageError("Replied message not found in this conversation", field="reply_to_id")

        recipients = await self._active_participant_ids(conversation_id)
        others = [r for r in recipients if str(r) != str(sender_id)]

        now = utc_now()
        message = Message(
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=content,
            message_type=message_type,
            attachment_url=attachment_url,
            reply_to_id=reply_to_id,
            created_at=now,
            updated_at=now,
        )
        notifications = []
        try:
            self.db.add(message)
            conversation.last_message_at = now
            # The sender has seen their own message
            participant.last_read_at = max(participant.last_read_at, now)
            await self.db.flush()
            for recipient_id in others:
                notification = await self.producer.message_received(
                    conversation_id,
                    recipient_id,
                    sender_id,
                    sender.display_name,
                    conversation.name if conversation.type == ConversationType.GROUP else None,
                    commit=False,
                )
                if notification is not None:
                    notifications.append(notification)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to send message in conversation {conversation_id}: {str(e)}")
            raise MessagingOperationError("Failed to send message") from e

        await self.db.refresh(message)
        logger.info(
            f"Message {message.id} sent in conversation {conversation_id}, "
            f"{len(notifications)} notifications fanned out"
        )
        self._publish(
            recipients, EventType.MESSAGE_CREATED, MessageResponse.model_validate(message).model_dump(mode="json")
        )
        self.notifications.publish_created(notifications)
        return message

    async def edit_message(self, message_id: UUID, editor_id: UUID, new_content: str) -> Message:
        """Replace a message's content. Only the sender may edit."""
        message = await self._get_live_message(message_id)
        await self._get_active_conversation(message.conversation_id)
        await self._require_participant(message.conversation_id, editor_id)
        if str(message.sender_id) != str(editor_id):
            logger.warning(f"User {editor_id} attempted to edit message {message_id}")
            raise MessageOwnershipError()
        content = self._clean_content(new_content)

        message.content = content
        message.is_edited = True
        message.edited_at = max(utc_now(), message.created_at)
        await self._commit("edit message")
        await self.db.refresh(message)

        recipients = await self._active_participant_ids(message.conversation_id)
        self._publish(
            recipients, EventType.MESSAGE_UPDATED, MessageResponse.model_validate(message).model_dump(mode="json")
        )
        return message

    async def delete_message(self, message_id: UUID, requester_id: UUID) -> None:
        """Soft-delete a message. Only the sender may delete."""
        message = await self._get_live_message(message_id)
        if str(message.sender_id) != str(requester_id):
            logger.warning(f"User {requester_id} attempted to delete message {message_id}")
            raise MessageOwnershipError()

        message.is_deleted = True
        message.deleted_at = utc_now()
        await self._commit("delete message")

        logger.info(f"Message {message_id} deleted by {requester_id}")
        recipients = await self._active_participant_ids(message.conversation_id)
        self._publish(
            recipients,
            EventType.MESSAGE_DELETED,
            {"id": str(message_id), "conversation_id": str(message.conversation_id)},
        )

