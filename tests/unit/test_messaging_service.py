"""Unit tests for MessagingService."""

import uuid

import pytest
from sqlalchemy import func, select

from app.domains.messaging.service import MessagingService
from app.exceptions.base import ConflictError, ForbiddenError, LockedError, NotFoundError, ValidationError
from app.exceptions.messaging import (
    AlreadyParticipantError,
    ConversationRoleError,
    DirectConversationMembershipError,
    MessagingLockedError,
    NotAParticipantError,
    SelfConversationError,
)
from app.schemas.events import EventType
from app.shared.read_state import seen_by_all
from models import ConversationType, Message, Notification, ParticipantRole


@pytest.fixture
def service(test_db, broker):
    return MessagingService(test_db, broker)


class TestDirectConversations:
    async def test_create_direct_conversation(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)

        assert conversation.type == ConversationType.DIRECT
        assert conversation.is_active is True
        assert conversation.created_by == test_user.id

        detail = await service.get_conversation(conversation.id, test_user.id)
        assert {p.user_id for p in detail.participants} == {test_user.id, test_user_2.id}

    async def test_direct_conversation_is_unique_per_pair(self, service, test_user, test_user_2):
        first = await service.create_direct_conversation(test_user.id, test_user_2.id)
        second = await service.create_direct_conversation(test_user.id, test_user_2.id)
        inverse = await service.create_direct_conversation(test_user_2.id, test_user.id)

        assert first.id == second.id == inverse.id

    async def test_get_or_create_reports_creation(self, service, test_user, test_user_2):
        _, created = await service.get_or_create_direct_conversation(test_user.id, test_user_2.id)
        _, created_again = await service.get_or_create_direct_conversation(test_user_2.id, test_user.id)

        assert created is True
        assert created_again is False

    async def test_direct_conversation_with_self_conflicts(self, service, test_user):
        with pytest.raises(SelfConversationError) as exc_info:
            await service.create_direct_conversation(test_user.id, test_user.id)
        assert isinstance(exc_info.value, ConflictError)

    async def test_direct_conversation_with_unknown_user(self, service, test_user):
        with pytest.raises(NotFoundError):
            await service.create_direct_conversation(test_user.id, uuid.uuid4())

    async def test_free_tier_cannot_open_direct_conversation(self, service, free_user, test_user):
        with pytest.raises(MessagingLockedError):
            await service.create_direct_conversation(free_user.id, test_user.id)

    async def test_deleted_direct_conversation_is_replaced(self, service, test_user, test_user_2):
        first = await service.create_direct_conversation(test_user.id, test_user_2.id)
        await service.delete_conversation(first.id, test_user.id)

        second = await service.create_direct_conversation(test_user_2.id, test_user.id)

        assert second.id != first.id
        assert second.is_active is True


class TestGroupConversations:
    async def test_create_group_conversation(self, service, test_user):
        group = await service.create_group_conversation(test_user.id, "  Diretoria  ", "Assuntos internos")

        assert group.type == ConversationType.GROUP
        assert group.name == "Diretoria"
        assert group.description == "Assuntos internos"

        detail = await service.get_conversation(group.id, test_user.id)
        assert len(detail.participants) == 1
        assert detail.participants[0].user_id == test_user.id
        assert detail.participants[0].role == ParticipantRole.MODERATOR

    async def test_group_name_required(self, service, test_user):
        with pytest.raises(ValidationError):
            await service.create_group_conversation(test_user.id, "   ")

    async def test_free_tier_cannot_create_group(self, service, free_user):
        with pytest.raises(LockedError):
            await service.create_group_conversation(free_user.id, "Grupo")

    async def test_moderator_adds_participant(self, service, test_user, test_user_2):
        group = await service.create_group_conversation(test_user.id, "Grupo")

        participant = await service.add_participant(group.id, test_user.id, test_user_2.id)

        assert participant.user_id == test_user_2.id
        assert participant.role == ParticipantRole.MEMBER
        assert participant.user.username == "bruno"

    async def test_member_cannot_add_participant(self, service, test_user, test_user_2, test_user_3):
        group = await service.create_group_conversation(test_user.id, "Grupo")
        await service.add_participant(group.id, test_user.id, test_user_2.id)

        with pytest.raises(ConversationRoleError):
            await service.add_participant(group.id, test_user_2.id, test_user_3.id)

    async def test_adding_existing_participant_conflicts(self, service, test_user, test_user_2):
        group = await service.create_group_conversation(test_user.id, "Grupo")
        await service.add_participant(group.id, test_user.id, test_user_2.id)

        with pytest.raises(AlreadyParticipantError):
            await service.add_participant(group.id, test_user.id, test_user_2.id)

    async def test_cannot_add_participant_to_direct(self, service, test_user, test_user_2, test_user_3):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)

        with pytest.raises(DirectConversationMembershipError):
            await service.add_participant(conversation.id, test_user.id, test_user_3.id)

    async def test_leave_and_rejoin_group(self, service, test_user, test_user_2):
        group = await service.create_group_conversation(test_user.id, "Grupo")
        await service.add_participant(group.id, test_user.id, test_user_2.id)

        await service.leave_conversation(group.id, test_user_2.id)
        with pytest.raises(NotAParticipantError):
            await service.list_messages(group.id, test_user_2.id)

        rejoined = await service.add_participant(group.id, test_user.id, test_user_2.id)
        assert rejoined.is_active is True
        messages = await service.list_messages(group.id, test_user_2.id)
        assert messages == []

    async def test_last_member_leaving_deactivates_group(self, service, test_user):
        group = await service.create_group_conversation(test_user.id, "Grupo")

        await service.leave_conversation(group.id, test_user.id)

        assert await service.list_conversations(test_user.id) == []

    async def test_cannot_leave_direct_conversation(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)

        with pytest.raises(DirectConversationMembershipError):
            await service.leave_conversation(conversation.id, test_user.id)


class TestSendMessage:
    async def test_direct_messaging_round_trip(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)

        await service.send_message(conversation.id, test_user.id, "Olá")

        for_b = await service.list_conversations(test_user_2.id)
        for_a = await service.list_conversations(test_user.id)
        assert len(for_b) == 1
        assert for_b[0].last_message.content == "Olá"
        assert for_b[0].unread is True
        assert for_a[0].unread is False

    async def test_content_is_trimmed(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)

        message = await service.send_message(conversation.id, test_user.id, "  bom dia  ")

        assert message.content == "bom dia"

    @pytest.mark.parametrize("content", ["", "   ", "\n\t"])
    async def test_empty_content_rejected(self, service, test_user, test_user_2, content):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)

        with pytest.raises(ValidationError):
            await service.send_message(conversation.id, test_user.id, content)

    async def test_non_participant_forbidden(self, service, test_user, test_user_2, test_user_3):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)

        with pytest.raises(ForbiddenError):
            await service.send_message(conversation.id, test_user_3.id, "intruso")

    async def test_free_tier_send_is_locked_and_creates_nothing(self, service, test_db, test_user, free_user):
        conversation = await service.create_direct_conversation(test_user.id, free_user.id)

        with pytest.raises(LockedError) as exc_info:
            await service.send_message(conversation.id, free_user.id, "Olá")

        assert exc_info.value.status_code == 403
        assert exc_info.value.details["reason"] == "plan_tier"
        count = await test_db.execute(select(func.count(Message.id)))
        assert count.scalar() == 0

    async def test_updates_last_message_at(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)

        message = await service.send_message(conversation.id, test_user.id, "Olá")

        detail = await service.get_conversation(conversation.id, test_user.id)
        assert detail.last_message_at == message.created_at

    async def test_notifies_other_participants(self, service, test_db, test_user, test_user_2, test_user_3):
        group = await service.create_group_conversation(test_user.id, "Comitê")
        await service.add_participant(group.id, test_user.id, test_user_2.id)
        await service.add_participant(group.id, test_user.id, test_user_3.id)

        await service.send_message(group.id, test_user.id, "Reunião amanhã")

        result = await test_db.execute(select(Notification).order_by(Notification.created_at))
        notifications = result.scalars().all()
        assert {n.user_id for n in notifications} == {test_user_2.id, test_user_3.id}
        for notification in notifications:
            assert notification.type == "message"
            assert notification.title == "Nova mensagem"
            assert notification.message == "Ana Souza enviou uma mensagem em Comitê"
            assert notification.action_url == f"/chat/{group.id}"
            assert notification.actor_id == test_user.id

    async def test_publishes_events(self, service, broker, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)
        subscription = broker.subscribe(test_user_2.id)

        message = await service.send_message(conversation.id, test_user.id, "Olá")

        first = await subscription.get(timeout=1)
        second = await subscription.get(timeout=1)
        assert first.type == EventType.MESSAGE_CREATED
        assert first.payload["id"] == str(message.id)
        assert second.type == EventType.NOTIFICATION_CREATED

    async def test_reply_must_belong_to_conversation(self, service, test_user, test_user_2, test_user_3):
        first = await service.create_direct_conversation(test_user.id, test_user_2.id)
        other = await service.create_direct_conversation(test_user.id, test_user_3.id)
        elsewhere = await service.send_message(other.id, test_user.id, "outro assunto")

        with pytest.raises(ValidationError):
            await service.send_message(first.id, test_user.id, "resposta", reply_to_id=elsewhere.id)

        original = await service.send_message(first.id, test_user_2.id, "pergunta")
        reply = await service.send_message(first.id, test_user.id, "resposta", reply_to_id=original.id)
        assert reply.reply_to_id == original.id

    async def test_inactive_conversation_not_found(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)
        await service.delete_conversation(conversation.id, test_user_2.id)

        with pytest.raises(NotFoundError):
            await service.send_message(conversation.id, test_user.id, "Olá")


class TestListMessages:
    async def test_chronological_order(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)
        for i in range(5):
            sender = test_user if i % 2 == 0 else test_user_2
            await service.send_message(conversation.id, sender.id, f"mensagem {i}")

        messages = await service.list_messages(conversation.id, test_user.id)

        assert [m.content for m in messages] == [f"mensagem {i}" for i in range(5)]
        for earlier, later in zip(messages, messages[1:]):
            assert earlier.created_at <= later.created_at

    async def test_limit_returns_latest_page(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)
        for i in range(5):
            await service.send_message(conversation.id, test_user.id, f"mensagem {i}")

        latest = await service.list_messages(conversation.id, test_user.id, limit=2)
        older = await service.list_messages(conversation.id, test_user.id, limit=2, offset=2)

        assert [m.content for m in latest] == ["mensagem 3", "mensagem 4"]
        assert [m.content for m in older] == ["mensagem 1", "mensagem 2"]

    async def test_non_participant_forbidden(self, service, test_user, test_user_2, test_user_3):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)

        with pytest.raises(NotAParticipantError):
            await service.list_messages(conversation.id, test_user_3.id)


class TestEditAndDeleteMessage:
    async def test_edit_preserves_created_at(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)
        message = await service.send_message(conversation.id, test_user.id, "Olá")
        created_at = message.created_at

        edited = await service.edit_message(message.id, test_user.id, "Olá, tudo bem?")

        assert edited.content == "Olá, tudo bem?"
        assert edited.is_edited is True
        assert edited.created_at == created_at
        assert edited.edited_at >= created_at

    async def test_only_sender_can_edit(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)
        message = await service.send_message(conversation.id, test_user.id, "Olá")

        with pytest.raises(ForbiddenError):
            await service.edit_message(message.id, test_user_2.id, "alterado")

    async def test_member_who_left_cannot_edit(self, service, test_user, test_user_2):
        group = await service.create_group_conversation(test_user.id, "Turma ANETI")
        await service.add_participant(group.id, test_user.id, test_user_2.id)
        message = await service.send_message(group.id, test_user_2.id, "Olá")
        await service.leave_conversation(group.id, test_user_2.id)

        with pytest.raises(NotAParticipantError):
            await service.edit_message(message.id, test_user_2.id, "alterado")

    async def test_message_in_deleted_group_cannot_be_edited(self, service, test_user, test_user_2):
        group = await service.create_group_conversation(test_user.id, "Turma ANETI")
        await service.add_participant(group.id, test_user.id, test_user_2.id)
        message = await service.send_message(group.id, test_user.id, "Olá")
        await service.delete_conversation(group.id, test_user.id)

        with pytest.raises(NotFoundError):
            await service.edit_message(message.id, test_user.id, "alterado")

    async def test_delete_hides_message_for_everyone(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)
        kept = await service.send_message(conversation.id, test_user.id, "fica")
        removed = await service.send_message(conversation.id, test_user.id, "sai")

        await service.delete_message(removed.id, test_user.id)

        for user in (test_user, test_user_2):
            messages = await service.list_messages(conversation.id, user.id)
            assert [m.id for m in messages] == [kept.id]

    async def test_only_sender_can_delete(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)
        message = await service.send_message(conversation.id, test_user.id, "Olá")

        with pytest.raises(ForbiddenError):
            await service.delete_message(message.id, test_user_2.id)

    async def test_deleted_message_cannot_be_edited(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)
        message = await service.send_message(conversation.id, test_user.id, "Olá")
        await service.delete_message(message.id, test_user.id)

        with pytest.raises(NotFoundError):
            await service.edit_message(message.id, test_user.id, "de volta")

    async def test_last_message_skips_deleted(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)
        await service.send_message(conversation.id, test_user.id, "primeira")
        second = await service.send_message(conversation.id, test_user.id, "segunda")

        await service.delete_message(second.id, test_user.id)

        conversations = await service.list_conversations(test_user_2.id)
        assert conversations[0].last_message.content == "primeira"


class TestReadState:
    async def test_mark_read_clears_unread_until_next_message(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)
        await service.send_message(conversation.id, test_user.id, "Olá")

        await service.mark_read(conversation.id, test_user_2.id)
        assert (await service.list_conversations(test_user_2.id))[0].unread is False

        await service.send_message(conversation.id, test_user.id, "Ainda aí?")
        assert (await service.list_conversations(test_user_2.id))[0].unread is True

    async def test_mark_read_is_monotonic(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)

        first = await service.mark_read(conversation.id, test_user_2.id)
        first_cursor = first.last_read_at
        second = await service.mark_read(conversation.id, test_user_2.id)

        assert second.last_read_at >= first_cursor

    async def test_mark_read_requires_participant(self, service, test_user, test_user_2, test_user_3):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)

        with pytest.raises(ForbiddenError):
            await service.mark_read(conversation.id, test_user_3.id)

    async def test_read_receipt_after_mark_read(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)
        message = await service.send_message(conversation.id, test_user.id, "Olá")

        before = await service.get_conversation(conversation.id, test_user.id)
        assert seen_by_all(message, before.participants) is False

        await service.mark_read(conversation.id, test_user_2.id)

        after = await service.get_conversation(conversation.id, test_user.id)
        assert seen_by_all(message, after.participants) is True


class TestListAndSearchConversations:
    async def test_ordered_by_last_message(self, service, test_user, test_user_2, test_user_3):
        with_b = await service.create_direct_conversation(test_user.id, test_user_2.id)
        with_c = await service.create_direct_conversation(test_user.id, test_user_3.id)

        await service.send_message(with_c.id, test_user.id, "para C")
        await service.send_message(with_b.id, test_user.id, "para B")

        conversations = await service.list_conversations(test_user.id)
        assert [c.id for c in conversations] == [with_b.id, with_c.id]

    async def test_deleted_conversation_hidden(self, service, test_user, test_user_2):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)
        await service.send_message(conversation.id, test_user.id, "Olá")

        await service.delete_conversation(conversation.id, test_user_2.id)

        assert await service.list_conversations(test_user.id) == []
        assert await service.list_conversations(test_user_2.id) == []

    async def test_non_participant_cannot_delete(self, service, test_user, test_user_2, test_user_3):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)

        with pytest.raises(ForbiddenError):
            await service.delete_conversation(conversation.id, test_user_3.id)

    async def test_get_conversation_hidden_from_outsiders(self, service, test_user, test_user_2, test_user_3):
        conversation = await service.create_direct_conversation(test_user.id, test_user_2.id)

        with pytest.raises(NotFoundError):
            await service.get_conversation(conversation.id, test_user_3.id)

    async def test_search_matches_name_case_insensitively(self, service, test_user):
        await service.create_group_conversation(test_user.id, "Comitê de Eventos")
        await service.create_group_conversation(test_user.id, "Diretoria", "Planejamento anual")

        by_name = await service.search_conversations(test_user.id, "eventos")
        by_description = await service.search_conversations(test_user.id, "planejamento")

        assert [c.name for c in by_name] == ["Comitê de Eventos"]
        assert [c.name for c in by_description] == ["Diretoria"]

    async def test_search_requires_query(self, service, test_user):
        with pytest.raises(ValidationError):
            await service.search_conversations(test_user.id, "  ")
