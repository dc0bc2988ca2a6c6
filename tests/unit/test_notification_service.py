"""Unit tests for NotificationService and NotificationProducer."""

import uuid

import pytest

from app.core.config import settings
from app.domains.notification.producers import NotificationProducer
from app.domains.notification.service import NotificationService
from app.exceptions.base import ForbiddenError, NotFoundError, ValidationError
from app.schemas.events import EventType
from models import NotificationType

from tests.factories import create_notifications


@pytest.fixture
def service(test_db, broker):
    return NotificationService(test_db, broker)


@pytest.fixture
def producer(service):
    return NotificationProducer(service)


class TestNotify:
    async def test_creates_unread_notification(self, service, test_user, test_user_2):
        notification = await service.notify(
            test_user.id,
            "like",
            "Nova curtida",
            "Bruno curtiu sua publicação",
            action_url="/posts/1",
            related_entity_id="1",
            related_entity_type="post",
            actor_id=test_user_2.id,
            metadata={"post_title": "Evento"},
        )

        assert notification.is_read is False
        assert notification.is_deleted is False
        assert notification.extra == {"post_title": "Evento"}

    async def test_skips_self_notification(self, service, test_user):
        result = await service.notify(test_user.id, "like", "t", "m", actor_id=test_user.id)

        assert result is None
        assert await service.unread_count(test_user.id) == 0

    async def test_requires_title_and_message(self, service, test_user):
        with pytest.raises(ValidationError):
            await service.notify(test_user.id, "like", "", "m")

    async def test_duplicates_allowed_without_dedupe_window(self, service, test_user, test_user_2):
        for _ in range(2):
            await service.notify(
                test_user.id, "like", "t", "m", related_entity_id="p1", actor_id=test_user_2.id
            )

        assert await service.unread_count(test_user.id) == 2

    async def test_dedupe_window_returns_existing(self, service, test_user, test_user_2, monkeypatch):
        monkeypatch.setattr(settings, "notification_dedupe_window_seconds", 60)

        first = await service.notify(
            test_user.id, "like", "t", "m", related_entity_id="p1", actor_id=test_user_2.id
        )
        second = await service.notify(
            test_user.id, "like", "t", "m", related_entity_id="p1", actor_id=test_user_2.id
        )
        other = await service.notify(
            test_user.id, "like", "t", "m", related_entity_id="p2", actor_id=test_user_2.id
        )

        assert second.id == first.id
        assert other.id != first.id
        assert await service.unread_count(test_user.id) == 2

    async def test_publishes_created_event(self, service, broker, test_user):
        subscription = broker.subscribe(test_user.id)

        notification = await service.notify(test_user.id, "welcome", "Bem-vindo", "Olá")

        event = await subscription.get(timeout=1)
        assert event.type == EventType.NOTIFICATION_CREATED
        assert event.payload["id"] == str(notification.id)


class TestInbox:
    async def test_list_newest_first_with_actor(self, service, test_db, test_user, test_user_2):
        created = await create_notifications(test_db, test_user.id, count=3, actor_id=test_user_2.id)

        notifications = await service.list_notifications(test_user.id)

        assert [n.id for n in notifications] == [n.id for n in reversed(created)]
        assert notifications[0].actor.full_name == "Bruno Lima"

    async def test_list_respects_limit(self, service, test_db, test_user):
        await create_notifications(test_db, test_user.id, count=4)

        notifications = await service.list_notifications(test_user.id, limit=2)

        assert len(notifications) == 2

    async def test_list_excludes_deleted_and_other_users(self, service, test_db, test_user, test_user_2):
        mine = await create_notifications(test_db, test_user.id, count=2)
        await create_notifications(test_db, test_user_2.id, count=1)

        await service.delete_notification(mine[0].id, test_user.id)

        notifications = await service.list_notifications(test_user.id)
        assert [n.id for n in notifications] == [mine[1].id]

    async def test_unread_count_round_trip(self, service, test_db, test_user):
        await create_notifications(test_db, test_user.id, count=3)
        assert await service.unread_count(test_user.id) == 3

        updated = await service.mark_all_read(test_user.id)

        assert updated == 3
        assert await service.unread_count(test_user.id) == 0

    async def test_mark_all_read_leaves_other_users_alone(self, service, test_db, test_user, test_user_2):
        await create_notifications(test_db, test_user.id, count=2)
        await create_notifications(test_db, test_user_2.id, count=2)

        await service.mark_all_read(test_user.id)

        assert await service.unread_count(test_user_2.id) == 2

    async def test_mark_read(self, service, test_db, test_user):
        notifications = await create_notifications(test_db, test_user.id, count=2)

        updated = await service.mark_read(notifications[0].id, test_user.id)

        assert updated.is_read is True
        assert await service.unread_count(test_user.id) == 1

    async def test_mark_read_twice_stays_read(self, service, test_db, test_user):
        notification = (await create_notifications(test_db, test_user.id, count=1))[0]

        await service.mark_read(notification.id, test_user.id)
        again = await service.mark_read(notification.id, test_user.id)

        assert again.is_read is True

    async def test_mark_read_of_other_users_notification(self, service, test_db, test_user, test_user_2):
        notification = (await create_notifications(test_db, test_user.id, count=1))[0]

        with pytest.raises(ForbiddenError):
            await service.mark_read(notification.id, test_user_2.id)

    async def test_delete_of_other_users_notification(self, service, test_db, test_user, test_user_2):
        notification = (await create_notifications(test_db, test_user.id, count=1))[0]

        with pytest.raises(ForbiddenError):
            await service.delete_notification(notification.id, test_user_2.id)

    async def test_unknown_notification(self, service, test_user):
        with pytest.raises(NotFoundError):
            await service.mark_read(uuid.uuid4(), test_user.id)

    async def test_deleted_notification_not_found(self, service, test_db, test_user):
        notification = (await create_notifications(test_db, test_user.id, count=1))[0]
        await service.delete_notification(notification.id, test_user.id)

        with pytest.raises(NotFoundError):
            await service.delete_notification(notification.id, test_user.id)


class TestProducer:
    async def test_post_liked(self, producer, test_user, test_user_2):
        notification = await producer.post_liked("post-1", test_user.id, test_user_2.id, "Bruno Lima")

        assert notification.type == NotificationType.LIKE.value
        assert notification.title == "Nova curtida"
        assert notification.message == "Bruno Lima curtiu sua publicação"
        assert notification.action_url == "/posts/post-1"
        assert notification.related_entity_type == "post"

    async def test_post_liked_by_author_is_skipped(self, producer, test_user):
        assert await producer.post_liked("post-1", test_user.id, test_user.id, "Ana") is None

    async def test_comment(self, producer, test_user, test_user_2):
        notification = await producer.post_commented("p", test_user.id, test_user_2.id, "Bruno")

        assert notification.message == "Bruno comentou em sua publicação"

    async def test_connection_flow(self, producer, test_user, test_user_2):
        request = await producer.connection_requested(test_user.id, test_user_2.id, "Bruno")
        accepted = await producer.connection_accepted(test_user_2.id, test_user.id, "Ana")

        assert request.action_url == "/connections/requests"
        assert request.related_entity_id == str(test_user_2.id)
        assert accepted.message == "Ana aceitou sua solicitação de conexão"
        assert accepted.action_url == f"/profile/{test_user.id}"

    async def test_direct_message_text(self, producer, test_user, test_user_2):
        conversation_id = uuid.uuid4()

        notification = await producer.message_received(conversation_id, test_user.id, test_user_2.id, "Bruno")

        assert notification.message == "Bruno enviou uma mensagem"
        assert notification.related_entity_type == "conversation"

    async def test_application_review(self, producer, test_user):
        approved = await producer.application_approved(test_user.id, "Profissional")
        rejected = await producer.application_rejected(test_user.id, "Profissional", "Documentação incompleta")

        assert approved.message == "Sua solicitação de associação ao plano Profissional foi aprovada!"
        assert approved.actor_id is None
        assert rejected.message == (
            "Sua solicitação de associação ao plano Profissional foi rejeitada: Documentação incompleta"
        )

    async def test_mentions(self, producer, test_user, test_user_2):
        in_post = await producer.mentioned(test_user.id, test_user_2.id, "Bruno", "post", "p1", "p1")
        in_comment = await producer.mentioned(test_user.id, test_user_2.id, "Bruno", "comment", "c1", "p1")

        assert in_post.type == NotificationType.POST_MENTION.value
        assert in_comment.type == NotificationType.COMMENT_MENTION.value
        assert in_comment.message == "Bruno mencionou você em um comentário"

    async def test_welcome(self, producer, test_user):
        notification = await producer.welcome(test_user.id)

        assert notification.title == "Bem-vindo à ANETI!"
        assert notification.action_url == "/profile/edit"
