"""Builders for the notifications emitted by domain events.

Texts are the member-facing Portuguese copies shown in the inbox. Every
builder delegates to :meth:`NotificationService.notify`, which drops
self-notifications.
"""

from uuid import UUID

from models import Notification, NotificationType

from .service import NotificationService


class NotificationProducer:
    """Create inbox entries for likes, comments, connections, messages and reviews."""

    def __init__(self, service: NotificationService):
        self.service = service

    async def post_liked(
        self, post_id: str, post_author_id: UUID, liker_id: UUID, liker_name: str
    ) -> Notification | None:
        return await self.service.notify(
            post_author_id,
            NotificationType.LIKE.value,
            "Nova curtida",
            f"{liker_name} curtiu sua publicação",
            action_url=f"/posts/{post_id}",
            related_entity_id=post_id,
            related_entity_type="post",
            actor_id=liker_id,
        )

    async def post_commented(
        self, post_id: str, post_author_id: UUID, commenter_id: UUID, commenter_name: str
    ) -> Notification | None:
        return await self.service.notify(
            post_author_id,
            NotificationType.COMMENT.value,
            "Novo comentário",
            f"{commenter_name} comentou em sua publicação",
            action_url=f"/posts/{post_id}",
            related_entity_id=post_id,
            related_entity_type="post",
            actor_id=commenter_id,
        )

    async def connection_requested(
        self, receiver_id: UUID, requester_id: UUID, requester_name: str
    ) -> Notification | None:
        return await self.service.notify(
            receiver_id,
            NotificationType.CONNECTION_REQUEST.value,
            "Solicitação de conexão",
            f"{requester_name} enviou uma solicitação de conexão",
            action_url="/connections/requests",
            related_entity_id=requester_id,
            related_entity_type="user",
            actor_id=requester_id,
        )

    async def connection_accepted(
        self, requester_id: UUID, accepter_id: UUID, accepter_name: str
    ) -> Notification | None:
        return await self.service.notify(
            requester_id,
            NotificationType.CONNECTION_ACCEPTED.value,
            "Conexão aceita",
            f"{accepter_name} aceitou sua solicitação de conexão",
            action_url=f"/profile/{accepter_id}",
            related_entity_id=accepter_id,
            related_entity_type="user",
            actor_id=accepter_id,
        )

    async def message_received(
        self,
        conversation_id: UUID,
        receiver_id: UUID,
        sender_id: UUID,
        sender_name: str,
        conversation_name: str | None = None,
        commit: bool = True,
    ) -> Notification | None:
        if conversation_name:
            text = f"{sender_name} enviou uma mensagem em {conversation_name}"
        else:
            text = f"{sender_name} enviou uma mensagem"
        return await self.service.notify(
            receiver_id,
            NotificationType.MESSAGE.value,
            "Nova mensagem",
            text,
            action_url=f"/chat/{conversation_id}",
            related_entity_id=conversation_id,
            related_entity_type="conversation",
            actor_id=sender_id,
            commit=commit,
        )

    async def application_approved(self, applicant_id: UUID, plan_name: str) -> Notification | None:
        return await self.service.notify(
            applicant_id,
            NotificationType.APPLICATION_APPROVED.value,
            "Associação aprovada",
            f"Sua solicitação de associação ao plano {plan_name} foi aprovada!",
            action_url="/profile",
            related_entity_type="application",
        )

    async def application_rejected(
        self, applicant_id: UUID, plan_name: str, reason: str | None = None
    ) -> Notification | None:
        text = f"Sua solicitação de associação ao plano {plan_name} foi rejeitada"
        if reason:
            text = f"{text}: {reason}"
        return await self.service.notify(
            applicant_id,
            NotificationType.APPLICATION_REJECTED.value,
            "Associação rejeitada",
            text,
            action_url="/applications",
            related_entity_type="application",
        )

    async def mentioned(
        self,
        mentioned_user_id: UUID,
        mentioner_id: UUID,
        mentioner_name: str,
        content_type: str,
        content_id: str,
        post_id: str,
    ) -> Notification | None:
        """Mention in a post (``content_type="post"``) or a comment."""
        if content_type == "post":
            type = NotificationType.POST_MENTION.value
            text = f"{mentioner_name} mencionou você em uma publicação"
        else:
            type = NotificationType.COMMENT_MENTION.value
            text = f"{mentioner_name} mencionou você em um comentário"
        return await self.service.notify(
            mentioned_user_id,
            type,
            "Você foi mencionado",
            text,
            action_url=f"/posts/{post_id}",
            related_entity_id=content_id,
            related_entity_type=content_type,
            actor_id=mentioner_id,
        )

    async def welcome(self, user_id: UUID) -> Notification | None:
        return await self.service.notify(
            user_id,
            NotificationType.WELCOME.value,
            "Bem-vindo à ANETI!",
            "Seja bem-vindo à Associação Nacional dos Especialistas em TI. "
            "Complete seu perfil para começar a se conectar com outros profissionais.",
            action_url="/profile/edit",
            related_entity_type="system",
        )
