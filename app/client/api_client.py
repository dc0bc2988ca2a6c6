"""Async HTTP client for the messaging and notification endpoints.

Failures come back as the same exception classes the API raises: the
``{"error": {"kind": ...}}`` body is mapped to the matching exception, and
timeouts or connection failures become :class:`TransientError`.
"""

import logging
from typing import Any
from uuid import UUID

import httpx

from app.core.config import settings
from app.exceptions.base import BaseAppException, TransientError, kind_for_status, map_error_kind
from app.schemas.base import ResponseSchema
from app.schemas.messaging import (
    ConversationDetailResponse,
    ConversationListItem,
    ConversationResponse,
    MessageResponse,
    ParticipantResponse,
)
from app.schemas.notification import MarkAllReadResponse, NotificationResponse, UnreadCountResponse
from app.schemas.user import UserResponse

logger = logging.getLogger(__name__)


class MessagingApiClient:
    """Thin typed wrapper over the REST surface for a single authenticated user."""

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            headers=headers,
            timeout=timeout or settings.client_request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "MessagingApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise TransientError("Request timed out", details={"path": path}) from e
        except httpx.TransportError as e:
            raise TransientError("Could not reach the server", details={"path": path}) from e

        if response.is_error:
            raise self._to_exception(response)
        return response.json()

    @staticmethod
    def _to_exception(response: httpx.Response) -> BaseAppException:
        try:
            body = response.json()
        except ValueError:
            body = None

        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            kind = error.get("kind") or kind_for_status(response.status_code)
            message = error.get("message") or response.reason_phrase
            details = error.get("details")
        else:
            kind = kind_for_status(response.status_code)
            message = response.text or response.reason_phrase
            details = None

        if response.status_code >= 500:
            logger.warning(f"Server error {response.status_code}: {message}")
        return map_error_kind(kind, message, details, status_code=response.status_code)

    # Profile

    async def me(self) -> UserResponse:
        return UserResponse.model_validate(await self._request("GET", "/api/auth/me"))

    # Conversations

    async def list_conversations(self) -> list[ConversationListItem]:
        data = await self._request("GET", "/api/conversations")
        return [ConversationListItem.model_validate(item) for item in data]

    async def search_conversations(self, q: str) -> list[ConversationListItem]:
        data = await self._request("GET", "/api/conversations/search", params={"q": q})
        return [ConversationListItem.model_validate(item) for item in data]

    async def get_conversation(self, conversation_id: UUID) -> ConversationDetailResponse:
        data = await self._request("GET", f"/api/conversations/{conversation_id}")
        return ConversationDetailResponse.model_validate(data)

    async def create_direct_conversation(self, user_id: UUID) -> ConversationResponse:
        data = await self._request("POST", "/api/conversations/direct", json={"user_id": str(user_id)})
        return ConversationResponse.model_validate(data)

    async def create_group_conversation(
        self, name: str, description: str | None = None
    ) -> ConversationResponse:
        data = await self._request(
            "POST", "/api/conversations/group", json={"name": name, "description": description}
        )
        return ConversationResponse.model_validate(data)

    async def delete_conversation(self, conversation_id: UUID) -> ResponseSchema:
        data = await self._request("DELETE", f"/api/conversations/{conversation_id}")
        return ResponseSchema.model_validate(data)

    async def mark_read(self, conversation_id: UUID) -> ResponseSchema:
        data = await self._request("POST", f"/api/conversations/{conversation_id}/read")
        return ResponseSchema.model_validate(data)

    async def add_participant(
        self, conversation_id: UUID, user_id: UUID, role: str = "member"
    ) -> ParticipantResponse:
        data = await self._request(
            "POST",
            f"/api/conversations/{conversation_id}/participants",
            json={"user_id": str(user_id), "role": role},
        )
        return ParticipantResponse.model_validate(data)

    async def leave_conversation(self, conversation_id: UUID) -> ResponseSchema:
        data = await self._request("POST", f"/api/conversations/{conversation_id}/leave")
        return ResponseSchema.model_validate(data)

    # Messages

    async def list_messages(
        self, conversation_id: UUID, limit: int | None = None, offset: int = 0
    ) -> list[MessageResponse]:
        params = {"offset": offset}
        if limit is not None:
            params["limit"] = limit
        data = await self._request("GET", f"/api/conversations/{conversation_id}/messages", params=params)
        return [MessageResponse.model_validate(item) for item in data]

    async def send_message(
        self,
        conversation_id: UUID,
        content: str,
        reply_to_id: UUID | None = None,
        message_type: str = "text",
        attachment_url: str | None = None,
    ) -> MessageResponse:
        payload = {"content": content, "message_type": message_type}
        if reply_to_id is not None:
            payload["reply_to_id"] = str(reply_to_id)
        if attachment_url is not None:
            payload["attachment_url"] = attachment_url
        data = await self._request("POST", f"/api/conversations/{conversation_id}/messages", json=payload)
        return MessageResponse.model_validate(data)

    async def edit_message(self, message_id: UUID, content: str) -> MessageResponse:
        data = await self._request("PUT", f"/api/messages/{message_id}", json={"content": content})
        return MessageResponse.model_validate(data)

    async def delete_message(self, message_id: UUID) -> ResponseSchema:
        data = await self._request("DELETE", f"/api/messages/{message_id}")
        return ResponseSchema.model_validate(data)

    # Notifications

    async def list_notifications(self, limit: int | None = None) -> list[NotificationResponse]:
        params = {"limit": limit} if limit is not None else None
        data = await self._request("GET", "/api/notifications", params=params)
        return [NotificationResponse.model_validate(item) for item in data]

    async def unread_count(self) -> int:
        data = await self._request("GET", "/api/notifications/unread-count")
        return UnreadCountResponse.model_validate(data).count

    async def mark_notification_read(self, notification_id: UUID) -> NotificationResponse:
        data = await self._request("PUT", f"/api/notifications/{notification_id}/read")
        return NotificationResponse.model_validate(data)

    async def mark_all_notifications_read(self) -> int:
        data = await self._request("PUT", "/api/notifications/read-all")
        return MarkAllReadResponse.model_validate(data).updated

    async def delete_notification(self, notification_id: UUID) -> ResponseSchema:
        data = await self._request("DELETE", f"/api/notifications/{notification_id}")
        return ResponseSchema.model_validate(data)
