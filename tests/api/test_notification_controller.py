"""
API tests for the notification controller.

Covers listing, the unread badge, marking read (one and all) and deletion,
including the ownership checks on another member's notifications.
"""

import uuid

import pytest
from fastapi import status
from httpx import AsyncClient

from tests.factories import create_notifications


class TestNotificationInbox:
    """Test cases for the notification inbox endpoints."""

    @pytest.mark.asyncio
    async def test_list_newest_first_with_actor(
        self, authenticated_client: AsyncClient, test_db, test_user, test_user_2
    ):
        """Notifications come back newest first with the actor's public profile."""
        created = await create_notifications(test_db, test_user.id, count=3, actor_id=test_user_2.id)

        response = await authenticated_client.get("/api/notifications")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert [n["id"] for n in data] == [str(n.id) for n in reversed(created)]
        assert data[0]["actor"]["full_name"] == "Bruno Lima"

    @pytest.mark.asyncio
    async def test_list_respects_limit(self, authenticated_client: AsyncClient, test_db, test_user):
        await create_notifications(test_db, test_user.id, count=3)

        response = await authenticated_client.get("/api/notifications", params={"limit": 2})

        assert len(response.json()) == 2

    @pytest.mark.asyncio
    async def test_unread_count_and_mark_all(self, authenticated_client: AsyncClient, test_db, test_user):
        await create_notifications(test_db, test_user.id, count=2)
        await create_notifications(test_db, test_user.id, count=1, is_read=True)

        count = await authenticated_client.get("/api/notifications/unread-count")
        assert count.json() == {"count": 2}

        marked = await authenticated_client.put("/api/notifications/read-all")
        assert marked.status_code == status.HTTP_200_OK
        assert marked.json() == {"status": "success", "updated": 2}

        after = await authenticated_client.get("/api/notifications/unread-count")
        assert after.json() == {"count": 0}

    @pytest.mark.asyncio
    async def test_mark_one_read_is_idempotent(self, authenticated_client: AsyncClient, test_db, test_user):
        (notification,) = await create_notifications(test_db, test_user.id, count=1)

        first = await authenticated_client.put(f"/api/notifications/{notification.id}/read")
        second = await authenticated_client.put(f"/api/notifications/{notification.id}/read")

        assert first.status_code == status.HTTP_200_OK
        assert first.json()["is_read"] is True
        assert second.status_code == status.HTTP_200_OK
        assert second.json()["is_read"] is True

    @pytest.mark.asyncio
    async def test_delete_hides_notification(self, authenticated_client: AsyncClient, test_db, test_user):
        (notification,) = await create_notifications(test_db, test_user.id, count=1)

        response = await authenticated_client.delete(f"/api/notifications/{notification.id}")

        assert response.status_code == status.HTTP_200_OK
        assert (await authenticated_client.get("/api/notifications")).json() == []
        assert (await authenticated_client.get("/api/notifications/unread-count")).json() == {"count": 0}

    @pytest.mark.asyncio
    async def test_cannot_touch_another_members_notification(
        self, authenticated_client: AsyncClient, test_db, test_user_2
    ):
        (notification,) = await create_notifications(test_db, test_user_2.id, count=1)

        read = await authenticated_client.put(f"/api/notifications/{notification.id}/read")
        delete = await authenticated_client.delete(f"/api/notifications/{notification.id}")

        assert read.status_code == status.HTTP_403_FORBIDDEN
        assert delete.status_code == status.HTTP_403_FORBIDDEN
        assert read.json()["error"]["kind"] == "forbidden"

    @pytest.mark.asyncio
    async def test_unknown_notification_not_found(self, authenticated_client: AsyncClient):
        response = await authenticated_client.put(f"/api/notifications/{uuid.uuid4()}/read")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"]["kind"] == "not_found"
