"""
Unit tests for Main Application module.

Covers application creation, the request-id middleware, the error envelope
rendered by the global exception handlers, and the health/root endpoints.
"""

from unittest.mock import patch

import pytest
from fastapi import status
from httpx import ASGITransport, AsyncClient

from app.exceptions.messaging import MessagingLockedError
from app.main import app, create_app


class TestAppCreation:
    """Test cases for FastAPI application creation."""

    def test_create_app_uses_settings(self):
        """The application is titled and versioned from settings."""
        test_app = create_app()

        assert test_app.title == "ANETI Messaging API"
        assert test_app.version == "1.0.0"

    def test_docs_disabled_outside_development(self):
        """Docs are only served in development."""
        with patch("app.main.settings") as mock_settings:
            mock_settings.environment = "production"
            mock_settings.app_name = "ANETI Messaging API"
            mock_settings.version = "1.0.0"
            mock_settings.allowed_origins_list = []

            test_app = create_app()

        assert test_app.docs_url is None
        assert test_app.redoc_url is None

    def test_all_domain_routers_are_mounted(self):
        """Every domain router is reachable from the app."""
        paths = set(app.openapi()["paths"])

        assert "/api/auth/me" in paths
        assert "/api/conversations" in paths
        assert "/api/conversations/{conversation_id}/messages" in paths
        assert "/api/messages/{message_id}" in paths
        assert "/api/notifications/unread-count" in paths
        assert "/api/events/stream" in paths


class TestMiddleware:
    """Test cases for application middleware."""

    @pytest.mark.asyncio
    async def test_request_id_header(self, client: AsyncClient):
        """Every response carries a fresh request id."""
        first = await client.get("/")
        second = await client.get("/")

        assert first.headers["X-Request-ID"]
        assert first.headers["X-Request-ID"] != second.headers["X-Request-ID"]


class TestErrorEnvelope:
    """Failures share the ``{"status": "error", "error": {...}}`` envelope."""

    @pytest.mark.asyncio
    async def test_unknown_route_is_not_found(self, client: AsyncClient):
        response = await client.get("/api/does-not-exist")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        body = response.json()
        assert body["status"] == "error"
        assert body["error"]["kind"] == "not_found"
        assert body["request_id"] == response.headers["X-Request-ID"]
        assert "timestamp" in body

    @pytest.mark.asyncio
    async def test_request_validation_lists_errors(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get("/api/conversations/not-a-uuid")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        error = response.json()["error"]
        assert error["kind"] == "validation"
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"][0]["loc"][-1] == "conversation_id"

    @pytest.mark.asyncio
    async def test_application_exception_keeps_kind_and_details(self):
        test_app = create_app()

        @test_app.get("/locked")
        async def locked():
            raise MessagingLockedError()

        async with AsyncClient(transport=ASGITransport(app=test_app), base_url="http://test") as ac:
            response = await ac.get("/locked")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        error = response.json()["error"]
        assert error["kind"] == "locked"
        assert error["details"]["reason"] == "plan_tier"

    @pytest.mark.asyncio
    async def test_unhandled_exception_is_internal(self):
        test_app = create_app()

        @test_app.get("/boom")
        async def boom():
            raise RuntimeError("kaboom")

        transport = ASGITransport(app=test_app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/boom")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        error = response.json()["error"]
        assert error["kind"] == "internal"
        assert "kaboom" not in error["message"]

    @pytest.mark.asyncio
    async def test_missing_token_is_rejected(self, client: AsyncClient):
        response = await client.get("/api/conversations")

        assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)
        assert response.json()["status"] == "error"


class TestHealthAndRoot:
    """Test cases for the health and root endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["services"]["database"] == "healthy"

    @pytest.mark.asyncio
    async def test_health_check_database_down(self, client: AsyncClient):
        with patch("app.main.AsyncSessionLocal", side_effect=RuntimeError("db down")):
            response = await client.get("/health")

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.json()["services"]["database"] == "unhealthy"

    @pytest.mark.asyncio
    async def test_root(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["name"] == "ANETI Messaging API"
