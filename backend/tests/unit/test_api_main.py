"""Tests for the FastAPI application: exception handlers and middleware."""

from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from portal.core.errors import (
    ForbiddenError,
    InternalError,
    InvalidCredentialError,
    InvalidStateError,
    NotFoundError,
    TokenInvalidError,
    UnauthorizedError,
    ValidationError,
)
from portal.main import create_app
from tests.conftest import client_for


@pytest.fixture
async def client(app):
    """Anonymous client (auth disabled by default)."""
    async with client_for(app) as ac:
        yield ac


class TestHealthEndpoint:
    """Tests for health check endpoint."""

    @pytest.mark.asyncio
    async def test_health_returns_healthy_status(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestAPIVersioning:
    @pytest.mark.asyncio
    async def test_v1_router_mounted(self, client):
        """Unknown paths under /api/v1 are plain 404s."""
        response = await client.get("/api/v1/nonexistent")
        assert response.status_code == 404


class TestExceptionHandlers:
    """Custom exceptions become HTTP responses with the error envelope."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("exc", "status", "code"),
        [
            (ValidationError("Invalid input"), 400, "VALIDATION_ERROR"),
            (InvalidCredentialError(), 400, "INVALID_CREDENTIAL"),
            (TokenInvalidError(), 400, "TOKEN_INVALID"),
            (UnauthorizedError(), 401, "UNAUTHORIZED"),
            (ForbiddenError(), 403, "FORBIDDEN"),
            (NotFoundError("Offer", "BOND-9"), 404, "NOT_FOUND"),
            (InvalidStateError("Already accepted"), 422, "INVALID_STATE_TRANSITION"),
            (InternalError(), 500, "INTERNAL_ERROR"),
        ],
    )
    async def test_api_error_mapping(self, app, client, exc, status, code):
        @app.get("/test/raise")
        async def raise_error():
            raise exc

        response = await client.get("/test/raise")
        assert response.status_code == status
        body = response.json()
        assert body["error"]["code"] == code
        assert body["error"]["message"] == exc.message
        assert "data" not in body

    @pytest.mark.asyncio
    async def test_invalid_credential_message_is_generic(self, app, client):
        @app.get("/test/credential")
        async def raise_error():
            raise InvalidCredentialError()

        response = await client.get("/test/credential")
        assert response.json()["error"]["message"] == "Invalid email or PIN"

    @pytest.mark.asyncio
    async def test_request_validation_returns_400(self, client):
        """FastAPI body validation errors use VALIDATION_ERROR, not 422."""
        response = await client.post(
            "/api/v1/registration/verify-pin",
            json={"email": "not-an-email", "pin": "12"},
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        fields = {tuple(d["loc"]) for d in error["details"]}
        assert ("body", "email") in fields
        assert ("body", "pin") in fields

    @pytest.mark.asyncio
    async def test_validation_details_do_not_echo_input(self, client):
        response = await client.post(
            "/api/v1/registration/verify-pin",
            json={"email": "a@x.com", "pin": "12345X"},
        )

        assert "12345X" not in response.text

    @pytest.mark.asyncio
    async def test_unhandled_exception_returns_generic_500(self, app):
        @app.get("/test/boom")
        async def boom():
            raise RuntimeError("secret database host db-01")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.get("/test/boom")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"
        assert "db-01" not in response.text


class TestCORSMiddleware:
    @pytest.mark.asyncio
    async def test_cors_allows_configured_origin(self, client):
        response = await client.options(
            "/health",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "GET",
            },
        )
        assert response.status_code == 200
        assert (
            response.headers.get("access-control-allow-origin")
            == "http://localhost:3000"
        )

    @pytest.mark.asyncio
    async def test_cors_denies_unconfigured_origin(self):
        with patch(
            "portal.main.settings.allowed_origins", ["http://allowed-origin.com"]
        ):
            test_app = create_app()
            async with client_for(test_app) as ac:
                response = await ac.options(
                    "/health",
                    headers={
                        "Origin": "http://malicious-site.com",
                        "Access-Control-Request-Method": "GET",
                    },
                )

        allowed_origin = response.headers.get("access-control-allow-origin")
        assert allowed_origin != "http://malicious-site.com"


class TestSecurityHeadersMiddleware:
    @pytest.mark.asyncio
    async def test_basic_headers(self, client):
        response = await client.get("/health")

        assert response.headers.get("x-frame-options") == "DENY"
        assert response.headers.get("x-content-type-options") == "nosniff"
        assert response.headers.get("referrer-policy") == "no-referrer"
        assert response.headers.get("cross-origin-opener-policy") == "same-origin"
        assert response.headers.get("cross-origin-resource-policy") == "same-origin"

    @pytest.mark.asyncio
    async def test_content_security_policy_header(self, client):
        response = await client.get("/health")
        csp = response.headers.get("content-security-policy")
        assert "default-src 'none'" in csp
        assert "frame-ancestors 'none'" in csp

    @pytest.mark.asyncio
    async def test_cache_control_on_api_endpoints(self, client):
        """Invitation tokens live in /api/ URLs; those responses are not cached."""
        response = await client.get("/api/v1/invitations/not-a-token")
        assert "no-store" in response.headers.get("cache-control", "")

    @pytest.mark.asyncio
    async def test_cache_control_not_on_health(self, client):
        response = await client.get("/health")
        assert "no-store" not in response.headers.get("cache-control", "")

    @pytest.mark.asyncio
    async def test_hsts_header_not_in_development(self, client):
        response = await client.get("/health")
        assert response.headers.get("strict-transport-security") is None

    @pytest.mark.asyncio
    async def test_hsts_header_in_production(self, client, monkeypatch):
        from portal.core.config import settings

        monkeypatch.setattr(settings, "environment", "production")
        response = await client.get("/health")
        hsts = response.headers.get("strict-transport-security")
        assert "max-age=31536000" in hsts
        assert "includeSubDomains" in hsts
