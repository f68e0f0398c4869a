"""Tests for rate limiting of the PIN endpoints.

Security: PIN issuing and verification are limited per client to slow down
brute force and email flooding.
"""

import json
from unittest.mock import MagicMock

import pytest
from pydantic import SecretStr
from starlette.requests import Request as StarletteRequest

from portal.core.config import settings
from portal.core.rate_limiting import (
    _rate_limit_key_func,
    limiter,
    rate_limit_exceeded_handler,
)
from tests.conftest import TEST_AUTH_SECRET, TEST_USER_ID, client_for, create_test_session


def _request(cookies: dict[str, str] | None = None) -> StarletteRequest:
    headers = []
    if cookies:
        cookie = "; ".join(f"{k}={v}" for k, v in cookies.items())
        headers.append((b"cookie", cookie.encode()))
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/v1/registration/verify-pin",
        "headers": headers,
        "client": ("10.0.0.7", 5000),
    }
    return StarletteRequest(scope)


class TestRateLimitExceededHandler:
    def test_returns_429_with_error_envelope(self):
        exc = MagicMock()
        exc.detail = "10 per 1 minute"

        response = rate_limit_exceeded_handler(_request(), exc)
        body = json.loads(response.body.decode())

        assert response.status_code == 429
        assert body["error"]["code"] == "RATE_LIMITED"
        assert "Rate limit exceeded" in body["error"]["message"]

    @pytest.mark.parametrize("detail", ["unexpected format", None])
    def test_retry_after_falls_back_to_60(self, detail):
        exc = MagicMock()
        exc.detail = detail

        response = rate_limit_exceeded_handler(_request(), exc)

        assert response.headers.get("Retry-After") == "60"


class TestRateLimitKeyFunction:
    @pytest.fixture
    def auth_enabled_settings(self):
        original_auth = settings.auth_enabled
        original_secret = settings.auth_secret
        settings.auth_enabled = True
        settings.auth_secret = SecretStr(TEST_AUTH_SECRET)
        yield
        settings.auth_enabled = original_auth
        settings.auth_secret = original_secret

    def test_ip_key_when_auth_disabled(self):
        assert _rate_limit_key_func(_request()) == "10.0.0.7"

    def test_user_key_with_valid_session(self, auth_enabled_settings):  # noqa: ARG002
        request = _request({settings.auth_cookie_name: create_test_session()})
        assert _rate_limit_key_func(request) == f"user:{TEST_USER_ID}"

    def test_unauth_key_without_session(self, auth_enabled_settings):  # noqa: ARG002
        assert _rate_limit_key_func(_request()) == "unauth:10.0.0.7"

    def test_unauth_key_with_forged_session(self, auth_enabled_settings):  # noqa: ARG002
        forged = create_test_session(secret="x" * 40)
        request = _request({settings.auth_cookie_name: forged})
        assert _rate_limit_key_func(request) == "unauth:10.0.0.7"


class TestVerifyPinEnforcement:
    """The real verify-pin route stops answering after its limit."""

    @pytest.fixture
    def enabled_limiter(self):
        limiter.reset()
        limiter.enabled = True
        yield
        limiter.enabled = False
        limiter.reset()

    @pytest.mark.asyncio
    async def test_verify_pin_limited(self, app, enabled_limiter):  # noqa: ARG002
        original = settings.rate_limit_verify_pin
        settings.rate_limit_verify_pin = "3/minute"
        try:
            async with client_for(app) as ac:
                statuses = [
                    (
                        await ac.post(
                            "/api/v1/registration/verify-pin",
                            json={"email": "a@x.com", "pin": "123456"},
                        )
                    ).status_code
                    for _ in range(4)
                ]
        finally:
            settings.rate_limit_verify_pin = original

        assert statuses == [400, 400, 400, 429]
