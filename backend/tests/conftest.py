from collections.abc import AsyncGenerator, Iterator
from contextlib import asynccontextmanager
from datetime import timedelta

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr

from portal.core.auth import create_session_jwt
from portal.core.config import settings
from portal.core.roles import UserRole

# Security: test-only secrets. Production reads real secrets from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow
TEST_INVITATION_SECRET = "test-invitation-secret-at-least-32-characters"  # nosec B105  # gitleaks:allow

TEST_USER_ID = "user-0001"
TEST_USER_EMAIL = "wholesaler@bondportal.test"

_TEST_BASE_URL = "http://test"


def create_test_session(
    role: UserRole = UserRole.ADMIN,
    *,
    user_id: str = TEST_USER_ID,
    email: str = TEST_USER_EMAIL,
    secret: str = TEST_AUTH_SECRET,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a session cookie value as the identity provider would.

    Args:
        role: Portal role claim.
        user_id: Subject claim.
        email: Email claim.
        secret: Signing secret (must match settings.auth_secret in tests).
        expires_delta: Time until expiration. Defaults to 1 hour.

    Returns:
        Encoded JWT string.
    """
    return create_session_jwt(
        user_id=user_id,
        email=email,
        role=role,
        secret=secret,
        name="Test User",
        expires_delta=expires_delta,
    )


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest.fixture
def app() -> FastAPI:
    """Fresh application instance."""
    from portal.main import create_app

    return create_app()


@pytest.fixture
def enable_auth() -> Iterator[None]:
    """Turn on session cookie validation with the test secret."""
    original_auth_enabled = settings.auth_enabled
    original_auth_secret = settings.auth_secret
    settings.auth_enabled = True
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)

    yield

    settings.auth_enabled = original_auth_enabled
    settings.auth_secret = original_auth_secret


@asynccontextmanager
async def client_for(
    app: FastAPI, role: UserRole | None = None
) -> AsyncGenerator[AsyncClient, None]:
    """Async client for app, carrying a session cookie for role if given."""
    cookies = {}
    if role is not None:
        cookies[settings.auth_cookie_name] = create_test_session(role)

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport, base_url=_TEST_BASE_URL, cookies=cookies
    ) as ac:
        yield ac


@pytest.fixture
async def client(app, enable_auth) -> AsyncGenerator[AsyncClient, None]:  # noqa: ARG001
    """Async HTTP client signed in as an admin."""
    async with client_for(app, UserRole.ADMIN) as ac:
        yield ac


@pytest.fixture
async def unauthenticated_client(
    app,
    enable_auth,  # noqa: ARG001
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client without a session cookie (auth enabled)."""
    async with client_for(app) as ac:
        yield ac


# =============================================================================
# Autouse Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def mock_mode() -> Iterator[None]:
    """Serve fixture data, echo PINs and sign tokens with the test secret."""
    original_use_mock = settings.use_mock
    original_token_secret = settings.invitation_token_secret
    original_resend_key = settings.resend_api_key
    settings.use_mock = True
    settings.invitation_token_secret = SecretStr(TEST_INVITATION_SECRET)
    settings.resend_api_key = SecretStr("")

    yield

    settings.use_mock = original_use_mock
    settings.invitation_token_secret = original_token_secret
    settings.resend_api_key = original_resend_key


@pytest.fixture(autouse=True)
def reset_stores() -> Iterator[None]:
    """Reset every in-memory store and the token codec around each test."""
    from portal.repositories.record_repository import reset_record_changes
    from portal.services.access_code_store import reset_access_code_stores
    from portal.services.audit_log import reset_audit_log
    from portal.services.invitation_tokens import reset_token_codec
    from portal.services.offer_decisions import reset_offer_decision_store
    from portal.services.registration_store import reset_registration_store

    resets = (
        reset_access_code_stores,
        reset_audit_log,
        reset_token_codec,
        reset_offer_decision_store,
        reset_registration_store,
        reset_record_changes,
    )
    for reset in resets:
        reset()
    yield
    for reset in resets:
        reset()


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable rate limiting during tests.

    Rate limiting is tested separately; disable it elsewhere to avoid flaky
    failures from limit triggers.
    """
    from portal.core.rate_limiting import limiter

    original_enabled = limiter.enabled
    limiter.enabled = False

    yield

    limiter.enabled = original_enabled
