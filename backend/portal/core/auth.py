"""Session cookie helpers.

Sessions are issued by the external identity provider as HS256 JWTs in an
httpOnly cookie. This module only validates them (and can mint one for local
tooling and tests); sign-in itself happens at the provider.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import jwt

from portal.core.config import settings
from portal.core.roles import Permission, UserRole, permissions_for

logger = logging.getLogger(__name__)

# Default session lifetime for locally minted tokens: 1 hour
_DEFAULT_EXPIRATION = timedelta(hours=1)


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated portal user.

    Attributes:
        id: Subject identifier from the identity provider.
        email: User email.
        name: Display name (may be empty).
        role: Portal role.
    """

    id: str
    email: str
    name: str
    role: UserRole

    @property
    def permissions(self) -> frozenset[Permission]:
        return permissions_for(self.role)


def create_session_jwt(
    *,
    user_id: str,
    email: str,
    role: UserRole,
    secret: str,
    name: str = "",
    expires_delta: timedelta | None = None,
) -> str:
    """Create a session JWT with the claims the identity provider issues.

    Args:
        user_id: Subject identifier.
        email: User email.
        role: Portal role.
        secret: HMAC signing secret.
        name: Display name.
        expires_delta: Time until expiration. Defaults to 1 hour.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "email": email,
        "name": name,
        "role": str(role),
        "aud": settings.auth_audience,
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or _DEFAULT_EXPIRATION),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def decode_session_token(token: str) -> CurrentUser | None:
    """Validate a session JWT and build the user from its claims.

    Args:
        token: Cookie value.

    Returns:
        CurrentUser, or None for any invalid, expired or incomplete token.
    """
    try:
        payload = jwt.decode(
            token,
            settings.auth_secret.get_secret_value(),
            algorithms=["HS256"],
            audience=settings.auth_audience,
            issuer=settings.auth_issuer,
            options={"require": ["exp", "iat", "sub"]},
        )
        return CurrentUser(
            id=str(payload["sub"]),
            email=str(payload["email"]),
            name=str(payload.get("name") or ""),
            role=UserRole(payload["role"]),
        )
    except (jwt.InvalidTokenError, KeyError, ValueError):
        logger.debug("Rejected session token")
        return None


def development_user() -> CurrentUser:
    """User synthesised when AUTH_ENABLED=false."""
    return CurrentUser(
        id="dev-user",
        email=settings.dev_user_email,
        name="Development User",
        role=UserRole(settings.dev_user_role),
    )
