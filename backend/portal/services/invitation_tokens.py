"""Time-limited, signed tokens for invitation links.

A token carries an arbitrary JSON payload plus issue and expiry timestamps.
It is an HS256 JWT: base64url-encoded JSON with an HMAC signature, so links
stay stateless and shareable while any tampering (payload or expiry) makes
decoding fail. There is no revocation short of expiry.
"""

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from portal.core.config import settings
from portal.core.errors import TokenInvalidError

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 86400

_ALGORITHM = "HS256"
_PAYLOAD_CLAIM = "data"


class TimeLimitedTokenCodec:
    """Encode payloads into expiring tokens and validate them back."""

    def __init__(
        self,
        secret: str,
        *,
        audience: str = "bond-portal-invitation",
        issuer: str = "bond-portal",
        default_ttl_seconds: int = DEFAULT_TTL_SECONDS,
    ) -> None:
        """Initialize the codec.

        Args:
            secret: HMAC signing secret.
            audience: aud claim written and required on decode.
            issuer: iss claim written and required on decode.
            default_ttl_seconds: Lifetime used when encode() gets no ttl.

        Raises:
            ValueError: If the secret is empty.
        """
        if not secret:
            msg = "Token signing secret must not be empty"
            raise ValueError(msg)
        self._secret = secret
        self._audience = audience
        self._issuer = issuer
        self._default_ttl_seconds = default_ttl_seconds

    def encode(self, payload: Any, ttl_seconds: int | None = None) -> str:
        """Encode payload into a token valid for ttl_seconds.

        Args:
            payload: JSON-serializable data.
            ttl_seconds: Lifetime in seconds. Zero or negative yields a token
                that is already expired.

        Returns:
            Opaque URL-safe token string.
        """
        ttl = self._default_ttl_seconds if ttl_seconds is None else ttl_seconds
        issued_at = datetime.now(UTC)
        claims = {
            _PAYLOAD_CLAIM: payload,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=ttl),
            "aud": self._audience,
            "iss": self._issuer,
        }
        return jwt.encode(claims, self._secret, algorithm=_ALGORITHM)

    def decode(self, token: str) -> Any | None:
        """Validate token and return its payload.

        Args:
            token: String produced by encode().

        Returns:
            The embedded payload, or None if the token is malformed, signed
            with another secret, altered, or expired (exp <= now).
        """
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                audience=self._audience,
                issuer=self._issuer,
                options={"require": ["exp", "iat", "aud", "iss"]},
            )
        except jwt.InvalidTokenError as exc:
            logger.debug("Rejected invitation token: %s", type(exc).__name__)
            return None

        if _PAYLOAD_CLAIM not in claims:
            return None
        return claims[_PAYLOAD_CLAIM]

    def decode_or_raise(self, token: str) -> Any:
        """Like decode(), but raise instead of returning None.

        Raises:
            TokenInvalidError: If the token does not decode.
        """
        payload = self.decode(token)
        if payload is None:
            raise TokenInvalidError()
        return payload


_codec: TimeLimitedTokenCodec | None = None


def get_token_codec() -> TimeLimitedTokenCodec:
    """Get the process-wide codec built from settings.

    Outside production an unset INVITATION_TOKEN_SECRET falls back to a
    random per-process secret, so links stop working after a restart.
    """
    global _codec
    if _codec is None:
        secret = settings.invitation_token_secret.get_secret_value()
        if not secret:
            logger.warning(
                "INVITATION_TOKEN_SECRET not set; using an ephemeral secret"
            )
            secret = secrets.token_hex(32)
        _codec = TimeLimitedTokenCodec(
            secret,
            default_ttl_seconds=settings.invitation_token_ttl_seconds,
        )
    return _codec


def reset_token_codec() -> None:
    """Reset the codec singleton (for testing)."""
    global _codec
    _codec = None
