"""Rate limiting configuration using slowapi.

Limits the PIN-issuing and PIN-verifying endpoints to slow down brute force
and email flooding.

Requests are keyed on the session subject when a valid session cookie is
present, otherwise on the client IP.

Usage in routers:
    from portal.core.rate_limiting import limiter

    @router.post("/verify-pin")
    @limiter.limit(lambda: settings.rate_limit_verify_pin)
    async def verify_pin(request: Request, ...):
        ...
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from portal.core.auth import decode_session_token
from portal.core.config import settings


def _rate_limit_key_func(request: Request) -> str:
    """Get rate limit key from request.

    Key format:
    - Auth disabled: "{ip}"
    - Auth enabled + valid session: "user:{sub}"
    - Auth enabled + no/invalid session: "unauth:{ip}"

    Args:
        request: The incoming request.

    Returns:
        Rate limit key string.
    """
    if not settings.auth_enabled:
        return get_remote_address(request)

    token = request.cookies.get(settings.auth_cookie_name)
    if token:
        user = decode_session_token(token)
        if user is not None and len(user.id) <= 64:
            return f"user:{user.id}"

    return f"unauth:{get_remote_address(request)}"


# Global limiter instance with in-memory storage (single-instance deployment)
limiter = Limiter(
    key_func=_rate_limit_key_func,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Returns 429 Too Many Requests with the standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # Parse retry-after from exception detail (e.g., "10 per 1 minute")
    try:
        retry_after = str(exc.detail.split()[-1])
        int(retry_after.rstrip("s"))
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMITED",
                "message": f"Rate limit exceeded: {exc.detail}",
            }
        },
        headers={"Retry-After": retry_after},
    )
