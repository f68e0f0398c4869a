"""Shared dependencies for API endpoints.

Authentication, role checks and the process-wide stores. Endpoints declare
these with Annotated aliases so tests can swap them via
app.dependency_overrides.
"""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Request

from portal.core.auth import CurrentUser, decode_session_token, development_user
from portal.core.config import settings
from portal.core.errors import ForbiddenError, UnauthorizedError
from portal.core.roles import Permission, has_permission
from portal.services.access_code_store import (
    AccessCodeStore,
    get_acceptance_code_store,
    get_access_code_store,
)
from portal.services.audit_log import AuditLog, get_audit_log
from portal.services.invitation_tokens import TimeLimitedTokenCodec, get_token_codec
from portal.services.offer_decisions import (
    OfferDecisionStore,
    get_offer_decision_store,
)
from portal.services.registration_store import (
    RegistrationStore,
    get_registration_store,
)


def get_current_user(request: Request) -> CurrentUser:
    """Get the current user from the session cookie.

    Falls back to the development user when auth is disabled. Any failure
    yields the same 401 so clients cannot tell why the session was rejected.

    Raises:
        UnauthorizedError: Missing or invalid session cookie.
    """
    if not settings.auth_enabled:
        return development_user()

    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise UnauthorizedError()

    user = decode_session_token(token)
    if user is None:
        raise UnauthorizedError()
    return user


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]


def require_permission(permission: Permission) -> Callable[..., CurrentUser]:
    """Build a dependency that requires permission on the user's role.

    Usage:
        @router.get("/proposals")
        async def list_proposals(
            user: Annotated[CurrentUser, Depends(require_permission(Permission.READ))],
        ): ...

    Args:
        permission: Permission the endpoint needs.

    Returns:
        Dependency callable returning the current user.
    """

    def _check(user: CurrentUserDep) -> CurrentUser:
        if not has_permission(user.role, permission):
            raise ForbiddenError()
        return user

    return _check


Reader = Annotated[CurrentUser, Depends(require_permission(Permission.READ))]
Writer = Annotated[CurrentUser, Depends(require_permission(Permission.WRITE))]
Deleter = Annotated[CurrentUser, Depends(require_permission(Permission.DELETE))]
BrokerManager = Annotated[
    CurrentUser, Depends(require_permission(Permission.MANAGE_BROKERS))
]

RegistrationCodes = Annotated[AccessCodeStore, Depends(get_access_code_store)]
AcceptanceCodes = Annotated[AccessCodeStore, Depends(get_acceptance_code_store)]
TokenCodec = Annotated[TimeLimitedTokenCodec, Depends(get_token_codec)]
Audit = Annotated[AuditLog, Depends(get_audit_log)]
Decisions = Annotated[OfferDecisionStore, Depends(get_offer_decision_store)]
Registrations = Annotated[RegistrationStore, Depends(get_registration_store)]
