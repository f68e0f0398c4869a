"""Bond offer invitation and acceptance endpoints.

Endpoints:
- POST /bonds/{bond_id}/invitations: issue an invitation link + PIN (write)
- GET /invitations/{token}: view the invited offer (public, token-gated)
- POST /invitations/{token}/accept: accept the offer (public, token + PIN)
- POST /invitations/{token}/reject: reject the offer (public, token + PIN)

The token names the bond and the invitee email and is checked statelessly.
The PIN is single-use and lives in the acceptance code store under
acceptance_key(bond_id, email): each offer an invitee is invited to has its
own PIN, and re-inviting the same invitee to the same offer replaces it.
"""

from datetime import UTC, datetime, timedelta
from typing import Literal

from fastapi import APIRouter, BackgroundTasks, Request

from portal.api.deps import (
    AcceptanceCodes,
    Audit,
    Decisions,
    TokenCodec,
    Writer,
)
from portal.core.config import settings
from portal.core.email import send_invitation_email
from portal.core.errors import (
    InvalidCredentialError,
    InvalidStateError,
    NotFoundError,
    TokenInvalidError,
)
from portal.core.rate_limiting import limiter
from portal.core.responses import DataResponse
from portal.repositories import record_repository
from portal.schemas.invitation import (
    DecisionRequest,
    DecisionResult,
    InvitationDetails,
    InvitationIssued,
    InvitationRequest,
)
from portal.schemas.records import SOFT_DELETED, OfferRecord
from portal.services.access_code_store import (
    AccessCodeStore,
    acceptance_key,
    normalize_email,
)
from portal.services.audit_log import AuditLog
from portal.services.invitation_tokens import TimeLimitedTokenCodec
from portal.services.offer_decisions import PENDING, OfferDecisionStore

bonds_router = APIRouter()
invitations_router = APIRouter()

_RESOURCE_TYPE = "bond"


def _active_offer(bond_id: str) -> OfferRecord:
    """Look up an offer that can still be decided.

    Raises:
        NotFoundError: Unknown or soft-deleted offer.
    """
    offer = record_repository.offers.get(bond_id)
    if offer is None or offer.status == SOFT_DELETED:
        raise NotFoundError("Offer", bond_id)
    return offer


def _decode_invitation(codec: TimeLimitedTokenCodec, token: str) -> tuple[str, str]:
    """Decode an invitation token into (bond_id, email).

    Raises:
        TokenInvalidError: Malformed, tampered, expired, or not an invitation.
    """
    payload = codec.decode_or_raise(token)
    if not isinstance(payload, dict):
        raise TokenInvalidError()
    bond_id = payload.get("bond_id")
    email = payload.get("email")
    if not isinstance(bond_id, str) or not isinstance(email, str):
        raise TokenInvalidError()
    return bond_id, email


# ===================================================================
# POST /bonds/{bond_id}/invitations
# ===================================================================


@bonds_router.post("/{bond_id}/invitations")
async def issue_invitation(
    bond_id: str,
    body: InvitationRequest,
    background_tasks: BackgroundTasks,
    user: Writer,
    codec: TokenCodec,
    codes: AcceptanceCodes,
    audit: Audit,
) -> DataResponse[InvitationIssued]:
    """Invite a policyholder to accept or reject a bond offer."""
    _active_offer(bond_id)
    email = normalize_email(body.email)

    ttl = settings.invitation_token_ttl_seconds
    expires_at = datetime.now(UTC) + timedelta(seconds=ttl)
    token = codec.encode({"bond_id": bond_id, "email": email}, ttl)
    record = codes.issue(acceptance_key(bond_id, email))
    link = f"{settings.frontend_url}/accept/{token}"

    background_tasks.add_task(
        send_invitation_email, to_email=email, pin=record.pin, link=link
    )
    audit.record(
        "INVITATION_ISSUED",
        _RESOURCE_TYPE,
        resource_id=bond_id,
        user_id=user.id,
        details={"invitee": email},
    )

    return DataResponse(
        data=InvitationIssued(
            bond_id=bond_id,
            email=email,
            token=token,
            link=link,
            expires_at=expires_at,
            pin=record.pin if settings.use_mock else None,
        )
    )


# ===================================================================
# GET /invitations/{token}
# ===================================================================


@invitations_router.get("/{token}")
async def get_invitation(
    token: str,
    codec: TokenCodec,
    decisions: Decisions,
) -> DataResponse[InvitationDetails]:
    """Show the invited offer with its parties and decision status."""
    bond_id, email = _decode_invitation(codec, token)
    offer = _active_offer(bond_id)

    return DataResponse(
        data=InvitationDetails(
            bond_id=bond_id,
            email=email,
            decision_status=decisions.status(bond_id),
            offer=offer,
            policyholder=record_repository.policyholders.get(offer.policyholder_id),
            beneficiary=offer.beneficiary,
        )
    )


# ===================================================================
# POST /invitations/{token}/accept | /reject
# ===================================================================


def _decide(
    *,
    token: str,
    pin: str,
    status: Literal["accepted", "rejected"],
    codec: TimeLimitedTokenCodec,
    codes: AccessCodeStore,
    decisions: OfferDecisionStore,
    audit: AuditLog,
) -> DecisionResult:
    bond_id, email = _decode_invitation(codec, token)
    _active_offer(bond_id)

    def _failed(reason: str) -> None:
        audit.record(
            "BOND_DECISION_FAILED",
            _RESOURCE_TYPE,
            resource_id=bond_id,
            user_id=email,
            details={"reason": reason},
        )

    current = decisions.status(bond_id)
    if current != PENDING:
        _failed(f"already {current}")
        # Raises InvalidStateError
        decisions.decide(bond_id, status, email)

    record = codes.consume(acceptance_key(bond_id, email), pin)
    if record is None:
        _failed("invalid pin")
        raise InvalidCredentialError()

    try:
        decision = decisions.decide(bond_id, status, email)
    except InvalidStateError:
        # Another invitee decided first; the PIN was not used.
        codes.restore(record)
        _failed("already decided")
        raise

    action = "BOND_ACCEPT_SUCCESS" if status == "accepted" else "BOND_REJECT_SUCCESS"
    audit.record(action, _RESOURCE_TYPE, resource_id=bond_id, user_id=email)

    return DecisionResult(
        bond_id=bond_id, status=decision.status, decided_at=decision.decided_at
    )


@invitations_router.post("/{token}/accept")
@limiter.limit(lambda: settings.rate_limit_verify_pin)
async def accept_offer(
    request: Request,  # noqa: ARG001
    token: str,
    body: DecisionRequest,
    codec: TokenCodec,
    codes: AcceptanceCodes,
    decisions: Decisions,
    audit: Audit,
) -> DataResponse[DecisionResult]:
    """Accept the invited bond offer."""
    result = _decide(
        token=token,
        pin=body.pin,
        status="accepted",
        codec=codec,
        codes=codes,
        decisions=decisions,
        audit=audit,
    )
    return DataResponse(data=result)


@invitations_router.post("/{token}/reject")
@limiter.limit(lambda: settings.rate_limit_verify_pin)
async def reject_offer(
    request: Request,  # noqa: ARG001
    token: str,
    body: DecisionRequest,
    codec: TokenCodec,
    codes: AcceptanceCodes,
    decisions: Decisions,
    audit: Audit,
) -> DataResponse[DecisionResult]:
    """Reject the invited bond offer."""
    result = _decide(
        token=token,
        pin=body.pin,
        status="rejected",
        codec=codec,
        codes=codes,
        decisions=decisions,
        audit=audit,
    )
    return DataResponse(data=result)
