"""Broker registration endpoints.

Endpoints:
- POST /registration/access-code: issue a one-time PIN by email
- POST /registration/verify-pin: consume the PIN
- POST /registration/submit: submit the broker registration form

All three are public; the PIN proves control of the email address.
"""

from urllib.parse import quote, urlencode

from fastapi import APIRouter, BackgroundTasks, Request

from portal.api.deps import Audit, RegistrationCodes, Registrations
from portal.core.config import settings
from portal.core.email import send_access_code_email
from portal.core.errors import InvalidCredentialError
from portal.core.rate_limiting import limiter
from portal.core.responses import DataResponse
from portal.schemas.registration import (
    AccessCodeIssued,
    AccessCodeRequest,
    BrokerRegistrationRequest,
    PinVerificationRequest,
    RegistrationSubmitted,
)
from portal.services.access_code_store import normalize_email

router = APIRouter()

_RESOURCE_TYPE = "access_code"


def _registration_link(email: str) -> str:
    params = urlencode({"email": email}, quote_via=quote)
    return f"{settings.frontend_url}/broker/register?{params}"


@router.post("/access-code")
@limiter.limit(lambda: settings.rate_limit_access_code)
async def request_access_code(
    request: Request,  # noqa: ARG001
    body: AccessCodeRequest,
    background_tasks: BackgroundTasks,
    codes: RegistrationCodes,
    audit: Audit,
) -> DataResponse[AccessCodeIssued]:
    """Issue a registration PIN and email it.

    A repeated request for the same email replaces the previous PIN.
    The PIN is only echoed back in mock mode.

    Rate limit: RATE_LIMIT_ACCESS_CODE per client.
    """
    email = normalize_email(body.email)
    record = codes.issue(email, country=body.country)
    link = _registration_link(email)

    background_tasks.add_task(
        send_access_code_email, to_email=email, pin=record.pin, link=link
    )
    audit.record(
        "ACCESS_CODE_ISSUED",
        _RESOURCE_TYPE,
        resource_id=email,
        details={"country": body.country},
    )

    return DataResponse(
        data=AccessCodeIssued(
            email=email,
            link=link,
            expires_at=record.expires_at,
            pin=record.pin if settings.use_mock else None,
        )
    )


@router.post("/verify-pin")
@limiter.limit(lambda: settings.rate_limit_verify_pin)
async def verify_pin(
    request: Request,  # noqa: ARG001
    body: PinVerificationRequest,
    codes: RegistrationCodes,
    audit: Audit,
) -> DataResponse[dict]:
    """Verify and consume a registration PIN.

    Unknown email, wrong PIN, expired PIN and reused PIN all produce the same
    INVALID_CREDENTIAL response.
    """
    email = normalize_email(body.email)

    if not codes.verify(email, body.pin):
        audit.record("PIN_VERIFY_FAILED", _RESOURCE_TYPE, resource_id=email)
        raise InvalidCredentialError()

    audit.record("PIN_VERIFY_SUCCESS", _RESOURCE_TYPE, resource_id=email)
    return DataResponse(data={"success": True})


@router.post("/submit")
async def submit_registration(
    body: BrokerRegistrationRequest,
    registrations: Registrations,
    audit: Audit,
) -> DataResponse[RegistrationSubmitted]:
    """Submit a broker registration for review."""
    form = body.model_copy(update={"email": normalize_email(body.email)})
    registration = registrations.submit(form)

    audit.record(
        "REGISTRATION_SUBMITTED",
        "registration",
        resource_id=registration.id,
        user_id=form.email,
        details={"company_number": form.company_number},
    )

    return DataResponse(
        data=RegistrationSubmitted(id=registration.id, status=registration.status)
    )
