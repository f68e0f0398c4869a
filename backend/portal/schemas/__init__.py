"""Pydantic request/response schemas for API endpoints."""

from portal.schemas.invitation import (
    DecisionRequest,
    DecisionResult,
    InvitationDetails,
    InvitationIssued,
    InvitationRequest,
)
from portal.schemas.registration import (
    AccessCodeIssued,
    AccessCodeRequest,
    BrokerRegistrationRequest,
    PinVerificationRequest,
    RegistrationSubmitted,
)

__all__ = [
    # Registration
    "AccessCodeIssued",
    "AccessCodeRequest",
    "BrokerRegistrationRequest",
    "PinVerificationRequest",
    "RegistrationSubmitted",
    # Invitations
    "DecisionRequest",
    "DecisionResult",
    "InvitationDetails",
    "InvitationIssued",
    "InvitationRequest",
]
