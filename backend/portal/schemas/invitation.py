"""Bond offer invitation request/response schemas.

Flow:
1. POST /bonds/{bond_id}/invitations: a broker or wholesaler invites the
   policyholder; the link (token) and PIN are emailed
2. GET /invitations/{token}: the invitee views the offer
3. POST /invitations/{token}/accept | /reject: the invitee decides, proving
   control of the invited email with the PIN
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from portal.schemas.records import Beneficiary, OfferRecord, PolicyholderRecord

# =============================================================================
# Request Schemas
# =============================================================================


class InvitationRequest(BaseModel):
    """Request body for POST /bonds/{bond_id}/invitations."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class DecisionRequest(BaseModel):
    """Request body for POST /invitations/{token}/accept and /reject."""

    model_config = ConfigDict(extra="forbid")

    pin: str = Field(..., pattern=r"^\d{6}$", description="6-digit PIN")


# =============================================================================
# Response Schemas
# =============================================================================


class InvitationIssued(BaseModel):
    """Response data for POST /bonds/{bond_id}/invitations.

    Attributes:
        bond_id: Offer the invitation is for.
        email: Normalised invitee address.
        token: Signed, time-limited invitation token.
        link: Acceptance page URL carrying the token.
        expires_at: When the token stops decoding.
        pin: Acceptance PIN, echoed only in mock mode.
    """

    bond_id: str
    email: str
    token: str
    link: str
    expires_at: datetime
    pin: str | None = None


class InvitationDetails(BaseModel):
    """Response data for GET /invitations/{token}."""

    bond_id: str
    email: str
    decision_status: str
    offer: OfferRecord
    policyholder: PolicyholderRecord | None = None
    beneficiary: Beneficiary


class DecisionResult(BaseModel):
    """Response data for a recorded accept/reject decision."""

    bond_id: str
    status: str
    decided_at: datetime
