"""Portal record schemas.

Brokers, policyholders, proposals, beneficiaries and bond offers as returned
by the record endpoints. Every record carries a status and an edit history.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

EntityStatus = Literal["pending", "approved", "declined", "soft_deleted"]

SOFT_DELETED = "soft_deleted"

# Statuses a record can hold outside the bin
LIVE_STATUSES: frozenset[str] = frozenset({"pending", "approved", "declined"})


class EditHistoryEntry(BaseModel):
    """One change to a record."""

    id: str
    timestamp: str
    user_id: str
    user_name: str
    action: str
    changes: dict[str, Any] = Field(default_factory=dict)


class PortalRecord(BaseModel):
    """Fields shared by every record type."""

    model_config = ConfigDict(extra="forbid")

    id: str
    status: EntityStatus = "pending"
    edit_history: list[EditHistoryEntry] = Field(default_factory=list)


class BrokerRecord(PortalRecord):
    company_name: str
    contact_name: str
    email: EmailStr
    phone: str


class PolicyholderRecord(PortalRecord):
    company_name: str
    contact_name: str
    email: EmailStr
    phone: str


class ProposalRecord(PortalRecord):
    title: str
    description: str
    broker_id: str
    policyholder_id: str


class BeneficiaryRecord(PortalRecord):
    company_name: str
    contact_name: str
    email: EmailStr
    phone: str
    address: str
    city: str
    postcode: str
    country: str


class Beneficiary(BaseModel):
    """Party in whose favour a bond is issued."""

    company_name: str
    contact_name: str
    email: EmailStr


class OfferRecord(PortalRecord):
    """A bond offer made against a proposal.

    Amounts are decimal strings with at most two places.
    """

    proposal_id: str
    policyholder_id: str
    bond_amount: str = Field(..., pattern=r"^\d+(\.\d{1,2})?$")
    premium: str = Field(..., pattern=r"^\d+(\.\d{1,2})?$")
    effective_date: str
    expiry_date: str
    terms: str = Field(..., max_length=1000)
    beneficiary: Beneficiary
