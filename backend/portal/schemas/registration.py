"""Broker registration request/response schemas.

Covers the three-step public flow:
1. POST /registration/access-code: request a PIN by email
2. POST /registration/verify-pin: prove control of the email
3. POST /registration/submit: send the broker registration form
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

# =============================================================================
# Request Schemas
# =============================================================================


class AccessCodeRequest(BaseModel):
    """Request body for POST /registration/access-code.

    Attributes:
        email: Address the PIN is sent to.
        country: Country the broker operates in.
    """

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    country: str = Field(..., min_length=1, max_length=100)

    @field_validator("country", mode="before")
    @classmethod
    def strip_country(cls, v: str) -> str:
        """Strip whitespace from country."""
        if isinstance(v, str):
            return v.strip()
        return v


class PinVerificationRequest(BaseModel):
    """Request body for POST /registration/verify-pin."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    pin: str = Field(..., pattern=r"^\d{6}$", description="6-digit PIN")


class BrokerRegistrationRequest(BaseModel):
    """Request body for POST /registration/submit."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    company_name: str = Field(..., min_length=1, max_length=255)
    company_number: str = Field(..., min_length=1, max_length=50)
    contact_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=50)
    address: str = Field(..., min_length=1, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    postcode: str = Field(..., min_length=1, max_length=20)
    country: str = Field(..., min_length=1, max_length=100)


# =============================================================================
# Response Schemas
# =============================================================================


class AccessCodeIssued(BaseModel):
    """Response data for POST /registration/access-code.

    Attributes:
        email: Normalised address the PIN was issued for.
        link: Registration page link sent with the PIN.
        expires_at: When the PIN stops verifying.
        pin: Echoed only in mock mode.
    """

    email: str
    link: str
    expires_at: datetime | None = None
    pin: str | None = None


class RegistrationSubmitted(BaseModel):
    """Response data for POST /registration/submit."""

    id: str
    status: str
    message: str = "Registration submitted successfully"
