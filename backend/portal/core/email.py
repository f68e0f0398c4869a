"""Email sending via Resend API.

Plain-text emails carrying registration PINs and bond invitation links.
Delivery runs as a background task; failures are logged, never raised, so the
HTTP response does not reveal whether delivery worked.
"""

import logging

import httpx

from portal.core.config import settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


async def _send_email(*, to_email: str, subject: str, text: str) -> None:
    """POST one plain-text email to Resend."""
    api_key = settings.resend_api_key.get_secret_value()
    if not api_key:
        logger.info("RESEND_API_KEY not set; skipping email delivery")
        return

    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                _RESEND_API_URL,
                headers={"Authorization": f"Bearer {api_key}"},
                json={
                    "from": settings.email_from,
                    "to": to_email,
                    "subject": subject,
                    "text": text,
                },
                timeout=_RESEND_TIMEOUT,
            )
            resp.raise_for_status()
    except Exception:
        logger.warning("Failed to send email", exc_info=True)


async def send_access_code_email(*, to_email: str, pin: str, link: str) -> None:
    """Send a broker registration PIN.

    Args:
        to_email: Recipient email address.
        pin: Plain 6-digit PIN.
        link: Registration page URL.
    """
    await _send_email(
        to_email=to_email,
        subject="Your broker registration access code",
        text=(
            f"Your access code is {pin}.\n\n"
            f"Continue your registration here:\n\n{link}\n\n"
            f"This code expires in {settings.access_code_ttl_minutes} minutes. "
            "If you didn't request this, you can safely ignore this email."
        ),
    )


async def send_invitation_email(*, to_email: str, pin: str, link: str) -> None:
    """Send a bond offer invitation with its acceptance PIN.

    Args:
        to_email: Recipient email address.
        pin: Plain 6-digit acceptance PIN.
        link: Invitation page URL carrying the token.
    """
    await _send_email(
        to_email=to_email,
        subject="You have a bond offer to review",
        text=(
            f"A bond offer is waiting for your decision:\n\n{link}\n\n"
            f"Use the code {pin} to accept or reject it. "
            "The link and code expire together."
        ),
    )
