"""In-memory store for one-time access codes (PINs).

Holds at most one outstanding PIN per email for the lifetime of the process.
A new request for the same email replaces the previous record, and a PIN is
consumed by the first successful verification.

Two process-wide instances exist: one for broker registration PINs and one
for bond acceptance PINs, so an invitation never overwrites a registration
request for the same address.
"""

import hmac
import secrets
import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta

from portal.core.config import settings
from portal.core.errors import ValidationError

# Default TTL for outstanding PINs (15 minutes)
DEFAULT_CODE_TTL_MINUTES = 15

_PIN_MIN = 100000
_PIN_MAX = 999999


def normalize_email(email: str) -> str:
    """Canonical store key for an email address.

    The store matches keys exactly; request handlers pass every address
    through this first so "Alice@X.com " and "alice@x.com" share one record.
    """
    return email.strip().lower()


def acceptance_key(bond_id: str, email: str) -> str:
    """Acceptance store key pairing one invitee with one bond offer."""
    return f"{bond_id}:{normalize_email(email)}"


def generate_pin() -> str:
    """Generate a 6-digit PIN without a leading zero.

    Returns:
        Decimal string uniformly drawn from [100000, 999999].
    """
    return str(_PIN_MIN + secrets.randbelow(_PIN_MAX - _PIN_MIN + 1))


@dataclass(frozen=True)
class AccessCodeRecord:
    """An outstanding one-time PIN.

    Attributes:
        email: Key of the record, matched exactly.
        pin: 6-digit code.
        country: Opaque metadata from the access request.
        expires_at: When the PIN stops verifying. None means never.
    """

    email: str
    pin: str
    country: str | None = None
    expires_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class AccessCodeStore:
    """Key-addressed custody of outstanding PINs (the key is usually an email).

    Every operation holds the store lock, so a concurrent get() never sees a
    record mid-replacement and verify() cannot race another verify() for the
    same email. Request handlers run both on the event loop and in the
    threadpool, hence threading.Lock rather than asyncio.Lock.
    """

    def __init__(self, ttl_minutes: int | None = DEFAULT_CODE_TTL_MINUTES) -> None:
        """Initialize the store.

        Args:
            ttl_minutes: Lifetime stamped on records that carry no expiry.
                None disables expiry.
        """
        self._codes: dict[str, AccessCodeRecord] = {}
        self._lock = threading.Lock()
        self._ttl_minutes = ttl_minutes

    def __len__(self) -> int:
        with self._lock:
            return len(self._codes)

    def upsert(self, record: AccessCodeRecord) -> AccessCodeRecord:
        """Insert or replace the record for record.email (last write wins).

        Args:
            record: Record to store. It is never modified; the stored copy
                carries the stamped expiry.

        Returns:
            The stored record.

        Raises:
            ValidationError: If the email is empty.
        """
        if not record.email or not record.email.strip():
            raise ValidationError("Email is required")

        if record.expires_at is None and self._ttl_minutes is not None:
            record = replace(
                record,
                expires_at=datetime.now(UTC) + timedelta(minutes=self._ttl_minutes),
            )

        with self._lock:
            self._codes[record.email] = record
        return record

    def issue(self, email: str, country: str | None = None) -> AccessCodeRecord:
        """Generate a fresh PIN for email, invalidating any previous one.

        Args:
            email: Address the PIN is delivered to.
            country: Optional metadata kept with the record.

        Returns:
            The stored record (carries the plain PIN for delivery).
        """
        return self.upsert(
            AccessCodeRecord(email=email, pin=generate_pin(), country=country)
        )

    def get(self, email: str) -> AccessCodeRecord | None:
        """Look up the outstanding record for email.

        Args:
            email: Exact key.

        Returns:
            The record, or None if absent or expired.
        """
        with self._lock:
            record = self._codes.get(email)
        if record is None or record.is_expired(datetime.now(UTC)):
            return None
        return record

    def remove(self, email: str) -> None:
        """Delete the record for email. No-op if absent."""
        with self._lock:
            self._codes.pop(email, None)

    def consume(self, email: str, pin: str) -> AccessCodeRecord | None:
        """Remove and return the record for email if pin matches.

        The lookup, comparison and removal happen under one lock acquisition.
        A mismatch leaves the record untouched; an expired record is purged.

        Args:
            email: Exact key.
            pin: Code supplied by the caller.

        Returns:
            The consumed record on the first matching call, None otherwise.
        """
        now = datetime.now(UTC)
        with self._lock:
            record = self._codes.get(email)
            if record is None:
                return None
            if record.is_expired(now):
                del self._codes[email]
                return None
            if not hmac.compare_digest(record.pin.encode(), pin.encode()):
                return None
            del self._codes[email]
            return record

    def verify(self, email: str, pin: str) -> bool:
        """Consume the PIN for email if it matches.

        Returns:
            True on the first matching call only, False otherwise.
        """
        return self.consume(email, pin) is not None

    def restore(self, record: AccessCodeRecord) -> bool:
        """Put a consumed record back unless a newer one took its place.

        Used when the action a PIN was spent on could not be completed.

        Returns:
            True if the record is outstanding again.
        """
        if record.is_expired(datetime.now(UTC)):
            return False
        with self._lock:
            return self._codes.setdefault(record.email, record) is record

    def cleanup_expired(self) -> int:
        """Remove all expired records.

        Returns:
            Number of records removed.
        """
        now = datetime.now(UTC)
        with self._lock:
            expired = [
                email for email, record in self._codes.items() if record.is_expired(now)
            ]
            for email in expired:
                del self._codes[email]
        return len(expired)

    def clear(self) -> None:
        """Clear all records (for testing)."""
        with self._lock:
            self._codes.clear()


_registration_codes: AccessCodeStore | None = None
_acceptance_codes: AccessCodeStore | None = None


def get_access_code_store() -> AccessCodeStore:
    """Get the store holding broker registration PINs."""
    global _registration_codes
    if _registration_codes is None:
        _registration_codes = AccessCodeStore(
            ttl_minutes=settings.access_code_ttl_minutes
        )
    return _registration_codes


def get_acceptance_code_store() -> AccessCodeStore:
    """Get the store holding bond acceptance PINs.

    Records are keyed by acceptance_key(bond_id, email), so each invitation
    holds its own PIN. Acceptance PINs live as long as the invitation token
    they pair with.
    """
    global _acceptance_codes
    if _acceptance_codes is None:
        _acceptance_codes = AccessCodeStore(
            ttl_minutes=max(1, settings.invitation_token_ttl_seconds // 60)
        )
    return _acceptance_codes


def reset_access_code_stores() -> None:
    """Reset both store singletons (for testing)."""
    global _registration_codes, _acceptance_codes
    for store in (_registration_codes, _acceptance_codes):
        if store is not None:
            store.clear()
    _registration_codes = None
    _acceptance_codes = None
