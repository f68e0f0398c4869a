"""In-memory store for submitted broker registrations.

Registrations wait in "pending_review" until a wholesaler reviews them in the
external back office. The store keeps the most recent submissions only;
when full, the oldest is dropped.
"""

import threading
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from portal.schemas.registration import BrokerRegistrationRequest

PENDING_REVIEW = "pending_review"

# Submissions kept in memory
DEFAULT_MAX_REGISTRATIONS = 1_000


@dataclass
class BrokerRegistration:
    """A submitted broker registration."""

    id: str
    form: BrokerRegistrationRequest
    status: str = PENDING_REVIEW
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class RegistrationStore:
    """Thread-safe, bounded map of submitted registrations by id."""

    def __init__(self, max_registrations: int = DEFAULT_MAX_REGISTRATIONS) -> None:
        """Initialize the store.

        Args:
            max_registrations: Capacity; the oldest submission is evicted when
                a new one would exceed it.
        """
        self._registrations: dict[str, BrokerRegistration] = {}
        self._lock = threading.Lock()
        self._max_registrations = max_registrations

    def submit(self, form: BrokerRegistrationRequest) -> BrokerRegistration:
        """Store a registration with status pending_review.

        Args:
            form: Validated registration form.

        Returns:
            The stored registration with its generated id.
        """
        registration = BrokerRegistration(id=str(uuid.uuid4()), form=form)
        with self._lock:
            self._registrations[registration.id] = registration
            while len(self._registrations) > self._max_registrations:
                # Insertion order: the first key is the oldest submission
                del self._registrations[next(iter(self._registrations))]
        return registration

    def __len__(self) -> int:
        with self._lock:
            return len(self._registrations)

    def get(self, registration_id: str) -> BrokerRegistration | None:
        with self._lock:
            return self._registrations.get(registration_id)

    def clear(self) -> None:
        """Drop all registrations (for testing)."""
        with self._lock:
            self._registrations.clear()


_registration_store: RegistrationStore | None = None


def get_registration_store() -> RegistrationStore:
    """Get the singleton registration store."""
    global _registration_store
    if _registration_store is None:
        _registration_store = RegistrationStore()
    return _registration_store


def reset_registration_store() -> None:
    """Reset the registration store singleton (for testing)."""
    global _registration_store
    if _registration_store is not None:
        _registration_store.clear()
    _registration_store = None
