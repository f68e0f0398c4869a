"""Repositories for portal records.

In mock mode (USE_MOCK=true) records come from the JSON fixtures bundled in
portal/fixtures. Otherwise the system of record is an external back office
that this service does not integrate with yet, so every query is empty and
every mutation reports the record as not found.

Status changes (soft delete, restore, broker review) are kept in a
process-local overlay on top of the fixtures. Each one appends an edit
history entry to the record.
"""

import json
import threading
import uuid
from collections.abc import Callable, Collection
from datetime import UTC, datetime
from functools import lru_cache
from pathlib import Path
from typing import Generic, TypeVar

from portal.core.config import settings
from portal.core.errors import InvalidStateError
from portal.schemas.records import (
    LIVE_STATUSES,
    SOFT_DELETED,
    BeneficiaryRecord,
    BrokerRecord,
    EditHistoryEntry,
    OfferRecord,
    PolicyholderRecord,
    PortalRecord,
    ProposalRecord,
)

_FIXTURES_DIR = Path(__file__).resolve().parent.parent / "fixtures"

# Status a restored record returns to when its history does not say
_DEFAULT_RESTORE_STATUS = "pending"

R = TypeVar("R", bound=PortalRecord)


@lru_cache(maxsize=None)
def _load_fixture(filename: str) -> list[dict]:
    """Read and cache a fixture file.

    Args:
        filename: File name inside portal/fixtures.

    Returns:
        Parsed list of raw record dicts.
    """
    with (_FIXTURES_DIR / filename).open(encoding="utf-8") as fh:
        return json.load(fh)


def _status_before_deletion(record: PortalRecord) -> str:
    for entry in reversed(record.edit_history):
        if entry.changes.get("status") == SOFT_DELETED:
            previous = entry.changes.get("previous_status")
            if previous in LIVE_STATUSES:
                return previous
            break
    return _DEFAULT_RESTORE_STATUS


class RecordRepository(Generic[R]):
    """Queries and status changes for one record type.

    Attributes:
        resource: Human-readable resource name used in error messages.
        model: Pydantic model records are validated into.
    """

    def __init__(
        self,
        resource: str,
        model: type[R],
        fixture: str,
        *,
        use_mock: bool | None = None,
    ) -> None:
        """Initialize the repository.

        Args:
            resource: Resource name, e.g. "Proposal".
            model: Pydantic model each record is validated into.
            fixture: Fixture file name.
            use_mock: Override for settings.use_mock (tests).
        """
        self.resource = resource
        self.model = model
        self._fixture = fixture
        self._use_mock = use_mock
        self._changed: dict[str, R] = {}
        self._lock = threading.Lock()

    def _mock_enabled(self) -> bool:
        return settings.use_mock if self._use_mock is None else self._use_mock

    def _records(self) -> list[R]:
        if not self._mock_enabled():
            return []
        with self._lock:
            changed = dict(self._changed)
        return [
            changed.get(raw["id"]) or self.model.model_validate(raw)
            for raw in _load_fixture(self._fixture)
        ]

    def _current(self, record_id: str) -> R | None:
        """Current version of a record. Caller holds the lock."""
        if not self._mock_enabled():
            return None
        if record_id in self._changed:
            return self._changed[record_id]
        for raw in _load_fixture(self._fixture):
            if raw["id"] == record_id:
                return self.model.model_validate(raw)
        return None

    def find_all(self, *, include_deleted: bool = False) -> list[R]:
        """List records, hiding soft-deleted ones unless asked.

        Args:
            include_deleted: Include records with status soft_deleted.

        Returns:
            Records in fixture order.
        """
        records = self._records()
        if include_deleted:
            return records
        return [r for r in records if r.status != SOFT_DELETED]

    def find_deleted(self) -> list[R]:
        """List soft-deleted records only."""
        return [r for r in self._records() if r.status == SOFT_DELETED]

    def get(self, record_id: str) -> R | None:
        """Look up a record by id, including soft-deleted ones.

        Returns:
            The record, or None if not found.
        """
        with self._lock:
            return self._current(record_id)

    def history(self, record_id: str) -> list[EditHistoryEntry] | None:
        """Edit history of a record.

        Returns:
            History entries oldest first, or None if the record is not found.
        """
        record = self.get(record_id)
        if record is None:
            return None
        return record.edit_history

    def _transition(
        self,
        record_id: str,
        *,
        action: str,
        allowed_from: Collection[str],
        next_status: Callable[[R], str],
        user_id: str,
        user_name: str,
    ) -> R | None:
        with self._lock:
            record = self._current(record_id)
            if record is None:
                return None
            if record.status not in allowed_from:
                raise InvalidStateError(
                    f"{self.resource} '{record_id}' cannot be "
                    f"{action.lower()} while {record.status}"
                )
            status = next_status(record)
            entry = EditHistoryEntry(
                id=str(uuid.uuid4()),
                timestamp=datetime.now(UTC).isoformat(),
                user_id=user_id,
                user_name=user_name,
                action=action,
                changes={"status": status, "previous_status": record.status},
            )
            updated = record.model_copy(
                update={
                    "status": status,
                    "edit_history": [*record.edit_history, entry],
                }
            )
            self._changed[record_id] = updated
            return updated

    def soft_delete(self, record_id: str, *, user_id: str, user_name: str) -> R | None:
        """Move a record to the bin.

        Returns:
            The updated record, or None if not found.

        Raises:
            InvalidStateError: The record is already soft-deleted.
        """
        return self._transition(
            record_id,
            action="Soft Deleted",
            allowed_from=LIVE_STATUSES,
            next_status=lambda _record: SOFT_DELETED,
            user_id=user_id,
            user_name=user_name,
        )

    def restore(self, record_id: str, *, user_id: str, user_name: str) -> R | None:
        """Take a record out of the bin, back to its status before deletion.

        Returns:
            The updated record, or None if not found.

        Raises:
            InvalidStateError: The record is not soft-deleted.
        """
        return self._transition(
            record_id,
            action="Restored",
            allowed_from={SOFT_DELETED},
            next_status=_status_before_deletion,
            user_id=user_id,
            user_name=user_name,
        )

    def review(
        self, record_id: str, *, approved: bool, user_id: str, user_name: str
    ) -> R | None:
        """Approve or decline a pending record.

        Returns:
            The updated record, or None if not found.

        Raises:
            InvalidStateError: The record is not pending.
        """
        status = "approved" if approved else "declined"
        return self._transition(
            record_id,
            action=status.capitalize(),
            allowed_from={"pending"},
            next_status=lambda _record: status,
            user_id=user_id,
            user_name=user_name,
        )

    def reset(self) -> None:
        """Drop every status change (for testing)."""
        with self._lock:
            self._changed.clear()


brokers = RecordRepository("Broker", BrokerRecord, "brokers.json")
policyholders = RecordRepository(
    "Policyholder", PolicyholderRecord, "policyholders.json"
)
proposals = RecordRepository("Proposal", ProposalRecord, "proposals.json")
beneficiaries = RecordRepository(
    "Beneficiary", BeneficiaryRecord, "beneficiaries.json"
)
offers = RecordRepository("Offer", OfferRecord, "offers.json")


def reset_record_changes() -> None:
    """Drop status changes on every repository (for testing)."""
    for repo in (brokers, policyholders, proposals, beneficiaries, offers):
        repo.reset()
