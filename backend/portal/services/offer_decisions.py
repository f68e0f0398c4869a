"""Acceptance / rejection state of bond offers.

An offer starts "pending" and moves to "accepted" or "rejected" exactly once.
"""

import threading
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Literal

from portal.core.errors import InvalidStateError

DecisionStatus = Literal["accepted", "rejected"]

PENDING = "pending"


@dataclass(frozen=True)
class OfferDecision:
    """Final decision on a bond offer.

    Attributes:
        bond_id: Offer identifier.
        status: "accepted" or "rejected".
        decided_by: Email of the invitee who decided.
        decided_at: When the decision was recorded (UTC).
    """

    bond_id: str
    status: DecisionStatus
    decided_by: str
    decided_at: datetime


class OfferDecisionStore:
    """Thread-safe bond_id -> OfferDecision map."""

    def __init__(self) -> None:
        self._decisions: dict[str, OfferDecision] = {}
        self._lock = threading.Lock()

    def get(self, bond_id: str) -> OfferDecision | None:
        with self._lock:
            return self._decisions.get(bond_id)

    def status(self, bond_id: str) -> str:
        """Current status: "pending", "accepted" or "rejected"."""
        decision = self.get(bond_id)
        return decision.status if decision is not None else PENDING

    def decide(
        self, bond_id: str, status: DecisionStatus, decided_by: str
    ) -> OfferDecision:
        """Record the decision for a pending offer.

        Args:
            bond_id: Offer identifier.
            status: "accepted" or "rejected".
            decided_by: Email of the invitee.

        Returns:
            The stored decision.

        Raises:
            InvalidStateError: If the offer was already decided.
        """
        with self._lock:
            existing = self._decisions.get(bond_id)
            if existing is not None:
                raise InvalidStateError(
                    f"Bond offer '{bond_id}' has already been {existing.status}"
                )
            decision = OfferDecision(
                bond_id=bond_id,
                status=status,
                decided_by=decided_by,
                decided_at=datetime.now(UTC),
            )
            self._decisions[bond_id] = decision
            return decision

    def clear(self) -> None:
        """Drop all decisions (for testing)."""
        with self._lock:
            self._decisions.clear()


_decision_store: OfferDecisionStore | None = None


def get_offer_decision_store() -> OfferDecisionStore:
    """Get the singleton decision store."""
    global _decision_store
    if _decision_store is None:
        _decision_store = OfferDecisionStore()
    return _decision_store


def reset_offer_decision_store() -> None:
    """Reset the decision store singleton (for testing)."""
    global _decision_store
    if _decision_store is not None:
        _decision_store.clear()
    _decision_store = None
