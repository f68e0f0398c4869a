"""In-memory audit trail for registration and bond decision events.

Each event is appended to a bounded process-local buffer and emitted as a
structured log line; the log stream is the durable record, the buffer keeps
only the most recent events. Details must never contain PINs or tokens.
"""

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import structlog

logger = structlog.get_logger("portal.audit")

# Events kept in memory; older ones are only in the log stream
DEFAULT_MAX_EVENTS = 10_000


@dataclass(frozen=True)
class AuditEvent:
    """A single audited action.

    Attributes:
        action: Event name, e.g. "BOND_ACCEPT_SUCCESS".
        resource_type: Kind of resource acted on ("bond", "access_code", ...).
        resource_id: Identifier of the resource, if any.
        user_id: Acting user or email, if known.
        details: Extra non-sensitive context.
        timestamp: When the event was recorded (UTC).
    """

    action: str
    resource_type: str
    resource_id: str | None = None
    user_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "action": self.action,
            "resource_type": self.resource_type,
            "resource_id": self.resource_id,
            "user_id": self.user_id,
            "details": self.details,
        }


class AuditLog:
    """Append-only, thread-safe buffer of the most recent audit events."""

    def __init__(self, max_events: int = DEFAULT_MAX_EVENTS) -> None:
        """Initialize the log.

        Args:
            max_events: Buffer size; the oldest event is dropped when full.
        """
        self._events: deque[AuditEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def record(
        self,
        action: str,
        resource_type: str,
        *,
        resource_id: str | None = None,
        user_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditEvent:
        """Append an event and log it.

        Returns:
            The recorded event.
        """
        event = AuditEvent(
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            user_id=user_id,
            details=details or {},
        )
        with self._lock:
            self._events.append(event)
        logger.info(
            "audit_event",
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            user_id=user_id,
        )
        return event

    def all(self) -> list[AuditEvent]:
        """Return a copy of every event, oldest first."""
        with self._lock:
            return list(self._events)

    def for_resource(self, resource_id: str) -> list[AuditEvent]:
        """Return events for one resource, oldest first."""
        with self._lock:
            return [e for e in self._events if e.resource_id == resource_id]

    def clear(self) -> None:
        """Drop all events (for testing)."""
        with self._lock:
            self._events.clear()


_audit_log: AuditLog | None = None


def get_audit_log() -> AuditLog:
    """Get the singleton audit log."""
    global _audit_log
    if _audit_log is None:
        _audit_log = AuditLog()
    return _audit_log


def reset_audit_log() -> None:
    """Reset the audit log singleton (for testing)."""
    global _audit_log
    if _audit_log is not None:
        _audit_log.clear()
    _audit_log = None
