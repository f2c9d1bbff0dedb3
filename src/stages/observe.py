"""Observer stage.

Subscribed to the whole pipeline namespace; records every event it sees
and never publishes. Recording failures stop here and are not allowed
to surface as a pipeline failure.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from core.errors import MalformedEventError
from core.logging_config import get_logger
from core.types import AuditEntry
from events.envelope import read_detail

_LOGGER = get_logger(__name__, stage="observe")

AuditRecorder = Callable[[AuditEntry], None]


def log_audit_entry(entry: AuditEntry) -> None:
    """Default recorder: one structured log line per observed event."""
    _LOGGER.info(
        "event_observed",
        source=entry.source,
        detail_type=entry.detail_type,
        status=entry.status,
        time=entry.time,
        detail=entry.detail,
    )


def build_audit_entry(event: Mapping[str, Any]) -> AuditEntry:
    """Describe any delivered event, whatever its kind."""
    try:
        detail: Any = read_detail(event)
        status = detail.get("status")
    except MalformedEventError:
        detail = event.get("detail")
        status = None
    return AuditEntry(
        source=event.get("source"),
        detail_type=event.get("detail-type"),
        status=status,
        time=event.get("time"),
        detail=detail,
    )


class Observer:
    """Records every pipeline event for audit."""

    def __init__(self, recorder: AuditRecorder = log_audit_entry) -> None:
        self._recorder = recorder

    def handle(self, event: Mapping[str, Any]) -> AuditEntry | None:
        """Record one event; returns ``None`` when recording failed."""
        try:
            entry = build_audit_entry(event)
            self._recorder(entry)
        except Exception as error:  # noqa: BLE001
            _LOGGER.warning(
                "event_observation_failed",
                detail_type=event.get("detail-type") if isinstance(event, Mapping) else None,
                error=str(error),
            )
            return None
        return entry
