"""Subscription rules and in-process event routing.

Rules mirror the bus patterns each stage subscribes with: the narrow
transform and load rules match on detail type plus status, while the
observe rule matches the whole pipeline namespace.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
import json
from typing import Any, Callable, Mapping, Sequence
import uuid

from core.constants import EVENT_SOURCE
from core.errors import EtlError, MalformedEventError
from core.logging_config import get_logger
from events.envelope import EventKind, format_event_time, read_detail

_LOGGER = get_logger(__name__)

EventHandler = Callable[[Mapping[str, Any]], Any]


@dataclass(frozen=True)
class EventRule:
    """Event pattern a stage subscribes with.

    Attributes:
        name: Rule name.
        description: Human-readable purpose.
        source: Namespace the rule matches.
        detail_types: Accepted detail types, ``None`` matches any.
        statuses: Accepted ``detail.status`` values, ``None`` matches any.
    """

    name: str
    description: str
    source: str = EVENT_SOURCE
    detail_types: tuple[str, ...] | None = None
    statuses: tuple[str, ...] | None = None

    @classmethod
    def for_kind(cls, name: str, description: str, kind: EventKind) -> "EventRule":
        return cls(
            name=name,
            description=description,
            detail_types=(kind.detail_type,),
            statuses=(kind.status,),
        )

    def matches(self, raw_event: Mapping[str, Any]) -> bool:
        """Return whether a delivered event satisfies this pattern."""
        if raw_event.get("source") != self.source:
            return False
        if self.detail_types is not None and raw_event.get("detail-type") not in self.detail_types:
            return False
        if self.statuses is None:
            return True
        try:
            status = read_detail(raw_event).get("status")
        except MalformedEventError:
            return False
        return status in self.statuses

    def to_pattern(self) -> dict[str, Any]:
        """Render the rule as a bus event pattern."""
        pattern: dict[str, Any] = {"source": [self.source]}
        if self.detail_types is not None:
            pattern["detail-type"] = list(self.detail_types)
        if self.statuses is not None:
            pattern["detail"] = {"status": list(self.statuses)}
        return pattern


TRANSFORM_RULE = EventRule.for_kind(
    "transformRule", "Data extracted from storage, needs transformed", EventKind.EXTRACTED
)
LOAD_RULE = EventRule.for_kind(
    "loadRule", "Data transformed, needs loaded into the store", EventKind.TRANSFORMED
)
OBSERVE_RULE = EventRule(
    name="observeRule",
    description="All pipeline events are caught here and logged centrally",
)
PIPELINE_RULES = (TRANSFORM_RULE, LOAD_RULE, OBSERVE_RULE)


@dataclass(frozen=True)
class DeliveryFailure:
    """A subscriber invocation that raised while handling an event."""

    rule_name: str
    event: Mapping[str, Any]
    error: Exception


class LocalEventBus:
    """In-process bus that routes published entries to subscribed handlers.

    The bus exposes the same ``put_events`` call as the remote bus client,
    so stages publish into it unchanged. Delivery is breadth-first and
    happens after the publishing call returns; handler failures are kept
    in ``failures`` the way a dead-letter target would keep them.
    """

    def __init__(self) -> None:
        self._subscriptions: list[tuple[EventRule, EventHandler]] = []
        self._pending: deque[dict[str, Any]] = deque()
        self._delivering = False
        self.delivered: list[dict[str, Any]] = []
        self.failures: list[DeliveryFailure] = []

    def subscribe(self, rule: EventRule, handler: EventHandler) -> None:
        self._subscriptions.append((rule, handler))

    def put_events(self, Entries: Sequence[Mapping[str, Any]]) -> dict[str, Any]:  # noqa: N803
        result_entries = []
        for entry in Entries:
            event = _entry_to_event(entry)
            self._pending.append(event)
            result_entries.append({"EventId": event["id"]})
        self._drain()
        return {"FailedEntryCount": 0, "Entries": result_entries}

    def _drain(self) -> None:
        if self._delivering:
            return
        self._delivering = True
        try:
            while self._pending:
                self._deliver(self._pending.popleft())
        finally:
            self._delivering = False

    def _deliver(self, event: dict[str, Any]) -> None:
        self.delivered.append(event)
        for rule, handler in self._subscriptions:
            if not rule.matches(event):
                continue
            try:
                handler(event)
            except EtlError as error:
                _LOGGER.error(
                    "local_delivery_failed",
                    rule_name=rule.name,
                    detail_type=event.get("detail-type"),
                    error_kind=error.kind.value,
                    retryable=error.retryable,
                    error=str(error),
                )
                self.failures.append(DeliveryFailure(rule.name, event, error))


def _entry_to_event(entry: Mapping[str, Any]) -> dict[str, Any]:
    timestamp = entry.get("Time") or datetime.now(timezone.utc)
    if isinstance(timestamp, datetime):
        timestamp = format_event_time(timestamp)
    return {
        "version": "0",
        "id": str(uuid.uuid4()),
        "source": entry.get("Source"),
        "detail-type": entry.get("DetailType"),
        "time": timestamp,
        "detail": json.loads(entry.get("Detail") or "{}"),
    }
