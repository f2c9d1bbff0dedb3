"""Event bus publishing for pipeline stages.

This module wraps the bus ``put_events`` call behind a narrow contract.
A failed publish is always raised; a dropped lifecycle event would
silently stall downstream stages and the audit trail.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from core.constants import DEFAULT_EVENT_BUS_NAME, MAX_PUT_EVENTS_ENTRIES
from core.errors import PublishError
from core.logging_config import get_logger
from core.types import PublishAck
from events.envelope import EventEnvelope

_LOGGER = get_logger(__name__)


class EventPublisher:
    """Publishes envelopes to one event bus through an injected client."""

    def __init__(self, events_client: Any, event_bus_name: str = DEFAULT_EVENT_BUS_NAME) -> None:
        self._client = events_client
        self._event_bus_name = event_bus_name

    def publish(self, envelope: EventEnvelope) -> PublishAck:
        """Publish a single envelope.

        Args:
            envelope: Event to put on the bus.

        Returns:
            Bus acknowledgement with the assigned event id.

        Raises:
            PublishError: If the bus call fails or rejects the entry.
        """
        return self._put_entries([envelope])

    def publish_many(self, envelopes: Iterable[EventEnvelope]) -> PublishAck:
        """Publish envelopes in bus-sized batches, stopping at the first failure.

        Raises:
            PublishError: If any batch fails or has rejected entries.
        """
        event_ids: list[str] = []
        batch: list[EventEnvelope] = []
        for envelope in envelopes:
            batch.append(envelope)
            if len(batch) == MAX_PUT_EVENTS_ENTRIES:
                event_ids.extend(self._put_entries(batch).event_ids)
                batch = []
        if batch:
            event_ids.extend(self._put_entries(batch).event_ids)
        return PublishAck(event_ids=tuple(event_ids))

    def _put_entries(self, envelopes: Sequence[EventEnvelope]) -> PublishAck:
        entries = [envelope.to_entry(self._event_bus_name) for envelope in envelopes]
        detail_types = sorted({envelope.detail_type for envelope in envelopes})
        try:
            response = self._client.put_events(Entries=entries)
        except Exception as error:
            _LOGGER.error(
                "event_publish_failed",
                event_bus_name=self._event_bus_name,
                detail_types=detail_types,
                entry_count=len(entries),
                error=str(error),
            )
            raise PublishError(
                f"Failed to put {len(entries)} event(s) {detail_types} "
                f"on bus '{self._event_bus_name}': {error}"
            ) from error
        failed_count = int(response.get("FailedEntryCount", 0) or 0)
        result_entries = response.get("Entries", [])
        if failed_count:
            failures = [entry for entry in result_entries if entry.get("ErrorCode")]
            _LOGGER.error(
                "event_publish_rejected",
                event_bus_name=self._event_bus_name,
                detail_types=detail_types,
                failed_count=failed_count,
                failures=failures,
            )
            raise PublishError(
                f"Bus '{self._event_bus_name}' rejected {failed_count} of "
                f"{len(entries)} event(s) {detail_types}: {failures}"
            )
        event_ids = tuple(entry["EventId"] for entry in result_entries if entry.get("EventId"))
        _LOGGER.info(
            "event_published",
            event_bus_name=self._event_bus_name,
            detail_types=detail_types,
            event_ids=list(event_ids),
        )
        return PublishAck(event_ids=event_ids)
