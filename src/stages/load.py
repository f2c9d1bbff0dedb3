"""Loader stage.

Persists a transformed mapping as an address record keyed by ``ID`` and
emits a loaded event echoing the written item. Either both the write and
the event happen, or the invocation fails and redelivery re-upserts.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from core.errors import EtlError
from core.logging_config import get_logger
from core.types import PersistedRecord
from events.envelope import EventKind, LoadedPayload, build_envelope, decode_event
from events.publisher import EventPublisher

_LOGGER = get_logger(__name__, stage="load")


class RecordWriter(Protocol):
    def upsert(self, record: PersistedRecord) -> dict[str, str]: ...


class Loader:
    """Consumes transformed events and writes records to the store."""

    def __init__(self, store: RecordWriter, publisher: EventPublisher) -> None:
        self._store = store
        self._publisher = publisher

    def handle(self, event: Mapping[str, Any]) -> dict[str, str]:
        """Load one transformed mapping.

        Returns:
            The written item.

        Raises:
            MalformedEventError: If the event or mapping lacks required fields.
            PersistError: If the store write fails.
            PublishError: If the loaded event cannot be published.
        """
        try:
            envelope = decode_event(event, EventKind.TRANSFORMED)
            record = PersistedRecord.from_mapping(envelope.payload.mapping)
            item = self._store.upsert(record)
            self._publisher.publish(build_envelope(LoadedPayload(record=item)))
        except EtlError as error:
            _LOGGER.error(
                "load_failed",
                event_id=event.get("id"),
                error_kind=error.kind.value,
                error=str(error),
            )
            raise
        _LOGGER.info("record_loaded", event_id=event.get("id"), record_id=item["id"])
        return item
