"""Transformer stage.

Turns one extracted row into a header-to-value mapping. Splitting is a
plain split on the delimiter with no quoting or escaping, so a field
that itself contains a comma is not supported. A row whose value count
differs from its header count is rejected instead of being padded or
truncated.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from core.constants import FIELD_DELIMITER
from core.errors import EtlError, SchemaMismatchError
from core.logging_config import get_logger
from core.types import FieldMapping
from events.envelope import EventKind, TransformedPayload, build_envelope, decode_event
from events.publisher import EventPublisher

_LOGGER = get_logger(__name__, stage="transform")


def split_delimited(line: str, delimiter: str = FIELD_DELIMITER) -> list[str]:
    """Split a delimited line positionally; no quote handling."""
    return line.split(delimiter)


def build_field_mapping(headers: Sequence[str], values: Sequence[str]) -> FieldMapping:
    """Zip headers to values positionally.

    Raises:
        SchemaMismatchError: If the counts differ or a header repeats.
    """
    duplicates = sorted({header for header in headers if headers.count(header) > 1})
    if duplicates:
        raise SchemaMismatchError(
            f"Header line repeats {duplicates}; each header must name one column."
        )
    if len(headers) != len(values):
        raise SchemaMismatchError(
            f"Row has {len(values)} value(s) for {len(headers)} header(s); "
            f"headers={list(headers)}."
        )
    return dict(zip(headers, values))


def transform_row(headers: str, data: str) -> FieldMapping:
    """Map one header line and one data line to a field mapping."""
    return build_field_mapping(split_delimited(headers), split_delimited(data))


class Transformer:
    """Consumes extracted events and emits transformed events."""

    def __init__(self, publisher: EventPublisher) -> None:
        self._publisher = publisher

    def handle(self, event: Mapping[str, Any]) -> FieldMapping:
        """Transform one extracted event and publish the mapping.

        Raises:
            MalformedEventError: If the event is not an extracted row.
            SchemaMismatchError: If header and value counts differ.
            PublishError: If the transformed event cannot be published.
        """
        try:
            envelope = decode_event(event, EventKind.EXTRACTED)
            mapping = transform_row(envelope.payload.headers, envelope.payload.data)
            self._publisher.publish(build_envelope(TransformedPayload(mapping=mapping)))
        except EtlError as error:
            _LOGGER.error(
                "transform_failed",
                event_id=event.get("id"),
                error_kind=error.kind.value,
                error=str(error),
            )
            raise
        _LOGGER.info("row_transformed", event_id=event.get("id"), field_count=len(mapping))
        return mapping
