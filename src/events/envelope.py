"""Typed event envelopes exchanged between pipeline stages.

Every stage output is one of a closed set of ``EventKind`` variants,
each identified by its ``(detail_type, status)`` pair and carrying a
payload type of its own. Stages decode inbound bus events against the
variant they subscribe to instead of probing untyped fields.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
import json
from typing import Any, ClassVar, Mapping, Union
import uuid

from core.constants import (
    DETAIL_TYPE_EXTRACTED,
    DETAIL_TYPE_JOB_STARTED,
    DETAIL_TYPE_LOADED,
    DETAIL_TYPE_TRANSFORMED,
    EVENT_SOURCE,
    STATUS_EXTRACTED,
    STATUS_SUCCESS,
    STATUS_TRANSFORMED,
)
from core.errors import MalformedEventError
from core.types import FieldMapping


class EventKind(Enum):
    """Closed set of lifecycle events and their dispatch keys."""

    EXTRACTED = (DETAIL_TYPE_EXTRACTED, STATUS_EXTRACTED)
    TRANSFORMED = (DETAIL_TYPE_TRANSFORMED, STATUS_TRANSFORMED)
    LOADED = (DETAIL_TYPE_LOADED, STATUS_SUCCESS)
    JOB_STARTED = (DETAIL_TYPE_JOB_STARTED, STATUS_SUCCESS)

    def __init__(self, detail_type: str, status: str) -> None:
        self.detail_type = detail_type
        self.status = status

    @classmethod
    def lookup(cls, detail_type: str | None, status: str | None) -> "EventKind | None":
        for kind in cls:
            if kind.detail_type == detail_type and kind.status == status:
                return kind
        return None


@dataclass(frozen=True)
class ExtractedPayload:
    """One raw delimited row plus the header line it belongs to."""

    kind: ClassVar[EventKind] = EventKind.EXTRACTED

    headers: str
    data: str

    def to_detail(self) -> dict[str, Any]:
        return {"headers": self.headers, "data": self.data}

    @classmethod
    def from_detail(cls, detail: Mapping[str, Any]) -> "ExtractedPayload":
        headers = detail.get("headers")
        data = detail.get("data")
        if not isinstance(headers, str) or not isinstance(data, str):
            raise MalformedEventError(
                "Extracted event detail must carry string fields 'headers' and 'data'."
            )
        return cls(headers=headers, data=data)


@dataclass(frozen=True)
class TransformedPayload:
    """Header-to-value mapping built from one extracted row."""

    kind: ClassVar[EventKind] = EventKind.TRANSFORMED

    mapping: FieldMapping

    def to_detail(self) -> dict[str, Any]:
        return {"data": dict(self.mapping)}

    @classmethod
    def from_detail(cls, detail: Mapping[str, Any]) -> "TransformedPayload":
        data = detail.get("data")
        if not isinstance(data, dict) or not all(
            isinstance(key, str) and isinstance(value, str) for key, value in data.items()
        ):
            raise MalformedEventError(
                "Transformed event detail must carry a string-to-string mapping in 'data'."
            )
        return cls(mapping=dict(data))


@dataclass(frozen=True)
class LoadedPayload:
    """Echo of the item written to the store."""

    kind: ClassVar[EventKind] = EventKind.LOADED

    record: Mapping[str, str]

    def to_detail(self) -> dict[str, Any]:
        return {"data": dict(self.record)}

    @classmethod
    def from_detail(cls, detail: Mapping[str, Any]) -> "LoadedPayload":
        data = detail.get("data")
        if not isinstance(data, dict):
            raise MalformedEventError("Loaded event detail must carry the written item in 'data'.")
        return cls(record=dict(data))


@dataclass(frozen=True)
class JobStartedPayload:
    """Result returned by the job-execution service for one dispatch."""

    kind: ClassVar[EventKind] = EventKind.JOB_STARTED

    job: Mapping[str, Any]

    def to_detail(self) -> dict[str, Any]:
        return {"data": dict(self.job)}

    @classmethod
    def from_detail(cls, detail: Mapping[str, Any]) -> "JobStartedPayload":
        data = detail.get("data")
        if not isinstance(data, dict):
            raise MalformedEventError("Job started event detail must carry the job in 'data'.")
        return cls(job=dict(data))


EventPayload = Union[ExtractedPayload, TransformedPayload, LoadedPayload, JobStartedPayload]

_PAYLOAD_TYPES: dict[EventKind, type] = {
    EventKind.EXTRACTED: ExtractedPayload,
    EventKind.TRANSFORMED: TransformedPayload,
    EventKind.LOADED: LoadedPayload,
    EventKind.JOB_STARTED: JobStartedPayload,
}


@dataclass(frozen=True)
class EventEnvelope:
    """Canonical cross-stage message.

    Attributes:
        payload: Typed payload; its class fixes the event kind.
        timestamp: Creation time set by the producing stage.
        source: Pipeline namespace, always ``EVENT_SOURCE`` for stage output.
        event_id: Bus-assigned id for delivered events, ``None`` before publish.
    """

    payload: EventPayload
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: str = EVENT_SOURCE
    event_id: str | None = None

    @property
    def kind(self) -> EventKind:
        return self.payload.kind

    @property
    def detail_type(self) -> str:
        return self.kind.detail_type

    @property
    def status(self) -> str:
        return self.kind.status

    def detail(self) -> dict[str, Any]:
        """Render the wire ``detail`` object, status first."""
        return {"status": self.status, **self.payload.to_detail()}

    def to_entry(self, event_bus_name: str) -> dict[str, Any]:
        """Render a bus ``PutEvents`` entry."""
        return {
            "Source": self.source,
            "DetailType": self.detail_type,
            "Detail": json.dumps(self.detail(), default=str),
            "Time": self.timestamp,
            "EventBusName": event_bus_name,
        }

    def to_event(self) -> dict[str, Any]:
        """Render the event as a subscriber receives it from the bus."""
        return {
            "version": "0",
            "id": self.event_id or str(uuid.uuid4()),
            "source": self.source,
            "detail-type": self.detail_type,
            "time": format_event_time(self.timestamp),
            "detail": json.loads(json.dumps(self.detail(), default=str)),
        }


def format_event_time(value: datetime) -> str:
    """Render a timestamp as a UTC ``Z`` string; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_envelope(payload: EventPayload, now: datetime | None = None) -> EventEnvelope:
    """Wrap a payload in an envelope stamped with the pipeline namespace."""
    return EventEnvelope(payload=payload, timestamp=now or datetime.now(timezone.utc))


def decode_event(raw_event: Mapping[str, Any], expected: EventKind) -> EventEnvelope:
    """Parse a delivered bus event into an envelope of the expected kind.

    Args:
        raw_event: Event as delivered to a subscriber.
        expected: The only variant the calling stage accepts.

    Returns:
        Envelope carrying a typed payload.

    Raises:
        MalformedEventError: If source, detail type, status, or payload shape differ.
    """
    source = raw_event.get("source")
    if source != EVENT_SOURCE:
        raise MalformedEventError(
            f"Unexpected event source '{source}': expected '{EVENT_SOURCE}'."
        )
    detail = read_detail(raw_event)
    detail_type = raw_event.get("detail-type")
    status = detail.get("status")
    if EventKind.lookup(detail_type, status) is not expected:
        raise MalformedEventError(
            f"Unexpected event {detail_type}/{status}: "
            f"expected {expected.detail_type}/{expected.status}."
        )
    payload = _PAYLOAD_TYPES[expected].from_detail(detail)
    return EventEnvelope(
        payload=payload,
        timestamp=_parse_time(raw_event.get("time")),
        source=source,
        event_id=raw_event.get("id"),
    )


def read_detail(raw_event: Mapping[str, Any]) -> dict[str, Any]:
    """Return the event ``detail`` as a dict, decoding a JSON string if needed.

    Raises:
        MalformedEventError: If detail is neither an object nor a JSON object string.
    """
    detail = raw_event.get("detail")
    if isinstance(detail, str):
        try:
            detail = json.loads(detail)
        except json.JSONDecodeError as error:
            raise MalformedEventError(f"Event detail is not valid JSON: {error.msg}.") from error
    if not isinstance(detail, dict):
        raise MalformedEventError("Event detail must be a JSON object.")
    return detail


def _parse_time(raw_time: Any) -> datetime:
    if isinstance(raw_time, datetime):
        return raw_time
    if isinstance(raw_time, str):
        try:
            return datetime.fromisoformat(raw_time.replace("Z", "+00:00"))
        except ValueError:
            pass
    return datetime.now(timezone.utc)
