"""Shared typed models.

This module defines immutable data models used by the extraction,
load, and audit stages to keep stage interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping

from core.constants import (
    RECORD_HOUSE_NUMBER_FIELD,
    RECORD_ID_FIELD,
    RECORD_SOURCE_FIELDS,
    RECORD_STREET_FIELD,
    RECORD_TOWN_FIELD,
    RECORD_ZIP_FIELD,
)
from core.errors import MalformedEventError

FieldMapping = dict[str, str]


@dataclass(frozen=True)
class LandingNotification:
    """A newly created storage object that needs extraction.

    Attributes:
        bucket_name: Bucket the object landed in.
        bucket_arn: Fully qualified bucket identifier.
        object_key: Decoded object key inside the bucket.
        message_id: Queue message that carried the notification.
    """

    bucket_name: str
    bucket_arn: str
    object_key: str
    message_id: str | None = None


@dataclass(frozen=True)
class PersistedRecord:
    """Address record written to the key-value store.

    Attributes:
        record_id: Store partition key, taken from the ``ID`` field.
        house_number: Value of ``HouseNum``.
        street_address: Value of ``Street``.
        town: Value of ``Town``.
        zip_code: Value of ``Zip``.
    """

    record_id: str
    house_number: str
    street_address: str
    town: str
    zip_code: str

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, str]) -> "PersistedRecord":
        """Build a record from a transformed field mapping.

        Field names are matched exactly and case-sensitively.

        Raises:
            MalformedEventError: If any source field is missing or the ID is empty.
        """
        missing = [
            name
            for name in RECORD_SOURCE_FIELDS
            if not isinstance(mapping.get(name), str)
        ]
        if not missing and not mapping[RECORD_ID_FIELD]:
            missing = [RECORD_ID_FIELD]
        if missing:
            raise MalformedEventError(
                f"Transformed mapping is missing or has empty required fields {missing}; "
                f"got keys {sorted(mapping)}."
            )
        return cls(
            record_id=mapping[RECORD_ID_FIELD],
            house_number=mapping[RECORD_HOUSE_NUMBER_FIELD],
            street_address=mapping[RECORD_STREET_FIELD],
            town=mapping[RECORD_TOWN_FIELD],
            zip_code=mapping[RECORD_ZIP_FIELD],
        )

    def to_item(self) -> dict[str, str]:
        """Render the record as plain store attributes."""
        return {
            "id": self.record_id,
            "house_number": self.house_number,
            "street_address": self.street_address,
            "town": self.town,
            "zip": self.zip_code,
        }


@dataclass(frozen=True)
class PublishAck:
    """Bus acknowledgement for published events."""

    event_ids: tuple[str, ...]


@dataclass(frozen=True)
class ExtractionSummary:
    """Outcome of one extractor invocation.

    Attributes:
        dispatched: Object keys a job was started for, in dispatch order.
        skipped: Number of notifications skipped as malformed.
    """

    dispatched: tuple[str, ...]
    skipped: int


@dataclass(frozen=True)
class AuditEntry:
    """Observed pipeline event as recorded by the audit stage."""

    source: str | None
    detail_type: str | None
    status: str | None
    time: datetime | str | None
    detail: Any
