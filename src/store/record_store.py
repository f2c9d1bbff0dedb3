"""Key-value persistence for loaded address records.

Writes are unconditional puts keyed by ``id``: loading the same
identifier twice leaves one item holding the latest values, which
makes redelivered load events safe to reprocess.
"""

from __future__ import annotations

from typing import Any

from core.errors import PersistError
from core.logging_config import get_logger
from core.types import PersistedRecord

_LOGGER = get_logger(__name__)


class RecordStore:
    """Table-backed record store using an injected DynamoDB client."""

    def __init__(self, dynamodb_client: Any, table_name: str) -> None:
        self._client = dynamodb_client
        self._table_name = table_name

    def upsert(self, record: PersistedRecord) -> dict[str, str]:
        """Write a record, overwriting any item with the same id.

        Args:
            record: Record to persist.

        Returns:
            The plain attribute map that was written.

        Raises:
            PersistError: If the store call fails.
        """
        item = record.to_item()
        try:
            self._client.put_item(TableName=self._table_name, Item=_to_attribute_values(item))
        except Exception as error:
            _LOGGER.error(
                "record_upsert_failed",
                table_name=self._table_name,
                record_id=record.record_id,
                error=str(error),
            )
            raise PersistError(
                f"Failed to put record '{record.record_id}' into table "
                f"'{self._table_name}': {error}"
            ) from error
        _LOGGER.info("record_upserted", table_name=self._table_name, record_id=record.record_id)
        return item


class InMemoryRecordStore:
    """Dict-backed store with the same upsert contract, for local runs."""

    def __init__(self) -> None:
        self.items: dict[str, dict[str, str]] = {}

    def upsert(self, record: PersistedRecord) -> dict[str, str]:
        item = record.to_item()
        self.items[record.record_id] = item
        return item


def _to_attribute_values(item: dict[str, str]) -> dict[str, dict[str, str]]:
    return {name: {"S": value} for name, value in item.items()}
