"""In-memory stand-ins for the bus, job, store, and object clients."""

from __future__ import annotations

import copy
from datetime import datetime, timezone
import json
from typing import Any


class FakeEventsClient:
    """Records ``put_events`` calls and acknowledges every entry."""

    def __init__(self, error: Exception | None = None, reject: bool = False) -> None:
        self.calls: list[list[dict[str, Any]]] = []
        self._error = error
        self._reject = reject

    @property
    def entries(self) -> list[dict[str, Any]]:
        return [entry for call in self.calls for entry in call]

    def details(self) -> list[dict[str, Any]]:
        return [json.loads(entry["Detail"]) for entry in self.entries]

    def put_events(self, Entries: list[dict[str, Any]]) -> dict[str, Any]:  # noqa: N803
        if self._error is not None:
            raise self._error
        self.calls.append(list(Entries))
        if self._reject:
            return {
                "FailedEntryCount": len(Entries),
                "Entries": [{"ErrorCode": "InternalFailure"} for _ in Entries],
            }
        offset = len(self.entries) - len(Entries)
        return {
            "FailedEntryCount": 0,
            "Entries": [{"EventId": f"evt-{offset + index}"} for index in range(len(Entries))],
        }


class FakeEcsClient:
    """Records ``run_task`` requests; can fail on a given call number."""

    def __init__(self, fail_on_call: int | None = None, refuse: bool = False) -> None:
        self.requests: list[dict[str, Any]] = []
        self._fail_on_call = fail_on_call
        self._refuse = refuse

    def run_task(self, **request: Any) -> dict[str, Any]:
        call_number = len(self.requests) + 1
        self.requests.append(copy.deepcopy(request))
        if call_number == self._fail_on_call:
            raise RuntimeError("AccessDeniedException")
        if self._refuse:
            return {"tasks": [], "failures": [{"arn": "arn:ecs:x", "reason": "RESOURCE:MEMORY"}]}
        return {
            "tasks": [
                {
                    "taskArn": f"arn:aws:ecs:us-east-1:123:task/demo/{call_number}",
                    "createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc),
                }
            ],
            "failures": [],
            "ResponseMetadata": {"HTTPStatusCode": 200},
        }

    def overrides(self, index: int) -> dict[str, str]:
        container = self.requests[index]["overrides"]["containerOverrides"][0]
        return {pair["name"]: pair["value"] for pair in container["environment"]}


class FakeDynamoDbClient:
    """Keeps items by ``id`` with unconditional overwrite."""

    def __init__(self, error: Exception | None = None) -> None:
        self.tables: dict[str, dict[str, dict[str, Any]]] = {}
        self._error = error

    def put_item(self, TableName: str, Item: dict[str, Any]) -> dict[str, Any]:  # noqa: N803
        if self._error is not None:
            raise self._error
        self.tables.setdefault(TableName, {})[Item["id"]["S"]] = Item
        return {}


class _FakeBody:
    def __init__(self, content: bytes) -> None:
        self._content = content

    def iter_lines(self):
        yield from self._content.splitlines()


class FakeS3Client:
    """Serves one object's bytes; raises for any other key."""

    def __init__(self, objects: dict[tuple[str, str], bytes]) -> None:
        self._objects = objects

    def get_object(self, Bucket: str, Key: str) -> dict[str, Any]:  # noqa: N803
        if (Bucket, Key) not in self._objects:
            raise RuntimeError("NoSuchKey")
        return {"Body": _FakeBody(self._objects[(Bucket, Key)])}


def storage_record(
    bucket: str = "landing",
    key: str = "file1.csv",
    arn: str | None = None,
    include_arn: bool = True,
) -> dict:
    """Build one storage-creation notification record."""
    bucket_section: dict[str, Any] = {"name": bucket}
    if include_arn:
        bucket_section["arn"] = arn if arn is not None else f"arn:aws:s3:::{bucket}"
    return {"eventName": "ObjectCreated:Put", "s3": {"bucket": bucket_section, "object": {"key": key}}}


def queue_event(*bodies: Any) -> dict[str, Any]:
    """Wrap notification batches in queue records."""
    records = []
    for index, body in enumerate(bodies):
        raw_body = body if isinstance(body, str) else json.dumps(body)
        records.append({"messageId": f"msg-{index}", "body": raw_body})
    return {"Records": records}


def extraction_config_env() -> dict[str, str]:
    return {
        "CLUSTER_NAME": "etl-cluster",
        "TASK_DEFINITION": "arn:aws:ecs:us-east-1:123:task-definition/extract:1",
        "SUBNETS": '["subnet-a", "subnet-b"]',
        "CONTAINER_NAME": "AppContainer",
        "TABLE_NAME": "eventbridge-etl-address",
    }
