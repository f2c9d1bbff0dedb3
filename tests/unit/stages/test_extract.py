"""Unit tests for the extractor coordinator."""

from __future__ import annotations

import pytest

from core.config import EtlConfig
from core.errors import JobDispatchError, MalformedNotificationError, PublishError
from core.types import LandingNotification
from events.publisher import EventPublisher
from ingest.job_dispatch import JobDispatcher
from stages.extract import (
    ExtractCoordinator,
    ExtractorSettings,
    build_run_task_request,
    iter_notification_candidates,
    parse_notification,
)
from tests.fakes import (
    FakeEcsClient,
    FakeEventsClient,
    extraction_config_env,
    queue_event,
    storage_record,
)


def _coordinator(ecs: FakeEcsClient, events: FakeEventsClient) -> ExtractCoordinator:
    settings = ExtractorSettings.from_config(EtlConfig.from_env(extraction_config_env()))
    return ExtractCoordinator(settings, JobDispatcher(ecs), EventPublisher(events))


def test_single_notification_dispatches_one_job_and_event() -> None:
    """One landed object should start one job and publish ecs-started."""
    ecs, events = FakeEcsClient(), FakeEventsClient()
    event = queue_event({"Records": [storage_record("landing", "file1.csv")]})

    summary = _coordinator(ecs, events).handle(event)

    assert summary.dispatched == ("file1.csv",) and summary.skipped == 0
    assert ecs.overrides(0) == {"S3_BUCKET_NAME": "landing", "S3_OBJECT_KEY": "file1.csv"}
    assert [entry["DetailType"] for entry in events.entries] == ["ecs-started"]
    assert events.details()[0]["status"] == "success"
    assert events.details()[0]["data"]["tasks"][0]["createdAt"].startswith("2024-01-01")


@pytest.mark.parametrize(
    "broken",
    [
        storage_record(key="b.csv", include_arn=False),
        storage_record(key="b.csv", arn=""),
    ],
    ids=["arn-absent", "arn-empty"],
)
def test_malformed_notification_is_skipped(broken: dict) -> None:
    """An entry missing its bucket ARN should not block the others."""
    ecs, events = FakeEcsClient(), FakeEventsClient()
    records = [storage_record(key="a.csv"), broken, storage_record(key="c.csv")]

    summary = _coordinator(ecs, events).handle(queue_event({"Records": records}))

    assert summary.dispatched == ("a.csv", "c.csv") and summary.skipped == 1
    assert len(ecs.requests) == 2 and len(events.entries) == 2


def test_every_wrapper_message_is_flattened() -> None:
    """Each queue message may carry its own batch of notifications."""
    ecs, events = FakeEcsClient(), FakeEventsClient()
    event = queue_event(
        {"Records": [storage_record(key="a.csv"), storage_record(key="b.csv")]},
        {"Records": [storage_record(key="c.csv")]},
    )

    summary = _coordinator(ecs, events).handle(event)

    assert summary.dispatched == ("a.csv", "b.csv", "c.csv")
    assert [ecs.overrides(i)["S3_OBJECT_KEY"] for i in range(3)] == ["a.csv", "b.csv", "c.csv"]


def test_non_notification_messages_are_skipped() -> None:
    """Test events and unparseable bodies should be skipped, not fatal."""
    ecs, events = FakeEcsClient(), FakeEventsClient()
    event = queue_event({"Event": "s3:TestEvent"}, "not json", {"Records": [storage_record()]})

    summary = _coordinator(ecs, events).handle(event)

    assert summary.skipped == 2 and len(ecs.requests) == 1


def test_dispatch_failure_aborts_remaining_batch() -> None:
    """A failed dispatch should raise and stop later notifications."""
    ecs, events = FakeEcsClient(fail_on_call=2), FakeEventsClient()
    records = [storage_record(key=f"{name}.csv") for name in ("a", "b", "c")]

    with pytest.raises(JobDispatchError) as raised:
        _coordinator(ecs, events).handle(queue_event({"Records": records}))

    assert raised.value.retryable
    assert len(ecs.requests) == 2 and len(events.entries) == 1


def test_publish_failure_after_dispatch_is_raised() -> None:
    """A job-started event that cannot be published should fail the batch."""
    ecs, events = FakeEcsClient(), FakeEventsClient(error=RuntimeError("down"))

    with pytest.raises(PublishError):
        _coordinator(ecs, events).handle(queue_event({"Records": [storage_record()]}))

    assert len(ecs.requests) == 1


def test_overrides_are_rebuilt_per_notification() -> None:
    """Requests for different objects should not share override state."""
    settings = ExtractorSettings.from_config(EtlConfig.from_env(extraction_config_env()))
    first = build_run_task_request(settings, LandingNotification("b", "arn", "one.csv"))
    second = build_run_task_request(settings, LandingNotification("b", "arn", "two.csv"))

    first_env = first["overrides"]["containerOverrides"][0]["environment"]
    second_env = second["overrides"]["containerOverrides"][0]["environment"]

    assert first_env is not second_env
    assert first_env[1]["value"] == "one.csv" and second_env[1]["value"] == "two.csv"
    assert first["count"] == 1 and first["launchType"] == "FARGATE"
    assert first["networkConfiguration"]["awsvpcConfiguration"]["subnets"] == ["subnet-a", "subnet-b"]


def test_parse_notification_decodes_object_key() -> None:
    """Encoded object keys should be decoded before dispatch."""
    notification = parse_notification(storage_record(key="my+file%281%29.csv"), "msg-0")

    assert notification.object_key == "my file(1).csv"
    assert notification.message_id == "msg-0"


def test_parse_notification_names_missing_fields() -> None:
    """Validation errors should name every missing field."""
    with pytest.raises(MalformedNotificationError) as raised:
        parse_notification({"s3": {"bucket": {"name": "landing"}}})



def test_parse_notification_rejects_absent_bucket_arn() -> None:
    """A record whose bucket section has no ARN key should name only that field."""
    with pytest.raises(MalformedNotificationError, match="bucketARN") as raised:
        parse_notification(storage_record(key="b.csv", include_arn=False))

    assert "objectKey" not in str(raised.value)
    assert "objectKey" in str(raised.value) and "bucketARN" in str(raised.value)


def test_unwrapped_storage_records_are_accepted() -> None:
    """Storage notifications delivered without a queue wrapper should be used directly."""
    candidates = list(iter_notification_candidates({"Records": [storage_record()]}))

    assert candidates == [(None, storage_record())]
