"""Extractor coordinator stage.

The coordinator is invoked with a batch of queue messages, each of which
wraps a batch of storage notifications. Every well-formed notification
starts one bulk extraction job with the bucket and key injected into the
job container's environment, followed by a job-started event.

Redelivered notifications start duplicate jobs; no dedup key is kept.
"""

from __future__ import annotations

from dataclasses import dataclass
import json
from typing import Any, Iterator, Mapping
from urllib.parse import unquote_plus

from core.config import EtlConfig
from core.constants import (
    ENV_CLUSTER_NAME,
    ENV_CONTAINER_NAME,
    ENV_S3_BUCKET_NAME,
    ENV_S3_OBJECT_KEY,
    ENV_TASK_DEFINITION,
    JOB_DESIRED_COUNT,
    JOB_LAUNCH_TYPE,
    JOB_PLATFORM_VERSION,
)
from core.errors import EtlError, MalformedNotificationError
from core.logging_config import get_logger
from core.types import ExtractionSummary, LandingNotification
from events.envelope import JobStartedPayload, build_envelope
from events.publisher import EventPublisher
from ingest.job_dispatch import JobDispatcher

_LOGGER = get_logger(__name__, stage="extract")


@dataclass(frozen=True)
class ExtractorSettings:
    """Job identifiers resolved once per extractor invocation."""

    cluster_name: str
    task_definition: str
    subnets: tuple[str, ...]
    container_name: str
    assign_public_ip: str

    @classmethod
    def from_config(cls, config: EtlConfig) -> "ExtractorSettings":
        """Resolve all job identifiers, failing before any external call.

        Raises:
            ConfigMissingError: If any identifier is absent or unusable.
        """
        return cls(
            cluster_name=config.require(ENV_CLUSTER_NAME),
            task_definition=config.require(ENV_TASK_DEFINITION),
            subnets=config.require_subnets(),
            container_name=config.require(ENV_CONTAINER_NAME),
            assign_public_ip=config.assign_public_ip,
        )


def iter_notification_candidates(event: Mapping[str, Any]) -> Iterator[tuple[str | None, Any]]:
    """Flatten queue records into ``(message_id, raw_notification)`` pairs.

    A queue record whose body is not a notification batch yields a single
    candidate that will fail validation, so it is skipped rather than lost.
    Storage notifications delivered without a queue wrapper are accepted
    as-is.
    """
    for record in event.get("Records") or []:
        if isinstance(record, Mapping) and "s3" in record:
            yield None, record
            continue
        message_id = record.get("messageId") if isinstance(record, Mapping) else None
        body = _decode_body(record)
        inner_records = body.get("Records") if isinstance(body, Mapping) else None
        if not isinstance(inner_records, list):
            yield message_id, body
            continue
        for inner in inner_records:
            yield message_id, inner


def parse_notification(raw: Any, message_id: str | None = None) -> LandingNotification:
    """Validate one storage notification.

    Raises:
        MalformedNotificationError: If object key, bucket name, or bucket ARN is absent.
    """
    s3_section = raw.get("s3") if isinstance(raw, Mapping) else None
    bucket = _section(s3_section, "bucket")
    object_key = _section(s3_section, "object").get("key")
    bucket_name = bucket.get("name")
    bucket_arn = bucket.get("arn")
    missing = [
        name
        for name, value in (
            ("objectKey", object_key),
            ("bucketName", bucket_name),
            ("bucketARN", bucket_arn),
        )
        if not isinstance(value, str) or not value
    ]
    if missing:
        raise MalformedNotificationError(
            f"Notification in message '{message_id}' is missing {missing}."
        )
    return LandingNotification(
        bucket_name=bucket_name,
        bucket_arn=bucket_arn,
        object_key=unquote_plus(object_key),
        message_id=message_id,
    )


def build_run_task_request(
    settings: ExtractorSettings,
    notification: LandingNotification,
) -> dict[str, Any]:
    """Build a fresh job request for one notification."""
    return {
        "cluster": settings.cluster_name,
        "launchType": JOB_LAUNCH_TYPE,
        "taskDefinition": settings.task_definition,
        "count": JOB_DESIRED_COUNT,
        "platformVersion": JOB_PLATFORM_VERSION,
        "networkConfiguration": {
            "awsvpcConfiguration": {
                "subnets": list(settings.subnets),
                "assignPublicIp": settings.assign_public_ip,
            }
        },
        "overrides": {
            "containerOverrides": [
                {
                    "name": settings.container_name,
                    "environment": [
                        {"name": ENV_S3_BUCKET_NAME, "value": notification.bucket_name},
                        {"name": ENV_S3_OBJECT_KEY, "value": notification.object_key},
                    ],
                }
            ]
        },
    }


class ExtractCoordinator:
    """Dispatches one extraction job per landed object."""

    def __init__(
        self,
        settings: ExtractorSettings,
        dispatcher: JobDispatcher,
        publisher: EventPublisher,
    ) -> None:
        self._settings = settings
        self._dispatcher = dispatcher
        self._publisher = publisher

    def handle(self, event: Mapping[str, Any]) -> ExtractionSummary:
        """Process a queue batch.

        Malformed notifications are skipped. The first dispatch or publish
        failure aborts the rest of the batch so the queue redelivers it.

        Raises:
            JobDispatchError: If a job cannot be started.
            PublishError: If the job-started event cannot be published.
        """
        dispatched: list[str] = []
        skipped = 0
        for message_id, raw in iter_notification_candidates(event):
            try:
                notification = parse_notification(raw, message_id)
            except MalformedNotificationError as error:
                skipped += 1
                _LOGGER.warning("notification_skipped", message_id=message_id, reason=str(error))
                continue
            self._dispatch(notification)
            dispatched.append(notification.object_key)
        _LOGGER.info("extraction_batch_processed", dispatched=len(dispatched), skipped=skipped)
        return ExtractionSummary(dispatched=tuple(dispatched), skipped=skipped)

    def _dispatch(self, notification: LandingNotification) -> None:
        request = build_run_task_request(self._settings, notification)
        try:
            job = self._dispatcher.run_task(request)
            self._publisher.publish(build_envelope(JobStartedPayload(job=job)))
        except EtlError as error:
            _LOGGER.error(
                "extraction_dispatch_failed",
                message_id=notification.message_id,
                bucket_name=notification.bucket_name,
                object_key=notification.object_key,
                error_kind=error.kind.value,
                error=str(error),
            )
            raise


def _decode_body(record: Any) -> Any:
    body = record.get("body") if isinstance(record, Mapping) else None
    if not isinstance(body, str):
        return body
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        return None


def _section(parent: Any, name: str) -> Mapping[str, Any]:
    value = parent.get(name) if isinstance(parent, Mapping) else None
    return value if isinstance(value, Mapping) else {}
