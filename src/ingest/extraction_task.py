"""Job-side extraction of a landed delimited file.

The extraction job reads the object named by ``S3_BUCKET_NAME`` and
``S3_OBJECT_KEY``, treats the first non-blank line as the header line,
and emits one extracted event per data line. Lines are streamed so a
large object is never held in memory at once.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Iterator

from core.config import EtlConfig
from core.constants import ENV_S3_BUCKET_NAME, ENV_S3_OBJECT_KEY
from core.errors import SourceReadError
from core.logging_config import get_logger
from events.envelope import EventEnvelope, ExtractedPayload, build_envelope
from events.publisher import EventPublisher

_LOGGER = get_logger(__name__)


def run_extraction_task(
    config: EtlConfig,
    s3_client: Any,
    publisher: EventPublisher,
) -> int:
    """Extract one landed object into per-row events.

    Args:
        config: Runtime config carrying the bucket and key overrides.
        s3_client: Object storage client.
        publisher: Publisher for extracted events.

    Returns:
        Number of extracted events published.

    Raises:
        ConfigMissingError: If bucket or key is not configured.
        SourceReadError: If the object cannot be read.
        PublishError: If extracted events cannot be published.
    """
    bucket_name = config.require(ENV_S3_BUCKET_NAME)
    object_key = config.require(ENV_S3_OBJECT_KEY)
    lines = read_object_lines(s3_client, bucket_name, object_key)
    ack = publisher.publish_many(iter_extracted_envelopes(lines))
    _LOGGER.info(
        "extraction_completed",
        bucket_name=bucket_name,
        object_key=object_key,
        event_count=len(ack.event_ids),
    )
    return len(ack.event_ids)


def read_object_lines(s3_client: Any, bucket_name: str, object_key: str) -> Iterator[str]:
    """Stream decoded text lines from a stored object.

    Raises:
        SourceReadError: If the object cannot be fetched or decoded.
    """
    try:
        response = s3_client.get_object(Bucket=bucket_name, Key=object_key)
        for raw_line in response["Body"].iter_lines():
            yield raw_line.decode("utf-8-sig") if isinstance(raw_line, bytes) else raw_line
    except UnicodeDecodeError as error:
        raise SourceReadError(
            f"Failed to decode s3://{bucket_name}/{object_key}: {error}. "
            "Upload UTF-8 delimited text."
        ) from error
    except Exception as error:
        raise SourceReadError(
            f"Failed to read s3://{bucket_name}/{object_key}: {error}. "
            "Check the object exists and the job role can read it."
        ) from error


def iter_extracted_envelopes(
    lines: Iterable[str],
    now: datetime | None = None,
) -> Iterator[EventEnvelope]:
    """Pair each data line with the header line as an extracted event.

    Blank lines are ignored; an object with only a header yields nothing.
    """
    headers: str | None = None
    for line in lines:
        stripped = line.strip("\r\n")
        if not stripped.strip():
            continue
        if headers is None:
            headers = stripped
            continue
        yield build_envelope(ExtractedPayload(headers=headers, data=stripped), now)
    if headers is None:
        _LOGGER.warning("extraction_empty_object")
