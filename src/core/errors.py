"""Pipeline exception hierarchy.

This module defines traceable stage errors with clear boundaries.
Each error carries an ``ErrorKind`` so callers can separate retryable
external-call failures from non-retryable validation failures.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Closed set of failure kinds a stage can surface."""

    CONFIG_MISSING = "config_missing"
    MALFORMED_NOTIFICATION = "malformed_notification"
    MALFORMED_EVENT = "malformed_event"
    SCHEMA_MISMATCH = "schema_mismatch"
    JOB_DISPATCH = "job_dispatch"
    PUBLISH = "publish"
    PERSIST = "persist"
    THROTTLED = "throttled"
    SOURCE_READ = "source_read"
    DEPENDENCY = "dependency"

    @property
    def retryable(self) -> bool:
        """Whether redelivering the same input may succeed."""
        return self in _RETRYABLE_KINDS


_RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.JOB_DISPATCH,
        ErrorKind.PUBLISH,
        ErrorKind.PERSIST,
        ErrorKind.THROTTLED,
        ErrorKind.SOURCE_READ,
    }
)


class EtlError(Exception):
    """Base exception for all pipeline failures."""

    kind: ErrorKind = ErrorKind.DEPENDENCY

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


class ConfigMissingError(EtlError):
    """Raised when required runtime configuration is absent or unusable."""

    kind = ErrorKind.CONFIG_MISSING


class MalformedNotificationError(EtlError):
    """Raised for a landing notification that lacks required fields."""

    kind = ErrorKind.MALFORMED_NOTIFICATION


class MalformedEventError(EtlError):
    """Raised when an inbound event does not match the expected variant."""

    kind = ErrorKind.MALFORMED_EVENT


class SchemaMismatchError(EtlError):
    """Raised when header and value counts differ for a row."""

    kind = ErrorKind.SCHEMA_MISMATCH


class JobDispatchError(EtlError):
    """Raised when the bulk extraction job cannot be started."""

    kind = ErrorKind.JOB_DISPATCH


class PublishError(EtlError):
    """Raised when a lifecycle event cannot be put on the bus."""

    kind = ErrorKind.PUBLISH


class PersistError(EtlError):
    """Raised when a record cannot be written to the store."""

    kind = ErrorKind.PERSIST


class SourceReadError(EtlError):
    """Raised when the landed object cannot be read for extraction."""

    kind = ErrorKind.SOURCE_READ


class StageThrottledError(EtlError):
    """Raised when a stage has no free concurrency slot."""

    kind = ErrorKind.THROTTLED


class EtlDependencyError(EtlError):
    """Raised when an optional runtime dependency is missing."""

    kind = ErrorKind.DEPENDENCY
