"""Unit tests for error kinds."""

from __future__ import annotations

from core.errors import (
    ConfigMissingError,
    JobDispatchError,
    MalformedNotificationError,
    PersistError,
    PublishError,
    SchemaMismatchError,
    StageThrottledError,
)


def test_external_call_failures_are_retryable() -> None:
    """Dispatch, publish, persist, and throttle failures should be retryable."""
    errors = [JobDispatchError("x"), PublishError("x"), PersistError("x"), StageThrottledError("x")]

    assert all(error.retryable for error in errors)


def test_validation_failures_are_not_retryable() -> None:
    """Config and data validation failures should not be retried."""
    errors = [ConfigMissingError("x"), MalformedNotificationError("x"), SchemaMismatchError("x")]

    assert not any(error.retryable for error in errors)
