"""Unit tests for job dispatch."""

from __future__ import annotations

import pytest

from core.errors import JobDispatchError
from ingest.job_dispatch import JobDispatcher
from tests.fakes import FakeEcsClient


def test_run_task_returns_json_safe_descriptor() -> None:
    """Descriptors should drop transport metadata and stringify timestamps."""
    descriptor = JobDispatcher(FakeEcsClient()).run_task({"cluster": "etl-cluster"})

    assert "ResponseMetadata" not in descriptor
    assert isinstance(descriptor["tasks"][0]["createdAt"], str)


def test_run_task_raises_for_reported_failures() -> None:
    """Service-reported placement failures should fail the dispatch."""
    with pytest.raises(JobDispatchError):
        JobDispatcher(FakeEcsClient(refuse=True)).run_task({"cluster": "etl-cluster"})
