"""Bulk extraction job dispatch.

This module wraps the container service ``run_task`` call. The
coordinator returns once a job is accepted; it never waits for the
job to finish.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from core.errors import JobDispatchError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


class JobDispatcher:
    """Starts extraction jobs through an injected ECS client."""

    def __init__(self, ecs_client: Any) -> None:
        self._client = ecs_client

    def run_task(self, request: Mapping[str, Any]) -> dict[str, Any]:
        """Start one job and return its JSON-safe descriptor.

        Args:
            request: Keyword arguments for the ``run_task`` call.

        Returns:
            Service response without transport metadata.

        Raises:
            JobDispatchError: If the call fails or the service reports failures.
        """
        try:
            response = self._client.run_task(**request)
        except Exception as error:
            raise JobDispatchError(
                f"Failed to start extraction job on cluster '{request.get('cluster')}': {error}"
            ) from error
        failures = response.get("failures") or []
        if failures:
            raise JobDispatchError(
                f"Cluster '{request.get('cluster')}' refused extraction job: {failures}"
            )
        descriptor = _json_safe(
            {key: value for key, value in response.items() if key != "ResponseMetadata"}
        )
        _LOGGER.info(
            "job_dispatched",
            cluster=request.get("cluster"),
            task_arns=[task.get("taskArn") for task in descriptor.get("tasks", [])],
        )
        return descriptor


def _json_safe(value: Mapping[str, Any]) -> dict[str, Any]:
    """Round-trip through JSON so timestamps become strings."""
    return json.loads(json.dumps(value, default=str))
