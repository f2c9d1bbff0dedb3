"""Runtime configuration model for pipeline stages.

This module owns all environment variable parsing and validation.
Stages consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
import json
import os
from typing import Mapping

from core.constants import (
    DEFAULT_ASSIGN_PUBLIC_IP,
    DEFAULT_EVENT_BUS_NAME,
    DEFAULT_STAGE_CONCURRENCY_LIMIT,
    DEFAULT_STAGE_SLOT_TIMEOUT_SECONDS,
    ENV_ASSIGN_PUBLIC_IP,
    ENV_AWS_PROFILE,
    ENV_AWS_REGION,
    ENV_CLUSTER_NAME,
    ENV_CONTAINER_NAME,
    ENV_EVENT_BUS_NAME,
    ENV_S3_BUCKET_NAME,
    ENV_S3_OBJECT_KEY,
    ENV_STAGE_CONCURRENCY_LIMIT,
    ENV_STAGE_SLOT_TIMEOUT,
    ENV_SUBNETS,
    ENV_TABLE_NAME,
    ENV_TASK_DEFINITION,
)
from core.errors import ConfigMissingError

_ENV_BY_FIELD = {
    "aws_region": ENV_AWS_REGION,
    "aws_profile": ENV_AWS_PROFILE,
    "cluster_name": ENV_CLUSTER_NAME,
    "task_definition": ENV_TASK_DEFINITION,
    "subnets": ENV_SUBNETS,
    "container_name": ENV_CONTAINER_NAME,
    "table_name": ENV_TABLE_NAME,
    "s3_bucket_name": ENV_S3_BUCKET_NAME,
    "s3_object_key": ENV_S3_OBJECT_KEY,
}


@dataclass(frozen=True)
class EtlConfig:
    """Validated runtime configuration.

    Optional identifiers stay ``None`` until a stage asks for them through
    ``require``, so each stage only fails on the values it actually needs.

    Attributes:
        aws_region: Optional AWS region for client sessions.
        aws_profile: Optional AWS profile for boto3 session initialization.
        event_bus_name: Bus that lifecycle events are published to.
        cluster_name: Cluster that runs the extraction job.
        task_definition: Job definition identifier for extraction.
        subnets: Raw JSON list of subnet ids for the job network.
        container_name: Container whose environment receives overrides.
        table_name: Key-value table that loaded records land in.
        s3_bucket_name: Bucket the extraction workload reads from.
        s3_object_key: Object the extraction workload reads.
        assign_public_ip: Public IP policy for the extraction job.
        stage_concurrency_limit: Per-stage concurrent invocation ceiling.
        stage_slot_timeout: Seconds to wait for a free stage slot.
    """

    aws_region: str | None = None
    aws_profile: str | None = None
    event_bus_name: str = DEFAULT_EVENT_BUS_NAME
    cluster_name: str | None = None
    task_definition: str | None = None
    subnets: str | None = None
    container_name: str | None = None
    table_name: str | None = None
    s3_bucket_name: str | None = None
    s3_object_key: str | None = None
    assign_public_ip: str = DEFAULT_ASSIGN_PUBLIC_IP
    stage_concurrency_limit: int = DEFAULT_STAGE_CONCURRENCY_LIMIT
    stage_slot_timeout: float = DEFAULT_STAGE_SLOT_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "EtlConfig":
        """Build config from process environment variables.

        Args:
            environ: Optional mapping used instead of ``os.environ``.

        Returns:
            A validated config object.

        Raises:
            ConfigMissingError: If numeric environment values are invalid.
        """
        env = os.environ if environ is None else environ
        values = {name: env.get(env_name) or None for name, env_name in _ENV_BY_FIELD.items()}
        return cls(
            event_bus_name=env.get(ENV_EVENT_BUS_NAME) or DEFAULT_EVENT_BUS_NAME,
            assign_public_ip=env.get(ENV_ASSIGN_PUBLIC_IP) or DEFAULT_ASSIGN_PUBLIC_IP,
            stage_concurrency_limit=_parse_positive_int(
                ENV_STAGE_CONCURRENCY_LIMIT,
                env.get(ENV_STAGE_CONCURRENCY_LIMIT),
                DEFAULT_STAGE_CONCURRENCY_LIMIT,
            ),
            stage_slot_timeout=_parse_positive_float(
                ENV_STAGE_SLOT_TIMEOUT,
                env.get(ENV_STAGE_SLOT_TIMEOUT),
                DEFAULT_STAGE_SLOT_TIMEOUT_SECONDS,
            ),
            **values,
        )

    def require(self, env_name: str) -> str:
        """Return a required configuration value or fail the invocation.

        Args:
            env_name: Environment variable name, e.g. ``CLUSTER_NAME``.

        Returns:
            The non-empty configured value.

        Raises:
            ConfigMissingError: If the value is absent or empty.
        """
        field_name = _field_for_env(env_name)
        value = getattr(self, field_name)
        if not value:
            raise ConfigMissingError(
                f"Required configuration {env_name} is not defined. "
                f"Set {env_name} in the stage environment."
            )
        return str(value)

    def require_subnets(self) -> tuple[str, ...]:
        """Return the parsed subnet id list.

        Raises:
            ConfigMissingError: If SUBNETS is absent or not a JSON list of strings.
        """
        raw_value = self.require(ENV_SUBNETS)
        try:
            parsed = json.loads(raw_value)
        except json.JSONDecodeError as error:
            raise ConfigMissingError(
                f"Invalid {ENV_SUBNETS} value: expected JSON list, got '{raw_value}'."
            ) from error
        if not isinstance(parsed, list) or not all(isinstance(item, str) for item in parsed):
            raise ConfigMissingError(
                f"Invalid {ENV_SUBNETS} value: expected JSON list of subnet ids, "
                f"got '{raw_value}'."
            )
        if not parsed:
            raise ConfigMissingError(f"Required configuration {ENV_SUBNETS} is empty.")
        return tuple(parsed)


def _field_for_env(env_name: str) -> str:
    for field_name, mapped_env in _ENV_BY_FIELD.items():
        if mapped_env == env_name:
            return field_name
    known = {item.name for item in fields(EtlConfig)}
    lowered = env_name.lower()
    if lowered in known:
        return lowered
    raise ConfigMissingError(f"Unknown configuration name {env_name}.")


def _parse_positive_int(env_name: str, raw_value: str | None, default: int) -> int:
    """Parse a positive integer environment value.

    Raises:
        ConfigMissingError: If value cannot be parsed into a positive int.
    """
    if not raw_value:
        return default
    try:
        parsed = int(raw_value)
    except ValueError as error:
        raise ConfigMissingError(
            f"Invalid {env_name} value: expected integer, got '{raw_value}'."
        ) from error
    if parsed < 1:
        raise ConfigMissingError(f"Invalid {env_name} value: must be >= 1, got {parsed}.")
    return parsed


def _parse_positive_float(env_name: str, raw_value: str | None, default: float) -> float:
    if not raw_value:
        return default
    try:
        parsed = float(raw_value)
    except ValueError as error:
        raise ConfigMissingError(
            f"Invalid {env_name} value: expected number, got '{raw_value}'."
        ) from error
    if parsed <= 0:
        raise ConfigMissingError(f"Invalid {env_name} value: must be > 0, got {parsed}.")
    return parsed
