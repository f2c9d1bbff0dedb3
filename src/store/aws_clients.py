"""AWS client construction for stage invocations.

This module encapsulates boto3 session and client creation.
Each invocation builds its own clients; nothing is cached at module level.
"""

from __future__ import annotations

from typing import Any

from core.config import EtlConfig
from core.errors import EtlDependencyError


def create_aws_client(service_name: str, config: EtlConfig) -> Any:
    """Create a boto3 client for one stage invocation.

    Args:
        service_name: Service id, e.g. ``events``, ``ecs``, ``dynamodb``, ``s3``.
        config: Runtime config with optional session settings.

    Returns:
        Boto3 service client.

    Raises:
        EtlDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise EtlDependencyError(
            f"The {service_name} client requires boto3, but it is not installed. "
            "Install boto3 to run pipeline stages against AWS."
        ) from error
    session_kwargs: dict[str, str] = {}
    if config.aws_profile:
        session_kwargs["profile_name"] = config.aws_profile
    if config.aws_region:
        session_kwargs["region_name"] = config.aws_region
    session = boto3.session.Session(**session_kwargs)
    return session.client(service_name)
