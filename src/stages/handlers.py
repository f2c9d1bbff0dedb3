"""Invocation entry points for each stage.

Handlers take the host's ``(event, context)`` call, resolve required
configuration before any external call, build fresh clients for the
invocation, and run the stage inside its concurrency slot.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Callable, Mapping, TypeVar

from core.config import EtlConfig
from core.constants import ENV_TABLE_NAME
from core.errors import EtlError
from core.logging_config import get_logger
from events.publisher import EventPublisher
from ingest.job_dispatch import JobDispatcher
from stages.concurrency import ConcurrencyGovernor, StageName
from stages.extract import ExtractCoordinator, ExtractorSettings
from stages.load import Loader
from stages.observe import Observer
from stages.transform import Transformer
from store.aws_clients import create_aws_client
from store.record_store import RecordStore

_LOGGER = get_logger(__name__)

ClientFactory = Callable[[str], Any]
_T = TypeVar("_T")


@lru_cache(maxsize=None)
def _shared_governor(limit: int, timeout: float) -> ConcurrencyGovernor:
    return ConcurrencyGovernor(limit, timeout)


def extract_handler(
    event: Mapping[str, Any],
    context: Any = None,
    *,
    config: EtlConfig | None = None,
    client_factory: ClientFactory | None = None,
    governor: ConcurrencyGovernor | None = None,
) -> dict[str, Any]:
    """Dispatch extraction jobs for a batch of landing notifications."""

    def run(config: EtlConfig) -> dict[str, Any]:
        settings = ExtractorSettings.from_config(config)
        factory = client_factory or _default_factory(config)
        coordinator = ExtractCoordinator(
            settings,
            JobDispatcher(factory("ecs")),
            EventPublisher(factory("events"), config.event_bus_name),
        )
        summary = coordinator.handle(event)
        return {"dispatched": list(summary.dispatched), "skipped": summary.skipped}

    return _run_stage(StageName.EXTRACT, config, governor, run)


def transform_handler(
    event: Mapping[str, Any],
    context: Any = None,
    *,
    config: EtlConfig | None = None,
    client_factory: ClientFactory | None = None,
    governor: ConcurrencyGovernor | None = None,
) -> dict[str, str]:
    """Transform one extracted row."""

    def run(config: EtlConfig) -> dict[str, str]:
        factory = client_factory or _default_factory(config)
        transformer = Transformer(EventPublisher(factory("events"), config.event_bus_name))
        return transformer.handle(event)

    return _run_stage(StageName.TRANSFORM, config, governor, run)


def load_handler(
    event: Mapping[str, Any],
    context: Any = None,
    *,
    config: EtlConfig | None = None,
    client_factory: ClientFactory | None = None,
    governor: ConcurrencyGovernor | None = None,
) -> dict[str, str]:
    """Persist one transformed mapping."""

    def run(config: EtlConfig) -> dict[str, str]:
        table_name = config.require(ENV_TABLE_NAME)
        factory = client_factory or _default_factory(config)
        loader = Loader(
            RecordStore(factory("dynamodb"), table_name),
            EventPublisher(factory("events"), config.event_bus_name),
        )
        return loader.handle(event)

    return _run_stage(StageName.LOAD, config, governor, run)


def observe_handler(event: Mapping[str, Any], context: Any = None) -> None:
    """Record any pipeline event. Never raises, never throttled."""
    Observer().handle(event)


def _run_stage(
    stage: StageName,
    config: EtlConfig | None,
    governor: ConcurrencyGovernor | None,
    run: Callable[[EtlConfig], _T],
) -> _T:
    """Resolve config, take a stage slot, and run; every failure is logged."""
    try:
        config = config or EtlConfig.from_env()
        governor = governor or _shared_governor(
            config.stage_concurrency_limit, config.stage_slot_timeout
        )
        with governor.slot(stage):
            return run(config)
    except EtlError as error:
        _LOGGER.error(
            "stage_invocation_failed",
            stage=stage.value,
            error_kind=error.kind.value,
            retryable=error.retryable,
            error=str(error),
        )
        raise


def _default_factory(config: EtlConfig) -> ClientFactory:
    return lambda service_name: create_aws_client(service_name, config)
