"""Per-stage concurrency ceiling.

Extraction, transform, and load each get their own bounded slot pool so
that one large upload cannot fan out into unbounded job dispatches or
store writes. The observe stage is never throttled.
"""

from __future__ import annotations

from contextlib import contextmanager
from enum import Enum
import threading
from typing import Iterator

from core.config import EtlConfig
from core.errors import StageThrottledError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


class StageName(str, Enum):
    """Independently invokable pipeline stages."""

    EXTRACT = "extract"
    TRANSFORM = "transform"
    LOAD = "load"
    OBSERVE = "observe"


THROTTLED_STAGES = (StageName.EXTRACT, StageName.TRANSFORM, StageName.LOAD)


class ConcurrencyGovernor:
    """Bounds simultaneous invocations of each throttled stage."""

    def __init__(self, limit: int, timeout: float) -> None:
        if limit < 1:
            raise ValueError(f"Concurrency limit must be >= 1, got {limit}")
        self._limit = limit
        self._timeout = timeout
        self._slots = {stage: threading.BoundedSemaphore(limit) for stage in THROTTLED_STAGES}

    @classmethod
    def from_config(cls, config: EtlConfig) -> "ConcurrencyGovernor":
        return cls(config.stage_concurrency_limit, config.stage_slot_timeout)

    def limit_for(self, stage: StageName) -> int | None:
        """Return the ceiling for a stage, ``None`` when unthrottled."""
        return self._limit if stage in self._slots else None

    def reserved_concurrency(self) -> dict[str, int | None]:
        """Report declared ceilings keyed by stage name."""
        return {stage.value: self.limit_for(stage) for stage in StageName}

    @contextmanager
    def slot(self, stage: StageName) -> Iterator[None]:
        """Hold one invocation slot for the duration of the block.

        Raises:
            StageThrottledError: If no slot frees up within the timeout.
        """
        semaphore = self._slots.get(stage)
        if semaphore is None:
            yield
            return
        if not semaphore.acquire(timeout=self._timeout):
            _LOGGER.warning("stage_throttled", stage=stage.value, limit=self._limit)
            raise StageThrottledError(
                f"Stage '{stage.value}' is at its concurrency limit of {self._limit}; "
                "redeliver the event later."
            )
        try:
            yield
        finally:
            semaphore.release()
