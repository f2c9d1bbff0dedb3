"""In-process wiring of the transform, load, and observe stages.

Used to run a local delimited file through the same stage code and
subscription rules the deployed pipeline uses, with an in-memory bus
and store standing in for the remote services.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from core.types import AuditEntry
from events.publisher import EventPublisher
from events.routing import LOAD_RULE, OBSERVE_RULE, TRANSFORM_RULE, LocalEventBus
from ingest.extraction_task import iter_extracted_envelopes
from stages.concurrency import ConcurrencyGovernor, StageName
from stages.load import Loader
from stages.observe import Observer
from stages.transform import Transformer
from store.record_store import InMemoryRecordStore


@dataclass
class LocalPipeline:
    """A wired local pipeline and the state it accumulates."""

    bus: LocalEventBus
    store: InMemoryRecordStore
    audit: list[AuditEntry] = field(default_factory=list)

    @property
    def publisher(self) -> EventPublisher:
        return EventPublisher(self.bus)

    def run_lines(self, lines: Iterable[str]) -> int:
        """Publish extracted events for delimited lines; returns events published."""
        ack = self.publisher.publish_many(iter_extracted_envelopes(lines))
        return len(ack.event_ids)

    def run_file(self, path: Path) -> int:
        with path.open(encoding="utf-8-sig") as handle:
            return self.run_lines(handle)


def build_local_pipeline(
    governor: ConcurrencyGovernor,
    store: InMemoryRecordStore | None = None,
    recorder: Callable[[AuditEntry], None] | None = None,
) -> LocalPipeline:
    """Subscribe the stages to an in-memory bus by their pipeline rules."""
    bus = LocalEventBus()
    pipeline = LocalPipeline(bus=bus, store=store or InMemoryRecordStore())
    publisher = EventPublisher(bus)
    transformer = Transformer(publisher)
    loader = Loader(pipeline.store, publisher)
    observer = Observer(recorder or pipeline.audit.append)
    bus.subscribe(TRANSFORM_RULE, _throttled(governor, StageName.TRANSFORM, transformer.handle))
    bus.subscribe(LOAD_RULE, _throttled(governor, StageName.LOAD, loader.handle))
    bus.subscribe(OBSERVE_RULE, observer.handle)
    return pipeline


def _throttled(
    governor: ConcurrencyGovernor,
    stage: StageName,
    handler: Callable[[Mapping[str, Any]], Any],
) -> Callable[[Mapping[str, Any]], Any]:
    def invoke(event: Mapping[str, Any]) -> Any:
        with governor.slot(stage):
            return handler(event)

    return invoke
