"""Unit tests for subscription rules and local routing."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from core.errors import SchemaMismatchError
from events.envelope import ExtractedPayload, LoadedPayload, TransformedPayload, build_envelope
from events.publisher import EventPublisher
from events.routing import LOAD_RULE, OBSERVE_RULE, TRANSFORM_RULE, LocalEventBus


def test_transform_rule_matches_only_extracted_rows() -> None:
    """The transform rule should match extracted events only."""
    extracted = build_envelope(ExtractedPayload(headers="a", data="1")).to_event()
    transformed = build_envelope(TransformedPayload(mapping={"a": "1"})).to_event()

    assert TRANSFORM_RULE.matches(extracted)
    assert not TRANSFORM_RULE.matches(transformed)
    assert LOAD_RULE.matches(transformed)


def test_observe_rule_matches_every_pipeline_event() -> None:
    """The observe rule should match all kinds within the namespace."""
    events = [
        build_envelope(ExtractedPayload(headers="a", data="1")).to_event(),
        build_envelope(TransformedPayload(mapping={})).to_event(),
        build_envelope(LoadedPayload(record={})).to_event(),
    ]

    assert all(OBSERVE_RULE.matches(event) for event in events)
    assert not OBSERVE_RULE.matches({"source": "aws.s3", "detail-type": "x", "detail": {}})


def test_rule_pattern_includes_status_filter() -> None:
    """Narrow rules should render detail-type and status filters."""
    assert LOAD_RULE.to_pattern() == {
        "source": ["cdkpatterns.the-eventbridge-etl"],
        "detail-type": ["transform"],
        "detail": {"status": ["transformed"]},
    }
    assert OBSERVE_RULE.to_pattern() == {"source": ["cdkpatterns.the-eventbridge-etl"]}


def test_local_bus_delivers_to_matching_subscribers() -> None:
    """Published entries should reach every matching subscriber."""
    bus = LocalEventBus()
    seen: dict[str, list[str]] = {"transform": [], "observe": []}
    bus.subscribe(TRANSFORM_RULE, lambda event: seen["transform"].append(event["detail-type"]))
    bus.subscribe(OBSERVE_RULE, lambda event: seen["observe"].append(event["detail-type"]))

    EventPublisher(bus).publish(build_envelope(ExtractedPayload(headers="a", data="1")))

    assert seen == {"transform": ["s3RecordExtraction"], "observe": ["s3RecordExtraction"]}


def test_local_bus_keeps_handler_failures() -> None:
    """A failing subscriber should be recorded without blocking others."""
    bus = LocalEventBus()
    observed: list[str] = []

    def failing(event: object) -> None:
        raise SchemaMismatchError("bad row")

    bus.subscribe(TRANSFORM_RULE, failing)
    bus.subscribe(OBSERVE_RULE, lambda event: observed.append(event["id"]))

    EventPublisher(bus).publish(build_envelope(ExtractedPayload(headers="a", data="1,2")))

    assert len(bus.failures) == 1 and bus.failures[0].rule_name == "transformRule"
    assert len(observed) == 1


def test_local_bus_renders_entry_time_in_utc() -> None:
    """Delivered events should carry the entry time converted to UTC."""
    bus = LocalEventBus()
    offset_time = datetime(2024, 5, 1, 7, 30, tzinfo=timezone(timedelta(hours=-5)))
    entry = build_envelope(LoadedPayload(record={}), offset_time).to_entry("default")

    bus.put_events(Entries=[entry])

    assert bus.delivered[0]["time"] == "2024-05-01T12:30:00Z"
