"""Unit tests for the transformer stage."""

from __future__ import annotations

import pytest

from core.errors import MalformedEventError, SchemaMismatchError
from events.envelope import ExtractedPayload, LoadedPayload, build_envelope
from events.publisher import EventPublisher
from stages.transform import Transformer, build_field_mapping, split_delimited, transform_row
from tests.fakes import FakeEventsClient


def test_transform_row_zips_headers_to_values() -> None:
    """Headers and values should pair positionally."""
    mapping = transform_row("id,house_number,street,town,zip", "1,22,MainSt,Springfield,90210")

    assert mapping == {
        "id": "1",
        "house_number": "22",
        "street": "MainSt",
        "town": "Springfield",
        "zip": "90210",
    }
    assert list(mapping) == ["id", "house_number", "street", "town", "zip"]


def test_transform_row_is_repeatable() -> None:
    """Identical inputs should produce identical mappings."""
    assert transform_row("a,b", "1,2") == transform_row("a,b", "1,2")


def test_split_does_not_honor_quotes() -> None:
    """Quoted commas are split like any other delimiter."""
    assert split_delimited('"Main, St",x') == ['"Main', ' St"', "x"]


@pytest.mark.parametrize("values", [["1"], ["1", "2", "3"]])
def test_count_mismatch_raises(values: list[str]) -> None:
    """Rows with too few or too many values should be rejected."""
    with pytest.raises(SchemaMismatchError) as raised:
        build_field_mapping(["a", "b"], values)

    assert not raised.value.retryable


def test_handle_publishes_transformed_event() -> None:
    """An extracted row should produce one transform/transformed event."""
    events = FakeEventsClient()
    raw_event = build_envelope(ExtractedPayload(headers="ID,Zip", data="7,90210")).to_event()

    mapping = Transformer(EventPublisher(events)).handle(raw_event)

    assert mapping == {"ID": "7", "Zip": "90210"}
    assert events.entries[0]["DetailType"] == "transform"
    assert events.details() == [{"status": "transformed", "data": {"ID": "7", "Zip": "90210"}}]


def test_handle_mismatch_publishes_nothing() -> None:
    """A mismatched row should fail before publishing."""
    events = FakeEventsClient()
    raw_event = build_envelope(ExtractedPayload(headers="a,b", data="1")).to_event()

    with pytest.raises(SchemaMismatchError):
        Transformer(EventPublisher(events)).handle(raw_event)

    assert events.entries == []


def test_handle_rejects_wrong_event_kind() -> None:
    """Only extracted events should be accepted."""
    raw_event = build_envelope(LoadedPayload(record={})).to_event()

    with pytest.raises(MalformedEventError):
        Transformer(EventPublisher(FakeEventsClient())).handle(raw_event)


def test_transform_row_rejects_repeated_header() -> None:
    """A repeated header should fail instead of keeping only the last value."""
    with pytest.raises(SchemaMismatchError, match="'ID'"):
        transform_row("ID,ID", "1,2")
