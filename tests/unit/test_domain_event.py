"""
Unit tests for event types.

Tests cover:
- DomainEvent type naming and immutability
- Conversion of typed payloads into NewEvent
- NewEvent validation and RecordedEvent construction
"""

from datetime import UTC, datetime
from typing import ClassVar
from uuid import UUID, uuid4

import pytest
from pydantic import ValidationError

from eventfold.events import DomainEvent, NewEvent, RecordedEvent, UnrecognizedEvent
from tests.fixtures import CartOpened


class Unnamed(DomainEvent):
    value: int


class Renamed(DomainEvent):
    event_type: ClassVar[str] = "renamed-event"
    value: int


class TestDomainEvent:
    """Tests for DomainEvent."""

    def test_event_type_defaults_to_class_name(self):
        assert Unnamed.event_type == "Unnamed"

    def test_explicit_event_type_is_kept(self):
        assert Renamed.event_type == "renamed-event"
        assert CartOpened.event_type == "cart-opened"

    def test_event_type_is_not_a_payload_field(self):
        """The type name is class metadata, not part of the stored data."""
        assert "event_type" not in Renamed(value=1).model_dump()

    def test_subclass_without_name_gets_its_own(self):
        """Inheriting a payload must not inherit the stored name."""

        class RenamedV2(Renamed):
            extra: str = ""

        assert RenamedV2.event_type == "RenamedV2"

    def test_events_are_immutable(self):
        event = Unnamed(value=1)
        with pytest.raises(ValidationError):
            event.value = 2  # type: ignore[misc]

    def test_to_new_event(self):
        """Payload is dumped in JSON mode under the event type."""
        opened_at = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)
        event = CartOpened(cart_id="c-1", client_id="u-1", opened_at=opened_at)

        new_event = event.to_new_event(metadata={"correlation_id": "abc"})

        assert new_event.type == "cart-opened"
        assert new_event.data == {
            "cart_id": "c-1",
            "client_id": "u-1",
            "opened_at": "2024-01-15T10:30:00Z",
        }
        assert new_event.metadata == {"correlation_id": "abc"}
        assert isinstance(new_event.event_id, UUID)


class TestNewEvent:
    """Tests for NewEvent."""

    def test_defaults(self):
        event = NewEvent(type="something-happened")
        assert event.data == {}
        assert event.metadata == {}
        assert isinstance(event.event_id, UUID)

    def test_event_ids_are_unique(self):
        assert NewEvent(type="a").event_id != NewEvent(type="a").event_id

    def test_empty_type_rejected(self):
        with pytest.raises(ValueError):
            NewEvent(type="")


class TestRecordedEvent:
    """Tests for RecordedEvent."""

    def test_from_new_event(self):
        new_event = NewEvent(type="cart-opened", data={"cart_id": "c-1"}, event_id=uuid4())

        recorded = RecordedEvent.from_new_event(
            new_event, stream_id="cart-c-1", revision=0, global_position=41
        )

        assert recorded.event_id == new_event.event_id
        assert recorded.type == "cart-opened"
        assert recorded.data == {"cart_id": "c-1"}
        assert recorded.stream_id == "cart-c-1"
        assert recorded.revision == 0
        assert recorded.global_position == 41
        assert recorded.recorded_at.tzinfo is not None

    def test_recorded_data_is_a_copy(self):
        """Mutating the source payload after append leaves the record intact."""
        data = {"cart_id": "c-1"}
        recorded = RecordedEvent.from_new_event(
            NewEvent(type="cart-opened", data=data), "cart-c-1", 0, 0
        )
        data["cart_id"] = "changed"
        assert recorded.data == {"cart_id": "c-1"}

    def test_unrecognized_event_exposes_type(self):
        recorded = RecordedEvent.from_new_event(NewEvent(type="legacy"), "s", 0, 0)
        assert UnrecognizedEvent(recorded).type == "legacy"
