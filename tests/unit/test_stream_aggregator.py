"""
Unit tests for StreamAggregator.

Tests cover:
- Folding a stream into state and last revision
- Continuing a fold from a previous result
- Skipping unknown event types
"""

import logging
from datetime import UTC, datetime

import pytest

from eventfold.aggregates import AggregateResult, StreamAggregator
from eventfold.events import NewEvent, RecordedEvent
from eventfold.exceptions import SerializationError
from eventfold.stores import InMemoryEventStore, StreamState
from tests.fixtures import (
    CartOpened,
    PricedProductItem,
    ProductItemAddedToCart,
)

NOW = datetime(2024, 1, 15, 10, 30, tzinfo=UTC)


def cart_stream(*extra: NewEvent) -> list[RecordedEvent]:
    """Recorded events of cart c-1: opened, two items added, then `extra`."""
    events = [
        CartOpened(cart_id="c-1", client_id="u-1", opened_at=NOW).to_new_event(),
        ProductItemAddedToCart(
            cart_id="c-1",
            product_item=PricedProductItem(product_id="shoes", quantity=2, unit_price=50.0),
        ).to_new_event(),
        ProductItemAddedToCart(
            cart_id="c-1",
            product_item=PricedProductItem(product_id="shoes", quantity=1, unit_price=50.0),
        ).to_new_event(),
        *extra,
    ]
    return [
        RecordedEvent.from_new_event(event, "cart-c-1", revision, 100 + revision)
        for revision, event in enumerate(events)
    ]


class TestFold:
    """Tests for fold()."""

    def test_folds_state_and_revision(self, cart_aggregator):
        result = cart_aggregator.fold(cart_stream())

        assert result.state.id == "c-1"
        assert result.state.quantities == {"shoes": 3}
        assert result.state.total == 150.0
        assert result.last_revision == 2
        assert result.exists

    def test_empty_stream(self, cart_aggregator):
        """No events means no state and no revision."""
        result = cart_aggregator.fold([])

        assert result == AggregateResult()
        assert not result.exists

    def test_fold_is_incremental(self, cart_aggregator):
        """Folding a prefix then the rest equals folding everything."""
        events = cart_stream()

        partial = cart_aggregator.fold(events[:1])
        resumed = cart_aggregator.fold(events[1:], initial=partial)

        assert resumed == cart_aggregator.fold(events)

    def test_unknown_event_type_is_skipped(self, cart_aggregator, caplog):
        """Unknown types leave the state alone but still advance the revision."""
        events = cart_stream(NewEvent(type="cart-gift-wrapped", data={"cart_id": "c-1"}))

        with caplog.at_level(logging.WARNING, logger="eventfold.aggregates.aggregator"):
            result = cart_aggregator.fold(events)

        assert result.state == cart_aggregator.fold(events[:3]).state
        assert result.last_revision == 3
        assert "cart-gift-wrapped" in caplog.text

    def test_invalid_payload_raises(self, cart_aggregator):
        events = cart_stream(NewEvent(type="cart-confirmed", data={"cart_id": "c-1"}))

        with pytest.raises(SerializationError):
            cart_aggregator.fold(events)

    def test_name_defaults_to_evolve_function(self):
        from tests.fixtures import CART_EVENTS, evolve

        assert StreamAggregator(evolve, CART_EVENTS).name == "evolve"


class TestAggregate:
    """Tests for aggregate() over a store read."""

    @pytest.mark.asyncio
    async def test_aggregates_store_stream(self, cart_aggregator):
        store = InMemoryEventStore(enable_tracing=False)
        events = cart_stream()
        await store.append_to_stream(
            "cart-c-1",
            StreamState.NO_STREAM,
            [
                NewEvent(type=e.type, data=e.data, event_id=e.event_id)
                for e in events
            ],
        )

        result = await cart_aggregator.aggregate(store.read_stream("cart-c-1"))

        assert result == cart_aggregator.fold(events)

    @pytest.mark.asyncio
    async def test_aggregate_missing_stream(self, cart_aggregator):
        store = InMemoryEventStore(enable_tracing=False)

        result = await cart_aggregator.aggregate(store.read_stream("cart-404"))

        assert result.state is None
        assert result.last_revision is None
