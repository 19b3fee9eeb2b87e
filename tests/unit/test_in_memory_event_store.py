"""
Unit tests for InMemoryEventStore.

Tests cover:
- Appending under each expected-revision mode
- Stream and global-log reads
- Subscriptions: backlog, CaughtUp marker, live delivery
"""

import asyncio

import pytest

from eventfold.events import NewEvent
from eventfold.exceptions import ConcurrencyConflictError
from eventfold.stores import AppendResult, CaughtUp, InMemoryEventStore, StreamState


def events(*types: str) -> list[NewEvent]:
    return [NewEvent(type=t, data={"n": i}) for i, t in enumerate(types)]


async def next_item(subscription):
    return await anext(subscription)


class TestAppend:
    """Tests for append_to_stream()."""

    @pytest.mark.asyncio
    async def test_append_new_stream(self, in_memory_store):
        result = await in_memory_store.append_to_stream(
            "cart-1", StreamState.NO_STREAM, events("a", "b")
        )

        assert result == AppendResult(next_expected_revision=1, global_position=1)
        assert await in_memory_store.get_stream_revision("cart-1") == 1

    @pytest.mark.asyncio
    async def test_exact_revision(self, in_memory_store):
        await in_memory_store.append_to_stream("cart-1", StreamState.NO_STREAM, events("a"))

        result = await in_memory_store.append_to_stream("cart-1", 0, events("b"))

        assert result.next_expected_revision == 1

    @pytest.mark.asyncio
    async def test_stale_revision_conflicts(self, in_memory_store):
        await in_memory_store.append_to_stream("cart-1", StreamState.NO_STREAM, events("a", "b"))

        with pytest.raises(ConcurrencyConflictError) as exc_info:
            await in_memory_store.append_to_stream("cart-1", 0, events("c"))

        assert exc_info.value.actual_revision == 1
        assert in_memory_store.event_count == 2

    @pytest.mark.asyncio
    async def test_no_stream_on_existing_conflicts(self, in_memory_store):
        await in_memory_store.append_to_stream("cart-1", StreamState.ANY, events("a"))

        with pytest.raises(ConcurrencyConflictError):
            await in_memory_store.append_to_stream("cart-1", StreamState.NO_STREAM, events("b"))

    @pytest.mark.asyncio
    async def test_stream_exists_on_missing_conflicts(self, in_memory_store):
        with pytest.raises(ConcurrencyConflictError) as exc_info:
            await in_memory_store.append_to_stream(
                "cart-1", StreamState.STREAM_EXISTS, events("a")
            )

        assert exc_info.value.actual_revision is None

    @pytest.mark.asyncio
    async def test_exact_revision_on_missing_conflicts(self, in_memory_store):
        with pytest.raises(ConcurrencyConflictError):
            await in_memory_store.append_to_stream("cart-1", 0, events("a"))

    @pytest.mark.asyncio
    async def test_empty_append_rejected(self, in_memory_store):
        with pytest.raises(ValueError):
            await in_memory_store.append_to_stream("cart-1", StreamState.ANY, [])

    @pytest.mark.asyncio
    async def test_global_positions_span_streams(self, in_memory_store):
        await in_memory_store.append_to_stream("cart-1", StreamState.ANY, events("a"))
        result = await in_memory_store.append_to_stream("cart-2", StreamState.ANY, events("b", "c"))

        assert result.global_position == 2
        assert await in_memory_store.get_global_position() == 2
        stream = [e async for e in in_memory_store.read_stream("cart-2")]
        assert [(e.revision, e.global_position) for e in stream] == [(0, 1), (1, 2)]


class TestReads:
    """Tests for read_stream() and read_all()."""

    @pytest.mark.asyncio
    async def test_read_missing_stream_is_empty(self, in_memory_store):
        assert [e async for e in in_memory_store.read_stream("nope")] == []
        assert await in_memory_store.get_stream_revision("nope") is None
        assert await in_memory_store.get_global_position() is None

    @pytest.mark.asyncio
    async def test_read_stream_from_revision(self, in_memory_store):
        await in_memory_store.append_to_stream("cart-1", StreamState.ANY, events("a", "b", "c"))

        read = [e.type async for e in in_memory_store.read_stream("cart-1", from_revision=1)]

        assert read == ["b", "c"]

    @pytest.mark.asyncio
    async def test_read_all_after_position_with_limit(self, in_memory_store):
        await in_memory_store.append_to_stream("cart-1", StreamState.ANY, events("a", "b"))
        await in_memory_store.append_to_stream("cart-2", StreamState.ANY, events("c", "d"))

        read = [
            e.global_position
            async for e in in_memory_store.read_all(after_position=0, limit=2)
        ]

        assert read == [1, 2]

    @pytest.mark.asyncio
    async def test_clear(self, in_memory_store):
        await in_memory_store.append_to_stream("cart-1", StreamState.ANY, events("a"))
        await in_memory_store.clear()
        assert in_memory_store.event_count == 0


class TestSubscribeToAll:
    """Tests for subscribe_to_all()."""

    @pytest.mark.asyncio
    async def test_empty_log_caught_up_immediately(self, in_memory_store):
        subscription = in_memory_store.subscribe_to_all()
        try:
            assert await anext(subscription) == CaughtUp(position=None)
        finally:
            await subscription.aclose()

    @pytest.mark.asyncio
    async def test_backlog_then_caught_up_then_live(self, in_memory_store):
        await in_memory_store.append_to_stream("cart-1", StreamState.ANY, events("a", "b", "c"))

        subscription = in_memory_store.subscribe_to_all(after_position=0)
        try:
            assert (await anext(subscription)).global_position == 1
            assert (await anext(subscription)).global_position == 2
            assert await anext(subscription) == CaughtUp(position=2)

            pending = asyncio.create_task(next_item(subscription))
            await asyncio.sleep(0)
            assert not pending.done()

            await in_memory_store.append_to_stream("cart-2", StreamState.ANY, events("d"))
            live = await asyncio.wait_for(pending, timeout=1)
            assert live.global_position == 3
            assert live.stream_id == "cart-2"
        finally:
            await subscription.aclose()

    @pytest.mark.asyncio
    async def test_subscription_from_last_position_waits(self, in_memory_store):
        await in_memory_store.append_to_stream("cart-1", StreamState.ANY, events("a", "b"))

        subscription = in_memory_store.subscribe_to_all(after_position=1)
        try:
            assert await anext(subscription) == CaughtUp(position=1)
        finally:
            await subscription.aclose()

    @pytest.mark.asyncio
    async def test_independent_subscribers(self):
        store = InMemoryEventStore(enable_tracing=False)
        await store.append_to_stream("cart-1", StreamState.ANY, events("a"))

        first = store.subscribe_to_all()
        second = store.subscribe_to_all()
        try:
            assert (await anext(first)).global_position == 0
            assert (await anext(second)).global_position == 0
        finally:
            await first.aclose()
            await second.aclose()
