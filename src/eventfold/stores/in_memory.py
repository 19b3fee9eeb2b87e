"""
In-memory event store implementation.

Useful for testing and development. Not suitable for production
as all events are lost when the process terminates.
"""

import asyncio
import logging
from collections import defaultdict
from collections.abc import AsyncIterator, Sequence

from eventfold.events.base import NewEvent, RecordedEvent
from eventfold.observability import (
    ATTR_EVENT_COUNT,
    ATTR_EXPECTED_REVISION,
    ATTR_FROM_POSITION,
    ATTR_FROM_REVISION,
    ATTR_STREAM_ID,
    Tracer,
    create_tracer,
)
from eventfold.stores.interface import (
    AppendResult,
    CaughtUp,
    EventStore,
    ExpectedRevision,
    check_expected_revision,
    describe_expected_revision,
)

logger = logging.getLogger(__name__)


class InMemoryEventStore(EventStore):
    """
    In-memory implementation of the event store.

    Suitable for:
    - Unit testing
    - Development environments
    - Single-process applications with ephemeral state

    Thread-safety:
        Appends are serialised by an asyncio.Condition, which also wakes
        live subscribers. Safe for concurrent tasks on one event loop.

    Example:
        >>> store = InMemoryEventStore()
        >>> result = await store.append_to_stream(
        ...     "cart-1", StreamState.NO_STREAM, [NewEvent(type="cart-opened")]
        ... )
        >>> result.next_expected_revision
        0
    """

    def __init__(
        self,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize an empty in-memory event store.

        Args:
            tracer: Optional custom Tracer instance. If not provided, one is
                   created based on enable_tracing setting.
            enable_tracing: Emit OpenTelemetry spans (default: True).
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

        self._streams: dict[str, list[RecordedEvent]] = defaultdict(list)
        self._global_events: list[RecordedEvent] = []
        self._changed = asyncio.Condition()

    async def append_to_stream(
        self,
        stream_id: str,
        expected_revision: ExpectedRevision,
        events: Sequence[NewEvent],
    ) -> AppendResult:
        if not events:
            raise ValueError("append_to_stream requires at least one event")

        with self._tracer.span(
            "eventfold.inmemory_event_store.append",
            {
                ATTR_STREAM_ID: stream_id,
                ATTR_EVENT_COUNT: len(events),
                ATTR_EXPECTED_REVISION: describe_expected_revision(expected_revision),
            },
        ):
            async with self._changed:
                stream = self._streams[stream_id]
                actual = len(stream) - 1 if stream else None
                check_expected_revision(stream_id, expected_revision, actual)

                revision = -1 if actual is None else actual
                for event in events:
                    revision += 1
                    recorded = RecordedEvent.from_new_event(
                        event,
                        stream_id=stream_id,
                        revision=revision,
                        global_position=len(self._global_events),
                    )
                    stream.append(recorded)
                    self._global_events.append(recorded)

                self._changed.notify_all()

                logger.debug(
                    "Appended %d event(s) to stream %s",
                    len(events),
                    stream_id,
                    extra={
                        "stream_id": stream_id,
                        "revision": revision,
                        "global_position": len(self._global_events) - 1,
                    },
                )
                return AppendResult(
                    next_expected_revision=revision,
                    global_position=len(self._global_events) - 1,
                )

    async def read_stream(
        self,
        stream_id: str,
        from_revision: int = 0,
    ) -> AsyncIterator[RecordedEvent]:
        with self._tracer.span(
            "eventfold.inmemory_event_store.read_stream",
            {ATTR_STREAM_ID: stream_id, ATTR_FROM_REVISION: from_revision},
        ):
            async with self._changed:
                snapshot = list(self._streams.get(stream_id, ())[from_revision:])

        for event in snapshot:
            yield event

    async def read_all(
        self,
        after_position: int | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[RecordedEvent]:
        start = 0 if after_position is None else after_position + 1
        with self._tracer.span(
            "eventfold.inmemory_event_store.read_all",
            {ATTR_FROM_POSITION: -1 if after_position is None else after_position},
        ):
            async with self._changed:
                end = None if limit is None else start + limit
                snapshot = self._global_events[start:end]

        for event in snapshot:
            yield event

    async def subscribe_to_all(
        self,
        after_position: int | None = None,
    ) -> AsyncIterator[RecordedEvent | CaughtUp]:
        next_position = 0 if after_position is None else after_position + 1
        caught_up = False

        while True:
            async with self._changed:
                if caught_up:
                    await self._changed.wait_for(
                        lambda: len(self._global_events) > next_position
                    )
                batch = self._global_events[next_position:]

            for event in batch:
                next_position = event.global_position + 1
                yield event

            if not caught_up:
                caught_up = True
                yield CaughtUp(position=next_position - 1 if next_position > 0 else None)

    async def get_stream_revision(self, stream_id: str) -> int | None:
        async with self._changed:
            stream = self._streams.get(stream_id)
            return len(stream) - 1 if stream else None

    async def get_global_position(self) -> int | None:
        async with self._changed:
            return len(self._global_events) - 1 if self._global_events else None

    async def clear(self) -> None:
        """Remove all events. Primarily useful between tests."""
        async with self._changed:
            self._streams.clear()
            self._global_events.clear()

    @property
    def event_count(self) -> int:
        return len(self._global_events)


__all__ = ["InMemoryEventStore"]
