"""
Stream aggregator: folds a stream's events into state.

The aggregator is pure. It never touches a store; it decodes each recorded
event through an EventRegistry and hands the typed payload to an `evolve`
function together with the state accumulated so far.

Example:
    >>> def evolve(state: Cart | None, event: DomainEvent) -> Cart:
    ...     match event:
    ...         case CartOpened():
    ...             return Cart(id=event.cart_id, status="opened")
    ...         case CartConfirmed():
    ...             return replace(state, status="confirmed")
    ...     return state
    >>>
    >>> aggregator = StreamAggregator(evolve, EventRegistry(CartOpened, CartConfirmed))
    >>> result = await aggregator.aggregate(store.read_stream("cart-1"))
    >>> result.state, result.last_revision
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterable, Callable, Iterable
from dataclasses import dataclass
from typing import Generic

from eventfold.events.base import DomainEvent, RecordedEvent, UnrecognizedEvent
from eventfold.events.registry import EventRegistry
from eventfold.types import TState

logger = logging.getLogger(__name__)

Evolve = Callable[[TState | None, DomainEvent], TState]


@dataclass(frozen=True)
class AggregateResult(Generic[TState]):
    """
    Outcome of folding a stream.

    Attributes:
        state: Folded state, None when no recognized event was folded
        last_revision: Revision of the last event consumed, None when the
            stream had no events ("no stream")
    """

    state: TState | None = None
    last_revision: int | None = None

    @property
    def exists(self) -> bool:
        """True if at least one event was consumed."""
        return self.last_revision is not None


class StreamAggregator(Generic[TState]):
    """
    Folds recorded events into aggregate state.

    Unknown event types are logged and skipped; the state is unchanged and
    the revision still advances, since the event exists in the stream.

    Args:
        evolve: Pure function (state | None, event) -> new state
        registry: Closed set of event kinds the evolve function understands
        name: Name used in log messages (defaults to the evolve function's name)
    """

    def __init__(
        self,
        evolve: Evolve[TState],
        registry: EventRegistry,
        *,
        name: str | None = None,
    ) -> None:
        self._evolve = evolve
        self._registry = registry
        self._name = name or getattr(evolve, "__name__", type(evolve).__name__)

    @property
    def registry(self) -> EventRegistry:
        return self._registry

    @property
    def name(self) -> str:
        return self._name

    def apply(self, state: TState | None, recorded: RecordedEvent) -> TState | None:
        """
        Apply a single recorded event to a state.

        Raises:
            SerializationError: If the event's type is registered but its
                payload does not validate
        """
        decoded = self._registry.decode(recorded)
        if isinstance(decoded, UnrecognizedEvent):
            logger.warning(
                "Aggregator %s skipping unknown event type %s at %s@%d",
                self._name,
                recorded.type,
                recorded.stream_id,
                recorded.revision,
                extra={
                    "aggregator": self._name,
                    "event_type": recorded.type,
                    "stream_id": recorded.stream_id,
                    "revision": recorded.revision,
                },
            )
            return state
        return self._evolve(state, decoded)

    def fold(
        self,
        events: Iterable[RecordedEvent],
        initial: AggregateResult[TState] | None = None,
    ) -> AggregateResult[TState]:
        """
        Fold an in-memory sequence of events.

        Args:
            events: Events of one stream in revision order
            initial: Result of a previous fold to continue from

        Returns:
            AggregateResult with the final state and last revision
        """
        state = initial.state if initial else None
        last_revision = initial.last_revision if initial else None
        for recorded in events:
            state = self.apply(state, recorded)
            last_revision = recorded.revision
        return AggregateResult(state=state, last_revision=last_revision)

    async def aggregate(
        self,
        events: AsyncIterable[RecordedEvent],
        initial: AggregateResult[TState] | None = None,
    ) -> AggregateResult[TState]:
        """
        Fold a lazily read stream, consuming it once.

        Args:
            events: Async iterable of events, e.g. EventStore.read_stream()
            initial: Result of a previous fold to continue from

        Returns:
            AggregateResult with the final state and last revision
        """
        state = initial.state if initial else None
        last_revision = initial.last_revision if initial else None
        async for recorded in events:
            state = self.apply(state, recorded)
            last_revision = recorded.revision
        return AggregateResult(state=state, last_revision=last_revision)


__all__ = [
    "AggregateResult",
    "Evolve",
    "StreamAggregator",
]
