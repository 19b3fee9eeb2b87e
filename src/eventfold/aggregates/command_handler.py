"""
Command handler: read, fold, decide, append.

A command handler binds a decision function to an event store and an
aggregator. Each handled command performs at most one conditional append,
so two concurrent commands against the same stream cannot both succeed
against the same revision.

Example:
    >>> handler = CommandHandler(store, StreamAggregator(evolve, registry))
    >>>
    >>> open_cart = handler.create(decide_open_cart)
    >>> add_item = handler.update(decide_add_item)
    >>>
    >>> created = await open_cart("cart-1", OpenCart(client_id="c-7"))
    >>> await add_item("cart-1", AddItem(...), created.next_expected_revision)
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Generic

from eventfold.aggregates.aggregator import StreamAggregator
from eventfold.events.base import DomainEvent, NewEvent
from eventfold.exceptions import ConcurrencyConflictError, StreamNotFoundError
from eventfold.observability import (
    ATTR_COMMAND_TYPE,
    ATTR_EVENT_COUNT,
    ATTR_EXPECTED_REVISION,
    ATTR_REVISION,
    ATTR_STREAM_ID,
    Tracer,
    create_tracer,
)
from eventfold.stores.interface import (
    EventStore,
    ExpectedRevision,
    StreamState,
    describe_expected_revision,
)
from eventfold.types import TCommand, TState

logger = logging.getLogger(__name__)

Decision = DomainEvent | NewEvent | Sequence[DomainEvent | NewEvent]
"""What a decision function returns: one event or an ordered sequence."""

CreateDecide = Callable[[TCommand], Decision | Awaitable[Decision]]
UpdateDecide = Callable[[TCommand, TState], Decision | Awaitable[Decision]]


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of a successfully handled command.

    Attributes:
        stream_id: Stream the events were appended to
        next_expected_revision: Revision to pass on the next update
        global_position: Global position of the last appended event
    """

    stream_id: str
    next_expected_revision: int
    global_position: int


class CommandHandler(Generic[TState]):
    """
    Runs decision functions against event-sourced streams.

    Errors:
        DomainError raised by a decision function and ConcurrencyConflictError
        raised by the store reach the caller unchanged. Neither is retried;
        retry policy belongs to the caller.

    Args:
        event_store: Store to read from and append to
        aggregator: Folds the stream into the state handed to decisions
        tracer: Optional custom Tracer instance
        enable_tracing: Emit OpenTelemetry spans (default: True)
    """

    def __init__(
        self,
        event_store: EventStore,
        aggregator: StreamAggregator[TState],
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._event_store = event_store
        self._aggregator = aggregator
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @property
    def event_store(self) -> EventStore:
        return self._event_store

    @property
    def aggregator(self) -> StreamAggregator[TState]:
        return self._aggregator

    def create(
        self,
        decide: CreateDecide[TCommand],
    ) -> Callable[[str, TCommand], Awaitable[CommandResult]]:
        """
        Bind a decision that starts a new stream.

        The returned coroutine function appends with StreamState.NO_STREAM,
        so creating a stream that already has events raises
        ConcurrencyConflictError.

        Args:
            decide: (command) -> event(s); may be a coroutine function

        Returns:
            async (stream_id, command) -> CommandResult
        """

        async def handle(stream_id: str, command: TCommand) -> CommandResult:
            with self._tracer.span(
                "eventfold.command_handler.create",
                {
                    ATTR_STREAM_ID: stream_id,
                    ATTR_COMMAND_TYPE: type(command).__name__,
                },
            ):
                events = _to_new_events(await _call(decide, command))
                return await self._append(stream_id, StreamState.NO_STREAM, events, command)

        handle.__name__ = getattr(decide, "__name__", "create")
        return handle

    def update(
        self,
        decide: UpdateDecide[TCommand, TState],
    ) -> Callable[..., Awaitable[CommandResult]]:
        """
        Bind a decision that extends an existing stream.

        The returned coroutine function reads the stream once, folds it,
        calls decide(command, state) and appends the decision under the
        caller's expected revision (StreamState.ANY when omitted).

        Args:
            decide: (command, state) -> event(s); may be a coroutine function

        Returns:
            async (stream_id, command, expected_revision=None) -> CommandResult

        Raises (from the returned function):
            StreamNotFoundError: If the stream has no events
            ConcurrencyConflictError: If expected_revision does not match
            DomainError: If the decision rejects the command
        """

        async def handle(
            stream_id: str,
            command: TCommand,
            expected_revision: ExpectedRevision | None = None,
        ) -> CommandResult:
            expected = StreamState.ANY if expected_revision is None else expected_revision
            with self._tracer.span(
                "eventfold.command_handler.update",
                {
                    ATTR_STREAM_ID: stream_id,
                    ATTR_COMMAND_TYPE: type(command).__name__,
                    ATTR_EXPECTED_REVISION: describe_expected_revision(expected),
                },
            ):
                folded = await self._aggregator.aggregate(
                    self._event_store.read_stream(stream_id)
                )
                if folded.last_revision is None:
                    raise StreamNotFoundError(stream_id)

                if isinstance(expected, int) and expected != folded.last_revision:
                    raise ConcurrencyConflictError(stream_id, expected, folded.last_revision)

                events = _to_new_events(await _call(decide, command, folded.state))
                return await self._append(stream_id, expected, events, command)

        handle.__name__ = getattr(decide, "__name__", "update")
        return handle

    async def _append(
        self,
        stream_id: str,
        expected_revision: ExpectedRevision,
        events: list[NewEvent],
        command: Any,
    ) -> CommandResult:
        with self._tracer.span(
            "eventfold.command_handler.append",
            {ATTR_STREAM_ID: stream_id, ATTR_EVENT_COUNT: len(events)},
        ) as span:
            result = await self._event_store.append_to_stream(stream_id, expected_revision, events)
            if span:
                span.set_attribute(ATTR_REVISION, result.next_expected_revision)

        logger.debug(
            "Handled %s on stream %s, now at revision %d",
            type(command).__name__,
            stream_id,
            result.next_expected_revision,
            extra={
                "stream_id": stream_id,
                "command_type": type(command).__name__,
                "revision": result.next_expected_revision,
                "event_count": len(events),
            },
        )
        return CommandResult(
            stream_id=stream_id,
            next_expected_revision=result.next_expected_revision,
            global_position=result.global_position,
        )


async def _call(decide: Callable[..., Any], *args: Any) -> Any:
    result = decide(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def _to_new_events(decision: Any) -> list[NewEvent]:
    if isinstance(decision, (DomainEvent, NewEvent)):
        items = [decision]
    else:
        items = list(decision)
    if not items:
        raise ValueError("decision function returned no events")

    events: list[NewEvent] = []
    for item in items:
        if isinstance(item, DomainEvent):
            events.append(item.to_new_event())
        elif isinstance(item, NewEvent):
            events.append(item)
        else:
            raise TypeError(
                f"decision function returned {type(item).__name__}, "
                "expected DomainEvent or NewEvent"
            )
    return events


__all__ = [
    "CommandHandler",
    "CommandResult",
    "Decision",
]
