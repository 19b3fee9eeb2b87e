"""
Event store gateway interface.

This module defines the contract every event store implementation honours:

- StreamState: symbolic expected-revision values
- AppendResult: outcome of a successful append
- CaughtUp: marker yielded by a global-log subscription after the backlog
- EventStore: abstract base class for event store implementations
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass
from enum import Enum

from eventfold.events.base import NewEvent, RecordedEvent
from eventfold.exceptions import ConcurrencyConflictError


class StreamState(Enum):
    """
    Symbolic expected revisions for append operations.

    - ANY: Don't check the stream revision
    - NO_STREAM: Expect the stream to have no events (creation)
    - STREAM_EXISTS: Expect the stream to have at least one event
    """

    ANY = "any"
    NO_STREAM = "no_stream"
    STREAM_EXISTS = "stream_exists"


ExpectedRevision = StreamState | int
"""Either a StreamState or the exact zero-based revision of the last event."""


@dataclass(frozen=True)
class AppendResult:
    """
    Result of appending events to a stream.

    Attributes:
        next_expected_revision: Revision of the last appended event; pass it
            as expected_revision on the next append to the same stream
        global_position: Global position of the last appended event
    """

    next_expected_revision: int
    global_position: int


@dataclass(frozen=True)
class CaughtUp:
    """
    Marker yielded by subscribe_to_all once the existing backlog is delivered.

    Attributes:
        position: Last global position delivered so far, None if the log
            was empty
    """

    position: int | None


def check_expected_revision(
    stream_id: str,
    expected_revision: ExpectedRevision,
    actual_revision: int | None,
) -> None:
    """
    Validate an expected revision against a stream's actual revision.

    Args:
        stream_id: Stream being appended to
        expected_revision: Precondition supplied by the caller
        actual_revision: Revision of the stream's last event, None if empty

    Raises:
        ConcurrencyConflictError: If the precondition does not hold
    """
    if expected_revision is StreamState.ANY:
        return
    if expected_revision is StreamState.NO_STREAM:
        ok = actual_revision is None
    elif expected_revision is StreamState.STREAM_EXISTS:
        ok = actual_revision is not None
    else:
        ok = actual_revision == expected_revision
    if not ok:
        raise ConcurrencyConflictError(stream_id, expected_revision, actual_revision)


def describe_expected_revision(expected_revision: ExpectedRevision) -> str:
    """String form of an expected revision, for logs and span attributes."""
    if isinstance(expected_revision, StreamState):
        return expected_revision.value
    return str(expected_revision)


class EventStore(ABC):
    """
    Abstract base class for event stores.

    The event store is the source of truth: an append-only log partitioned
    into streams. Every event has a contiguous zero-based revision inside its
    stream and a zero-based position in the global log.

    Implementations must handle:
    - Atomic, all-or-nothing appends under an expected-revision precondition
    - Lazy, forward-only stream reads
    - Global-log reads and subscriptions in position order

    Concrete implementations:
    - InMemoryEventStore: For testing and development
    - SQLAlchemyEventStore: PostgreSQL or SQLite through SQLAlchemy asyncio

    Example:
        >>> result = await store.append_to_stream(
        ...     "cart-1", StreamState.NO_STREAM, [opened.to_new_event()]
        ... )
        >>> result.next_expected_revision
        0
    """

    @abstractmethod
    def read_stream(
        self,
        stream_id: str,
        from_revision: int = 0,
    ) -> AsyncIterator[RecordedEvent]:
        """
        Read a stream's events in revision order.

        Args:
            stream_id: Stream to read
            from_revision: First revision to return (default: 0)

        Returns:
            Async iterator of RecordedEvent; empty if the stream has no events

        Raises:
            TransportError: If the store cannot be reached
        """
        ...

    @abstractmethod
    async def append_to_stream(
        self,
        stream_id: str,
        expected_revision: ExpectedRevision,
        events: Sequence[NewEvent],
    ) -> AppendResult:
        """
        Append events to a stream atomically.

        Args:
            stream_id: Stream to append to
            expected_revision: Precondition on the stream's current revision
            events: One or more events, appended in order

        Returns:
            AppendResult with the new revision and global position

        Raises:
            ConcurrencyConflictError: If the precondition does not hold
            ValueError: If events is empty
            TransportError: If the store cannot be reached
        """
        ...

    @abstractmethod
    def read_all(
        self,
        after_position: int | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[RecordedEvent]:
        """
        Read the global log in position order.

        Args:
            after_position: Return events strictly after this position;
                None starts at the beginning
            limit: Maximum number of events to return

        Returns:
            Async iterator of RecordedEvent
        """
        ...

    @abstractmethod
    def subscribe_to_all(
        self,
        after_position: int | None = None,
    ) -> AsyncIterator[RecordedEvent | CaughtUp]:
        """
        Subscribe to the global log.

        Yields the backlog strictly after `after_position`, then a CaughtUp
        marker, then live events as they are appended. The iterator never
        ends on its own; the consumer closes it or cancels its task.

        Args:
            after_position: Start strictly after this position; None starts
                at the beginning of the log
        """
        ...

    @abstractmethod
    async def get_stream_revision(self, stream_id: str) -> int | None:
        """Revision of the stream's last event, None if it has no events."""
        ...

    @abstractmethod
    async def get_global_position(self) -> int | None:
        """Position of the last event in the global log, None if empty."""
        ...


__all__ = [
    "StreamState",
    "ExpectedRevision",
    "AppendResult",
    "CaughtUp",
    "EventStore",
    "check_expected_revision",
    "describe_expected_revision",
]
