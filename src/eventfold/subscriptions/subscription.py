"""
Subscription state machine and status tracking.

This module provides:
- SubscriptionState: Enum of all possible subscription states
- SubscriptionStatus: Immutable snapshot for health checks
- Subscription: State, position and statistics of one named subscription
- ProjectionHandler: Type alias for projection handler callables

State Machine:
    IDLE -> CATCHING_UP | STOPPED | FAULTED
    CATCHING_UP -> LIVE | STOPPED | FAULTED
    LIVE -> STOPPED | FAULTED
    FAULTED -> IDLE (operator restart)
    STOPPED -> IDLE (restart)
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy.ext.asyncio import AsyncConnection

from eventfold.events.base import RecordedEvent
from eventfold.subscriptions.exceptions import SubscriptionStateError

logger = logging.getLogger(__name__)


class SubscriptionState(Enum):
    """States a subscription can be in during its lifecycle."""

    IDLE = "idle"
    """Not running; checkpoint not loaded yet."""

    CATCHING_UP = "catching_up"
    """Applying the backlog that existed when the subscription started."""

    LIVE = "live"
    """Backlog applied; applying new events as they are appended."""

    FAULTED = "faulted"
    """A handler failed; waiting for an operator to fix or skip the event."""

    STOPPED = "stopped"
    """Cleanly shut down."""


VALID_TRANSITIONS: dict[SubscriptionState, set[SubscriptionState]] = {
    SubscriptionState.IDLE: {
        SubscriptionState.CATCHING_UP,
        SubscriptionState.STOPPED,
        SubscriptionState.FAULTED,
    },
    SubscriptionState.CATCHING_UP: {
        SubscriptionState.LIVE,
        SubscriptionState.STOPPED,
        SubscriptionState.FAULTED,
    },
    SubscriptionState.LIVE: {
        SubscriptionState.STOPPED,
        SubscriptionState.FAULTED,
    },
    SubscriptionState.FAULTED: {
        SubscriptionState.IDLE,  # Operator restart
    },
    SubscriptionState.STOPPED: {
        SubscriptionState.IDLE,
    },
}


def is_valid_transition(
    from_state: SubscriptionState,
    to_state: SubscriptionState,
) -> bool:
    """
    Check if a state transition is valid.

    Args:
        from_state: Current state
        to_state: Target state

    Returns:
        True if transition is allowed, False otherwise
    """
    return to_state in VALID_TRANSITIONS.get(from_state, set())


ProjectionHandler = Callable[[AsyncConnection, RecordedEvent], Awaitable[None]]
"""Async handler applying one event through the transaction's connection."""


@dataclass(frozen=True)
class SubscriptionStatus:
    """
    Status snapshot for health checks and monitoring.

    Attributes:
        name: Subscription name
        state: Current state as string
        position: Global position of the last applied event (None if none)
        events_processed: Events applied since the runner was created
        last_processed_at: ISO timestamp of last applied event
        started_at: ISO timestamp when the current run started
        error: Error message if faulted
    """

    name: str
    state: str
    position: int | None
    events_processed: int
    last_processed_at: str | None
    started_at: str | None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "state": self.state,
            "position": self.position,
            "events_processed": self.events_processed,
            "last_processed_at": self.last_processed_at,
            "started_at": self.started_at,
            "error": self.error,
        }


@dataclass
class Subscription:
    """
    State, position tracking and statistics of one named subscription.

    The Subscription does not process events; the runner drives it.

    Example:
        >>> subscription = Subscription(name="cart-details")
        >>> await subscription.transition_to(SubscriptionState.CATCHING_UP)
    """

    name: str

    state: SubscriptionState = field(default=SubscriptionState.IDLE)
    _previous_state: SubscriptionState | None = field(default=None, repr=False)

    position: int | None = field(default=None)
    last_event_type: str | None = field(default=None)

    events_processed: int = field(default=0)
    last_processed_at: datetime | None = field(default=None)
    started_at: datetime | None = field(default=None)

    last_error: Exception | None = field(default=None, repr=False)
    last_error_at: datetime | None = field(default=None)

    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def transition_to(self, new_state: SubscriptionState) -> None:
        """
        Transition to a new state.

        Raises:
            SubscriptionStateError: If the transition is not valid
        """
        async with self._lock:
            if not is_valid_transition(self.state, new_state):
                valid_targets = VALID_TRANSITIONS.get(self.state, set())
                raise SubscriptionStateError(
                    f"Cannot transition from {self.state.value} to {new_state.value}. "
                    f"Valid transitions: {sorted(s.value for s in valid_targets)}"
                )

            self._previous_state = self.state
            old_state = self.state
            self.state = new_state

            if new_state == SubscriptionState.CATCHING_UP:
                self.started_at = datetime.now(UTC)
            elif new_state == SubscriptionState.IDLE:
                self.last_error = None
                self.last_error_at = None

            if new_state == SubscriptionState.FAULTED:
                logger.error(
                    "Subscription %s faulted",
                    self.name,
                    extra={
                        "subscription": self.name,
                        "from_state": old_state.value,
                        "to_state": new_state.value,
                        "position": self.position,
                        "error": str(self.last_error) if self.last_error else None,
                    },
                )
            else:
                logger.info(
                    "Subscription %s state changed: %s -> %s",
                    self.name,
                    old_state.value,
                    new_state.value,
                    extra={
                        "subscription": self.name,
                        "from_state": old_state.value,
                        "to_state": new_state.value,
                        "position": self.position,
                    },
                )

    async def record_event_processed(self, position: int, event_type: str) -> None:
        """Record that an event's transaction committed."""
        async with self._lock:
            self.position = position
            self.last_event_type = event_type
            self.events_processed += 1
            self.last_processed_at = datetime.now(UTC)

    async def set_error(self, error: Exception) -> None:
        """Record the error and transition to FAULTED."""
        async with self._lock:
            self.last_error = error
            self.last_error_at = datetime.now(UTC)
        await self.transition_to(SubscriptionState.FAULTED)

    @property
    def is_running(self) -> bool:
        return self.state in {
            SubscriptionState.CATCHING_UP,
            SubscriptionState.LIVE,
        }

    @property
    def previous_state(self) -> SubscriptionState | None:
        return self._previous_state

    def get_status(self) -> SubscriptionStatus:
        """Get a status snapshot for health checks."""
        return SubscriptionStatus(
            name=self.name,
            state=self.state.value,
            position=self.position,
            events_processed=self.events_processed,
            last_processed_at=(
                self.last_processed_at.isoformat() if self.last_processed_at else None
            ),
            started_at=self.started_at.isoformat() if self.started_at else None,
            error=str(self.last_error) if self.last_error else None,
        )

    def __str__(self) -> str:
        return f"Subscription({self.name}, state={self.state.value}, pos={self.position})"


__all__ = [
    "SubscriptionState",
    "SubscriptionStatus",
    "Subscription",
    "ProjectionHandler",
    "is_valid_transition",
    "VALID_TRANSITIONS",
]
