"""
Event type registry: the closed set of event kinds of one bounded context.

A registry maps stored type names to DomainEvent classes and decodes
recorded events into typed payloads. Types outside the registry decode to
UnrecognizedEvent instead of failing, so old readers keep working when new
event kinds are introduced.

Usage:
    registry = EventRegistry(CartOpened, ProductItemAddedToCart)
    registry.register(CartConfirmed)

    @registry.event
    class CartCancelled(DomainEvent):
        event_type: ClassVar[str] = "cart-cancelled"
        ...

    decoded = registry.decode(recorded_event)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from typing import TypeVar

from pydantic import ValidationError

from eventfold.events.base import DomainEvent, RecordedEvent, UnrecognizedEvent
from eventfold.exceptions import SerializationError

logger = logging.getLogger(__name__)

TEvent = TypeVar("TEvent", bound=DomainEvent)


class EventTypeNotFoundError(KeyError):
    """
    Raised when an event type is not found in the registry.

    Provides helpful error messages including a list of available event types.
    """

    def __init__(self, event_type: str, available_types: list[str]) -> None:
        self.event_type = event_type
        self.available_types = available_types
        available = ", ".join(sorted(available_types)) if available_types else "none"
        super().__init__(
            f"Unknown event type: '{event_type}'. Available types: {available}."
        )


class DuplicateEventTypeError(ValueError):
    """Raised when a different class is registered under an existing type name."""

    def __init__(
        self,
        event_type: str,
        existing_class: type[DomainEvent],
        new_class: type[DomainEvent],
    ) -> None:
        self.event_type = event_type
        self.existing_class = existing_class
        self.new_class = new_class
        super().__init__(
            f"Event type '{event_type}' is already registered to {existing_class.__name__}. "
            f"Cannot register {new_class.__name__} with the same type name."
        )


class EventRegistry:
    """
    Registry for mapping event type names to DomainEvent classes.

    Thread-Safety:
        All operations are thread-safe and use internal locking.

    Example:
        >>> registry = EventRegistry(CartOpened)
        >>> registry.get("cart-opened")
        <class 'CartOpened'>
        >>> registry.decode(recorded)
        CartOpened(cart_id='c-1', ...)
    """

    def __init__(self, *event_classes: type[DomainEvent]) -> None:
        self._registry: dict[str, type[DomainEvent]] = {}
        self._lock = threading.RLock()
        for event_class in event_classes:
            self.register(event_class)

    def register(self, event_class: type[TEvent]) -> type[TEvent]:
        """
        Register an event class under its `event_type` name.

        Args:
            event_class: The DomainEvent subclass to register

        Returns:
            The registered event class (enables use as decorator)

        Raises:
            DuplicateEventTypeError: If the name is taken by a different class
        """
        event_type = event_class.event_type

        with self._lock:
            existing = self._registry.get(event_type)
            if existing is not None:
                if existing is not event_class:
                    raise DuplicateEventTypeError(event_type, existing, event_class)
                return event_class

            self._registry[event_type] = event_class
            logger.debug(
                "Registered event type '%s' -> %s",
                event_type,
                event_class.__name__,
                extra={
                    "event_type": event_type,
                    "event_class": event_class.__name__,
                },
            )
            return event_class

    def event(self, event_class: type[TEvent]) -> type[TEvent]:
        """Decorator form of register()."""
        return self.register(event_class)

    def get(self, event_type: str) -> type[DomainEvent]:
        """
        Get event class by type name.

        Raises:
            EventTypeNotFoundError: If event type is not registered
        """
        with self._lock:
            if event_type not in self._registry:
                raise EventTypeNotFoundError(event_type, list(self._registry.keys()))
            return self._registry[event_type]

    def get_or_none(self, event_type: str) -> type[DomainEvent] | None:
        """Get event class by type name, returning None if not found."""
        with self._lock:
            return self._registry.get(event_type)

    def contains(self, event_type: str) -> bool:
        with self._lock:
            return event_type in self._registry

    def list_types(self) -> list[str]:
        """Sorted list of registered event type names."""
        with self._lock:
            return sorted(self._registry.keys())

    def decode(self, recorded: RecordedEvent) -> DomainEvent | UnrecognizedEvent:
        """
        Decode a recorded event into its typed payload.

        Args:
            recorded: Event as returned by the event store

        Returns:
            The validated DomainEvent, or UnrecognizedEvent if the type is
            not registered

        Raises:
            SerializationError: If the type is registered but the payload
                does not validate against its class
        """
        event_class = self.get_or_none(recorded.type)
        if event_class is None:
            return UnrecognizedEvent(recorded)

        try:
            return event_class.model_validate(recorded.data)
        except ValidationError as e:
            raise SerializationError(
                recorded.type,
                f"payload at {recorded.stream_id}@{recorded.revision} is invalid: {e}",
            ) from e

    def __len__(self) -> int:
        with self._lock:
            return len(self._registry)

    def __bool__(self) -> bool:
        """Registry is always truthy, even when empty."""
        return True

    def __contains__(self, event_type: str) -> bool:
        return self.contains(event_type)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._registry.keys()))


__all__ = [
    "EventRegistry",
    "EventTypeNotFoundError",
    "DuplicateEventTypeError",
]
