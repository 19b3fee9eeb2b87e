"""
Event types for eventfold.

Example:
    >>> from eventfold.events import DomainEvent, EventRegistry
    >>>
    >>> class CartOpened(DomainEvent):
    ...     event_type: ClassVar[str] = "cart-opened"
    ...     cart_id: str
    >>>
    >>> registry = EventRegistry(CartOpened)
"""

from eventfold.events.base import (
    DomainEvent,
    NewEvent,
    RecordedEvent,
    UnrecognizedEvent,
)
from eventfold.events.registry import (
    DuplicateEventTypeError,
    EventRegistry,
    EventTypeNotFoundError,
)

__all__ = [
    "DomainEvent",
    "NewEvent",
    "RecordedEvent",
    "UnrecognizedEvent",
    "EventRegistry",
    "EventTypeNotFoundError",
    "DuplicateEventTypeError",
]
