"""
Event records and typed event payloads.

Three shapes of an event exist in eventfold:

- NewEvent: what a caller hands to the store; it has no position yet.
- RecordedEvent: what the store hands back, with the stream revision and
  global position assigned at append time. Immutable.
- DomainEvent: a typed, validated view of a RecordedEvent's payload, used by
  fold and decision functions.

UnrecognizedEvent is the explicit fallback for recorded events whose type
is not part of a registry.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, ClassVar
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True)
class NewEvent:
    """
    An event ready to be appended to a stream.

    Attributes:
        type: Event type name (e.g. "cart-opened")
        data: JSON-compatible payload
        metadata: Additional contextual data (correlation ids, actor, ...)
        event_id: Unique identifier, generated when not given

    Example:
        >>> event = NewEvent(type="cart-opened", data={"cart_id": "c-1"})
    """

    type: str
    data: dict[str, Any] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    event_id: UUID = field(default_factory=uuid4)

    def __post_init__(self) -> None:
        if not self.type:
            raise ValueError("event type must not be empty")


@dataclass(frozen=True)
class RecordedEvent:
    """
    A persisted event with stream and global position metadata.

    Attributes:
        event_id: Unique identifier of the event
        type: Event type name
        data: JSON payload as stored
        stream_id: Stream the event belongs to
        revision: Zero-based position within the stream
        global_position: Zero-based position across all streams
        recorded_at: When the store accepted the event (UTC)
        metadata: Additional contextual data
    """

    event_id: UUID
    type: str
    data: dict[str, Any]
    stream_id: str
    revision: int
    global_position: int
    recorded_at: datetime
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_new_event(
        cls,
        event: NewEvent,
        stream_id: str,
        revision: int,
        global_position: int,
        recorded_at: datetime | None = None,
    ) -> RecordedEvent:
        """Build the recorded form of a new event at the given positions."""
        return cls(
            event_id=event.event_id,
            type=event.type,
            data=dict(event.data),
            stream_id=stream_id,
            revision=revision,
            global_position=global_position,
            recorded_at=recorded_at or datetime.now(UTC),
            metadata=dict(event.metadata),
        )

    def __str__(self) -> str:
        return (
            f"RecordedEvent({self.type}, stream={self.stream_id}, "
            f"revision={self.revision}, global_pos={self.global_position})"
        )


class DomainEvent(BaseModel):
    """
    Base class for typed event payloads.

    Subclasses declare the payload fields. The `event_type` class variable
    is the name the event is stored under; it defaults to the class name
    and can be set explicitly to keep stored names stable across renames.

    Example:
        >>> class CartOpened(DomainEvent):
        ...     event_type: ClassVar[str] = "cart-opened"
        ...     cart_id: str
        ...     opened_at: datetime
        ...
        >>> CartOpened(cart_id="c-1", opened_at=now).to_new_event().type
        'cart-opened'
    """

    model_config = ConfigDict(frozen=True)

    event_type: ClassVar[str] = ""

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        # Inherited names would make two event kinds indistinguishable
        if "event_type" not in cls.__dict__ or not cls.__dict__["event_type"]:
            cls.event_type = cls.__name__

    def to_new_event(self, metadata: dict[str, Any] | None = None) -> NewEvent:
        """
        Convert the payload into an appendable NewEvent.

        Args:
            metadata: Optional metadata to attach to the event

        Returns:
            NewEvent with a JSON-ready payload
        """
        return NewEvent(
            type=self.event_type,
            data=self.model_dump(mode="json"),
            metadata=metadata or {},
        )


@dataclass(frozen=True)
class UnrecognizedEvent:
    """
    A recorded event whose type is not known to the decoding registry.

    Fold functions never see this value; the aggregator skips it so that
    streams written by newer code can still be read by older code.
    """

    recorded: RecordedEvent

    @property
    def type(self) -> str:
        return self.recorded.type


__all__ = [
    "NewEvent",
    "RecordedEvent",
    "DomainEvent",
    "UnrecognizedEvent",
]
