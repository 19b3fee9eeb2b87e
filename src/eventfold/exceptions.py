"""Library exceptions for the eventfold package."""

from typing import Any


class EventFoldError(Exception):
    """Base exception for eventfold library."""

    pass


class DomainError(EventFoldError):
    """
    Raised by decision functions when a command violates a business rule.

    Domain errors are caller errors. The command handler never retries them
    and never wraps them; they reach the caller exactly as raised.

    Attributes:
        code: Optional machine-readable error code (e.g. "CART_IS_NOT_OPENED")
    """

    def __init__(self, message: str, code: str | None = None) -> None:
        self.code = code
        super().__init__(message)


class ConcurrencyConflictError(EventFoldError):
    """Raised when a stream's actual revision does not satisfy the expected revision."""

    def __init__(self, stream_id: str, expected_revision: Any, actual_revision: int | None) -> None:
        self.stream_id = stream_id
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision
        actual = "no stream" if actual_revision is None else f"revision {actual_revision}"
        super().__init__(
            f"Concurrency conflict on stream {stream_id}: "
            f"expected {expected_revision}, but stream is at {actual}"
        )


class StreamNotFoundError(EventFoldError):
    """Raised when a stream has no events but the operation requires some."""

    def __init__(self, stream_id: str) -> None:
        self.stream_id = stream_id
        super().__init__(f"Stream not found: {stream_id}")


class ProjectionError(EventFoldError):
    """
    Raised when a projection handler fails while applying an event.

    The transaction holding the handler's writes and the checkpoint is rolled
    back before this error reaches the caller, so `position` is the global
    position of the first event that was NOT applied.

    Attributes:
        subscription_name: Name of the subscription that faulted
        handler_name: Name of the failing handler
        event_type: Type of the event being applied
        position: Global position of the event being applied
    """

    def __init__(
        self,
        subscription_name: str,
        handler_name: str,
        event_type: str,
        position: int,
        message: str,
    ) -> None:
        self.subscription_name = subscription_name
        self.handler_name = handler_name
        self.event_type = event_type
        self.position = position
        super().__init__(
            f"Projection handler {handler_name} of subscription {subscription_name} "
            f"failed on {event_type} at position {position}: {message}"
        )


class TransportError(EventFoldError):
    """Raised when the event store or the relational sink cannot be reached."""

    pass


class SerializationError(EventFoldError):
    """Raised when event serialization or deserialization fails."""

    def __init__(self, event_type: str, message: str) -> None:
        self.event_type = event_type
        super().__init__(f"Serialization error for {event_type}: {message}")
