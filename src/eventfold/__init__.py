"""
eventfold - Event sourcing runtime for asyncio applications.

This library provides:
- Event Store gateway with In-Memory and SQLAlchemy (PostgreSQL/SQLite) backends
- Typed domain events with Pydantic models and a closed event registry
- Stream aggregation and command handling under optimistic concurrency
- Checkpointed subscriptions that project the global log into relational
  read models, one transaction per event
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("eventfold")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from eventfold.aggregates import (
    AggregateResult,
    CommandHandler,
    CommandResult,
    StreamAggregator,
)
from eventfold.events import (
    DomainEvent,
    EventRegistry,
    NewEvent,
    RecordedEvent,
    UnrecognizedEvent,
)
from eventfold.exceptions import (
    ConcurrencyConflictError,
    DomainError,
    EventFoldError,
    ProjectionError,
    SerializationError,
    StreamNotFoundError,
    TransportError,
)
from eventfold.projections import advance_revision, insert_if_absent
from eventfold.repositories import (
    Checkpoint,
    CheckpointStore,
    SQLAlchemyCheckpointStore,
)
from eventfold.schema import create_schema
from eventfold.stores import (
    AppendResult,
    CaughtUp,
    EventStore,
    ExpectedRevision,
    InMemoryEventStore,
    SQLAlchemyEventStore,
    StreamState,
)
from eventfold.subscriptions import (
    SubscriptionConfig,
    SubscriptionManager,
    SubscriptionRunner,
    SubscriptionState,
    SubscriptionStatus,
)

__all__ = [
    "__version__",
    # Events
    "DomainEvent",
    "NewEvent",
    "RecordedEvent",
    "UnrecognizedEvent",
    "EventRegistry",
    # Stores
    "EventStore",
    "StreamState",
    "ExpectedRevision",
    "AppendResult",
    "CaughtUp",
    "InMemoryEventStore",
    "SQLAlchemyEventStore",
    "create_schema",
    # Aggregates
    "AggregateResult",
    "StreamAggregator",
    "CommandHandler",
    "CommandResult",
    # Checkpoints and projections
    "Checkpoint",
    "CheckpointStore",
    "SQLAlchemyCheckpointStore",
    "advance_revision",
    "insert_if_absent",
    # Subscriptions
    "SubscriptionConfig",
    "SubscriptionManager",
    "SubscriptionRunner",
    "SubscriptionState",
    "SubscriptionStatus",
    # Exceptions
    "EventFoldError",
    "DomainError",
    "ConcurrencyConflictError",
    "StreamNotFoundError",
    "ProjectionError",
    "TransportError",
    "SerializationError",
]
