"""
Event store gateway implementations.

- InMemoryEventStore: in-process store with live subscriptions
- SQLAlchemyEventStore: PostgreSQL / SQLite store with polling subscriptions
"""

from eventfold.stores.in_memory import InMemoryEventStore
from eventfold.stores.interface import (
    AppendResult,
    CaughtUp,
    EventStore,
    ExpectedRevision,
    StreamState,
)
from eventfold.stores.sql import SQLAlchemyEventStore

__all__ = [
    "EventStore",
    "StreamState",
    "ExpectedRevision",
    "AppendResult",
    "CaughtUp",
    "InMemoryEventStore",
    "SQLAlchemyEventStore",
]
