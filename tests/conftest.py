"""
Shared pytest fixtures for the eventfold library tests.

This module provides:
- Event store fixtures (in_memory_store, sql_store)
- Relational sink fixtures (sink: SQLite file engine with the eventfold
  schema and the cart read model)
- Cart domain fixtures (cart_aggregator, cart_handler)
- Tracing fixtures (mock_tracer)
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from eventfold.aggregates import CommandHandler, StreamAggregator
from eventfold.observability import MockTracer
from eventfold.repositories import SQLAlchemyCheckpointStore
from eventfold.schema import create_schema
from eventfold.stores import InMemoryEventStore, SQLAlchemyEventStore
from tests.fixtures import CART_EVENTS, Cart, create_read_model, evolve

# ============================================================================
# Tracing
# ============================================================================


@pytest.fixture
def mock_tracer() -> MockTracer:
    """Tracer recording span names and attributes."""
    return MockTracer()


# ============================================================================
# Event stores
# ============================================================================


@pytest.fixture
def in_memory_store() -> InMemoryEventStore:
    """Fresh in-memory event store with tracing disabled."""
    return InMemoryEventStore(enable_tracing=False)


@pytest_asyncio.fixture
async def sink(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """
    SQLite (aiosqlite) engine on a temporary file.

    Carries the eventfold schema (events, subscription_checkpoints) and the
    cart read model, so it serves as both event database and sink.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'eventfold.db'}")
    await create_schema(engine)
    await create_read_model(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def sql_store(sink: AsyncEngine) -> SQLAlchemyEventStore:
    """SQL event store on the sink database with small pages and fast polling."""
    return SQLAlchemyEventStore(sink, batch_size=2, poll_interval=0.01, enable_tracing=False)


@pytest.fixture
def checkpoint_store(sink: AsyncEngine) -> SQLAlchemyCheckpointStore:
    return SQLAlchemyCheckpointStore(sink, enable_tracing=False)


# ============================================================================
# Cart domain
# ============================================================================


@pytest.fixture
def cart_aggregator() -> StreamAggregator[Cart]:
    return StreamAggregator(evolve, CART_EVENTS, name="cart")


@pytest.fixture
def cart_handler(
    in_memory_store: InMemoryEventStore,
    cart_aggregator: StreamAggregator[Cart],
) -> CommandHandler[Cart]:
    """Command handler over the in-memory store."""
    return CommandHandler(in_memory_store, cart_aggregator, enable_tracing=False)
