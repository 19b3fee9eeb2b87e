"""
Relational schema for the SQL event store and the checkpoint store.

Tables are SQLAlchemy Core definitions so the same schema works on
PostgreSQL (asyncpg) and SQLite (aiosqlite). Applications that manage their
schema with migrations can copy these definitions; tests and small
deployments can call create_schema().

Layout:
    events: one row per event; global_position = id - 1
    subscription_checkpoints: one row per subscription name
"""

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.ext.asyncio import AsyncEngine

metadata = MetaData()

# SQLite only autoincrements INTEGER PRIMARY KEY columns
_BigIntId = BigInteger().with_variant(Integer(), "sqlite")

events_table = Table(
    "events",
    metadata,
    Column("id", _BigIntId, primary_key=True, autoincrement=True),
    Column("event_id", String(36), nullable=False, unique=True),
    Column("stream_id", String(255), nullable=False),
    Column("revision", BigInteger, nullable=False),
    Column("event_type", String(255), nullable=False),
    Column("data", Text, nullable=False),
    Column("metadata", Text, nullable=False),
    Column("recorded_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("stream_id", "revision", name="uq_events_stream_revision"),
    Index("ix_events_event_type", "event_type"),
)

checkpoints_table = Table(
    "subscription_checkpoints",
    metadata,
    Column("subscription_name", String(255), primary_key=True),
    Column("position", BigInteger, nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)


async def create_schema(engine: AsyncEngine) -> None:
    """
    Create the events and checkpoint tables if they do not exist.

    Args:
        engine: Engine of the event store or the relational sink
    """
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)


__all__ = [
    "metadata",
    "events_table",
    "checkpoints_table",
    "create_schema",
]
