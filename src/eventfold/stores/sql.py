"""
SQL event store implementation.

Event store on top of SQLAlchemy asyncio, tested against SQLite (aiosqlite)
and PostgreSQL (asyncpg). Events live in the `events` table defined in
eventfold.schema; the global position of an event is its row id minus one.

Subscriptions poll the events table for rows past the last delivered
position.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, insert, select, text
from sqlalchemy.engine import Row
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from eventfold.events.base import NewEvent, RecordedEvent
from eventfold.exceptions import ConcurrencyConflictError
from eventfold.observability import (
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_EVENT_COUNT,
    ATTR_EXPECTED_REVISION,
    ATTR_FROM_POSITION,
    ATTR_FROM_REVISION,
    ATTR_STREAM_ID,
    Tracer,
    create_tracer,
)
from eventfold.repositories._connection import translate_db_errors
from eventfold.schema import events_table
from eventfold.serialization import json_dumps, json_loads
from eventfold.stores.interface import (
    AppendResult,
    CaughtUp,
    EventStore,
    ExpectedRevision,
    StreamState,
    check_expected_revision,
    describe_expected_revision,
)

logger = logging.getLogger(__name__)

# Serialises appends on PostgreSQL so row ids become visible in commit order
_APPEND_LOCK_ID = 0x6576656E74666F6C

# Expected revisions that a lost revision race cannot invalidate
_REVISION_AGNOSTIC = (StreamState.ANY, StreamState.STREAM_EXISTS)

_COLUMNS = (
    events_table.c.id,
    events_table.c.event_id,
    events_table.c.stream_id,
    events_table.c.revision,
    events_table.c.event_type,
    events_table.c.data,
    events_table.c["metadata"],
    events_table.c.recorded_at,
)


class SQLAlchemyEventStore(EventStore):
    """
    SQLAlchemy asyncio implementation of the event store.

    Optimistic concurrency is checked inside the append transaction and
    backed by the (stream_id, revision) unique constraint: a concurrent
    writer that slips past the check fails on insert, and the IntegrityError
    is reported as ConcurrencyConflictError. Appends with StreamState.ANY or
    STREAM_EXISTS re-run instead, since losing the race does not break their
    precondition. Re-appending an already stored event_id is not a conflict;
    its IntegrityError propagates unchanged.

    Example:
        >>> engine = create_async_engine("sqlite+aiosqlite:///events.db")
        >>> await create_schema(engine)
        >>> store = SQLAlchemyEventStore(engine)
        >>> async for event in store.read_stream("cart-1"):
        ...     print(event)
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        batch_size: int = 500,
        poll_interval: float = 0.5,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the SQL event store.

        Args:
            engine: Async engine of the event database
            batch_size: Rows fetched per query when reading streams or the log
            poll_interval: Seconds between polls of a live subscription
            tracer: Optional custom Tracer instance
            enable_tracing: Emit OpenTelemetry spans (default: True).
                          Ignored if tracer is explicitly provided.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {poll_interval}")

        self._engine = engine
        self._batch_size = batch_size
        self._poll_interval = poll_interval
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def _db_system(self) -> str:
        return self._engine.dialect.name

    async def append_to_stream(
        self,
        stream_id: str,
        expected_revision: ExpectedRevision,
        events: Sequence[NewEvent],
    ) -> AppendResult:
        if not events:
            raise ValueError("append_to_stream requires at least one event")

        with self._tracer.span(
            "eventfold.sql_event_store.append",
            {
                ATTR_STREAM_ID: stream_id,
                ATTR_EVENT_COUNT: len(events),
                ATTR_EXPECTED_REVISION: describe_expected_revision(expected_revision),
                ATTR_DB_SYSTEM: self._db_system,
                ATTR_DB_OPERATION: "INSERT",
            },
        ):
            while True:
                try:
                    with translate_db_errors(f"append to stream {stream_id}"):
                        async with self._engine.begin() as conn:
                            result = await self._do_append(
                                conn, stream_id, expected_revision, events
                            )
                    break
                except IntegrityError as e:
                    if not _is_revision_conflict(e):
                        raise
                    if expected_revision in _REVISION_AGNOSTIC:
                        # The precondition still holds; take the next free revision
                        logger.debug(
                            "Revision race appending to %s, retrying",
                            stream_id,
                            extra={"stream_id": stream_id},
                        )
                        continue
                    # Another writer took one of our revisions; report what it left behind
                    actual = await self.get_stream_revision(stream_id)
                    logger.debug(
                        "Unique constraint violation appending to %s, actual revision %s",
                        stream_id,
                        actual,
                        extra={"stream_id": stream_id, "actual_revision": actual},
                    )
                    raise ConcurrencyConflictError(stream_id, expected_revision, actual) from e

        logger.debug(
            "Appended %d event(s) to stream %s",
            len(events),
            stream_id,
            extra={
                "stream_id": stream_id,
                "revision": result.next_expected_revision,
                "global_position": result.global_position,
            },
        )
        return result

    async def _do_append(
        self,
        conn: AsyncConnection,
        stream_id: str,
        expected_revision: ExpectedRevision,
        events: Sequence[NewEvent],
    ) -> AppendResult:
        if conn.dialect.name == "postgresql":
            await conn.execute(
                text("SELECT pg_advisory_xact_lock(:lock_id)"),
                {"lock_id": _APPEND_LOCK_ID},
            )

        actual = await self._current_revision(conn, stream_id)
        check_expected_revision(stream_id, expected_revision, actual)

        revision = -1 if actual is None else actual
        last_id = 0
        recorded_at = datetime.now(UTC)
        for event in events:
            revision += 1
            result = await conn.execute(
                insert(events_table).values(
                    {
                        "event_id": str(event.event_id),
                        "stream_id": stream_id,
                        "revision": revision,
                        "event_type": event.type,
                        "data": json_dumps(event.data),
                        "metadata": json_dumps(event.metadata),
                        "recorded_at": recorded_at,
                    }
                )
            )
            last_id = result.inserted_primary_key[0]

        return AppendResult(next_expected_revision=revision, global_position=last_id - 1)

    async def _current_revision(self, conn: AsyncConnection, stream_id: str) -> int | None:
        result = await conn.execute(
            select(func.max(events_table.c.revision)).where(
                events_table.c.stream_id == stream_id
            )
        )
        return result.scalar()

    async def read_stream(
        self,
        stream_id: str,
        from_revision: int = 0,
    ) -> AsyncIterator[RecordedEvent]:
        next_revision = from_revision
        while True:
            with self._tracer.span(
                "eventfold.sql_event_store.read_stream",
                {
                    ATTR_STREAM_ID: stream_id,
                    ATTR_FROM_REVISION: next_revision,
                    ATTR_DB_SYSTEM: self._db_system,
                    ATTR_DB_OPERATION: "SELECT",
                },
            ):
                query = (
                    select(*_COLUMNS)
                    .where(events_table.c.stream_id == stream_id)
                    .where(events_table.c.revision >= next_revision)
                    .order_by(events_table.c.revision)
                    .limit(self._batch_size)
                )
                rows = await self._fetch(query, f"read stream {stream_id}")

            for row in rows:
                event = self._row_to_event(row)
                next_revision = event.revision + 1
                yield event

            if len(rows) < self._batch_size:
                return

    async def read_all(
        self,
        after_position: int | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[RecordedEvent]:
        last_position = -1 if after_position is None else after_position
        remaining = limit
        while remaining is None or remaining > 0:
            page_size = self._batch_size if remaining is None else min(remaining, self._batch_size)
            rows = await self._read_page(last_position, page_size)
            for row in rows:
                event = self._row_to_event(row)
                last_position = event.global_position
                yield event

            if remaining is not None:
                remaining -= len(rows)
            if len(rows) < page_size:
                return

    async def subscribe_to_all(
        self,
        after_position: int | None = None,
    ) -> AsyncIterator[RecordedEvent | CaughtUp]:
        last_position = -1 if after_position is None else after_position
        caught_up = False

        while True:
            rows = await self._read_page(last_position, self._batch_size)
            for row in rows:
                event = self._row_to_event(row)
                last_position = event.global_position
                yield event

            if len(rows) == self._batch_size:
                continue
            if not caught_up:
                caught_up = True
                yield CaughtUp(position=last_position if last_position >= 0 else None)
            await asyncio.sleep(self._poll_interval)

    async def _read_page(self, after_position: int, page_size: int) -> list[Row[Any]]:
        with self._tracer.span(
            "eventfold.sql_event_store.read_all",
            {
                ATTR_FROM_POSITION: after_position,
                ATTR_DB_SYSTEM: self._db_system,
                ATTR_DB_OPERATION: "SELECT",
            },
        ):
            query = (
                select(*_COLUMNS)
                .where(events_table.c.id > after_position + 1)
                .order_by(events_table.c.id)
                .limit(page_size)
            )
            return await self._fetch(query, "read global log")

    async def _fetch(self, query: Any, operation: str) -> list[Row[Any]]:
        with translate_db_errors(operation):
            async with self._engine.connect() as conn:
                result = await conn.execute(query)
                return list(result.fetchall())

    async def get_stream_revision(self, stream_id: str) -> int | None:
        with translate_db_errors(f"read revision of {stream_id}"):
            async with self._engine.connect() as conn:
                return await self._current_revision(conn, stream_id)

    async def get_global_position(self) -> int | None:
        with translate_db_errors("read global position"):
            async with self._engine.connect() as conn:
                result = await conn.execute(select(func.max(events_table.c.id)))
                last_id = result.scalar()
        return None if last_id is None else last_id - 1

    def _row_to_event(self, row: Row[Any]) -> RecordedEvent:
        recorded_at = row.recorded_at
        if recorded_at.tzinfo is None:
            # SQLite drops the offset; values are always written in UTC
            recorded_at = recorded_at.replace(tzinfo=UTC)
        return RecordedEvent(
            event_id=UUID(row.event_id),
            type=row.event_type,
            data=json_loads(row.data),
            stream_id=row.stream_id,
            revision=row.revision,
            global_position=row.id - 1,
            recorded_at=recorded_at,
            metadata=json_loads(row._mapping["metadata"]),
        )


def _is_revision_conflict(error: IntegrityError) -> bool:
    # PostgreSQL names the constraint, SQLite names its columns
    message = str(error.orig).lower()
    return "uq_events_stream_revision" in message or (
        "unique" in message and "events.stream_id, events.revision" in message
    )


__all__ = ["SQLAlchemyEventStore"]
