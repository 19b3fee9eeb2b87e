"""
Checkpoint store for tracking subscription positions.

Subscriptions use checkpoints to record the global position of the last
event whose projection changes were committed, enabling:
- Resumable processing after restarts
- Exactly-once application together with the projection writes
- Rebuilds from the beginning of the log (reset)

save() runs in the caller's transaction. The subscription runner passes the
same AsyncConnection its handlers write through, so the projection changes
and the checkpoint commit or roll back together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from eventfold.observability import (
    ATTR_DB_OPERATION,
    ATTR_POSITION,
    ATTR_SUBSCRIPTION_NAME,
    Tracer,
    create_tracer,
)
from eventfold.repositories._connection import (
    dialect_insert,
    execute_with_connection,
    translate_db_errors,
)
from eventfold.schema import checkpoints_table

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Checkpoint:
    """
    Stored checkpoint of one subscription.

    Attributes:
        subscription_name: Name of the subscription
        position: Global position of the last applied event
        updated_at: When the checkpoint last moved
    """

    subscription_name: str
    position: int
    updated_at: datetime


@runtime_checkable
class CheckpointStore(Protocol):
    """
    Protocol for checkpoint stores.

    One checkpoint per subscription name; positions only move forward.
    """

    async def load(self, subscription_name: str) -> int | None:
        """
        Get the last applied global position.

        Returns:
            Position of the last applied event, or None to start from the
            beginning of the log
        """
        ...

    async def save(
        self,
        scope: AsyncConnection,
        subscription_name: str,
        position: int,
    ) -> None:
        """
        Record a position inside the caller's transaction.

        Saving a position lower than or equal to the stored one is a no-op.
        """
        ...


class SQLAlchemyCheckpointStore:
    """
    SQLAlchemy implementation of the checkpoint store.

    Stores checkpoints in the `subscription_checkpoints` table of the
    relational sink (see eventfold.schema).

    Example:
        >>> checkpoints = SQLAlchemyCheckpointStore(sink)
        >>> async with sink.begin() as scope:
        ...     await project(scope, event)
        ...     await checkpoints.save(scope, "cart-details", event.global_position)
        >>> await checkpoints.load("cart-details")
        4
    """

    def __init__(
        self,
        conn: AsyncEngine | AsyncConnection,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the checkpoint store.

        Args:
            conn: Engine (or connection) of the relational sink used by load,
                  get, list_checkpoints and reset
            tracer: Optional tracer (if not provided, one will be created)
            enable_tracing: Whether to enable OpenTelemetry tracing (default True)
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self.conn = conn

    async def load(self, subscription_name: str) -> int | None:
        checkpoint = await self.get(subscription_name)
        return checkpoint.position if checkpoint else None

    async def get(self, subscription_name: str) -> Checkpoint | None:
        """
        Get the full checkpoint record of a subscription.

        Returns:
            Checkpoint, or None if the subscription never committed an event
        """
        with self._tracer.span(
            "eventfold.checkpoint.get",
            {ATTR_SUBSCRIPTION_NAME: subscription_name, ATTR_DB_OPERATION: "SELECT"},
        ):
            query = select(checkpoints_table).where(
                checkpoints_table.c.subscription_name == subscription_name
            )
            with translate_db_errors(f"load checkpoint {subscription_name}"):
                async with execute_with_connection(self.conn, transactional=False) as conn:
                    result = await conn.execute(query)
                    row = result.fetchone()

            return _row_to_checkpoint(row) if row else None

    async def save(
        self,
        scope: AsyncConnection,
        subscription_name: str,
        position: int,
    ) -> None:
        """
        Upsert the checkpoint inside the caller's transaction.

        The update only applies when `position` is greater than the stored
        value, so a retried save is a no-op and a checkpoint never moves
        backwards.

        Args:
            scope: Open transactional connection shared with the handlers
            subscription_name: Name of the subscription
            position: Global position of the event just applied
        """
        with self._tracer.span(
            "eventfold.checkpoint.save",
            {
                ATTR_SUBSCRIPTION_NAME: subscription_name,
                ATTR_POSITION: position,
                ATTR_DB_OPERATION: "UPSERT",
            },
        ):
            stmt = dialect_insert(scope, checkpoints_table).values(
                subscription_name=subscription_name,
                position=position,
                updated_at=datetime.now(UTC),
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[checkpoints_table.c.subscription_name],
                set_={
                    "position": stmt.excluded.position,
                    "updated_at": stmt.excluded.updated_at,
                },
                where=checkpoints_table.c.position < stmt.excluded.position,
            )
            await scope.execute(stmt)

        logger.debug(
            "Checkpoint %s saved at position %d",
            subscription_name,
            position,
            extra={"subscription_name": subscription_name, "position": position},
        )

    async def list_checkpoints(self) -> list[Checkpoint]:
        """All stored checkpoints, ordered by subscription name."""
        with self._tracer.span(
            "eventfold.checkpoint.list",
            {ATTR_DB_OPERATION: "SELECT"},
        ):
            query = select(checkpoints_table).order_by(checkpoints_table.c.subscription_name)
            with translate_db_errors("list checkpoints"):
                async with execute_with_connection(self.conn, transactional=False) as conn:
                    result = await conn.execute(query)
                    rows = result.fetchall()

            return [_row_to_checkpoint(row) for row in rows]

    async def reset(self, subscription_name: str) -> None:
        """
        Delete a subscription's checkpoint so it restarts from the beginning.

        Used when rebuilding a projection from scratch; the projection's own
        tables must be cleared by the caller.
        """
        with self._tracer.span(
            "eventfold.checkpoint.reset",
            {ATTR_SUBSCRIPTION_NAME: subscription_name, ATTR_DB_OPERATION: "DELETE"},
        ):
            stmt = delete(checkpoints_table).where(
                checkpoints_table.c.subscription_name == subscription_name
            )
            with translate_db_errors(f"reset checkpoint {subscription_name}"):
                async with execute_with_connection(self.conn, transactional=True) as conn:
                    await conn.execute(stmt)

        logger.info(
            "Checkpoint %s reset",
            subscription_name,
            extra={"subscription_name": subscription_name},
        )


def _row_to_checkpoint(row) -> Checkpoint:
    updated_at = row.updated_at
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=UTC)
    return Checkpoint(
        subscription_name=row.subscription_name,
        position=row.position,
        updated_at=updated_at,
    )


__all__ = [
    "Checkpoint",
    "CheckpointStore",
    "SQLAlchemyCheckpointStore",
]
