"""
Revision fence helpers for idempotent projection handlers.

The subscription runner delivers events at least once: an event whose
transaction committed but whose delivery is repeated (gateway redelivery,
a restart racing a commit) reaches the handlers again. Projection rows that
carry the source stream's revision can detect that.

- advance_revision(): move a row from revision n-1 to n, together with the
  row's other changes. A False result means the event was already applied
  (or an earlier one is missing) and the handler must not touch anything
  else.
- insert_if_absent(): create the row for the first event of a stream
  (revision 0); a redelivered creation inserts nothing.

Example:
    >>> async def project_item_added(scope, recorded, event):
    ...     applied = await advance_revision(
    ...         scope,
    ...         carts,
    ...         {"cart_id": event.cart_id},
    ...         recorded.revision,
    ...         {"updated_at": event.added_at},
    ...     )
    ...     if not applied:
    ...         return
    ...     await scope.execute(...)  # item rows
"""

from collections.abc import Mapping
from typing import Any

from sqlalchemy import Table, update
from sqlalchemy.ext.asyncio import AsyncConnection

from eventfold.repositories._connection import dialect_insert


async def advance_revision(
    scope: AsyncConnection,
    table: Table,
    key: Mapping[str, Any],
    revision: int,
    values: Mapping[str, Any] | None = None,
    revision_column: str = "revision",
) -> bool:
    """
    Conditionally advance a projection row to `revision`.

    Runs `UPDATE table SET revision = :revision, ... WHERE key AND
    revision = :revision - 1` in the caller's transaction.

    Args:
        scope: Transactional connection supplied by the subscription runner
        table: Projection table carrying the revision column
        key: Column values identifying the row
        revision: Stream revision of the event being applied
        values: Other columns to set in the same statement
        revision_column: Name of the revision column

    Returns:
        True if the row moved to `revision`, False if nothing was updated
    """
    if not key:
        raise ValueError("advance_revision requires at least one key column")

    stmt = update(table).where(table.c[revision_column] == revision - 1)
    for column, value in key.items():
        stmt = stmt.where(table.c[column] == value)
    stmt = stmt.values({**(values or {}), revision_column: revision})

    result = await scope.execute(stmt)
    return result.rowcount == 1


async def insert_if_absent(
    scope: AsyncConnection,
    table: Table,
    values: Mapping[str, Any],
) -> bool:
    """
    Insert a row unless one with the same unique key already exists.

    Runs `INSERT ... ON CONFLICT DO NOTHING` in the caller's transaction.

    Args:
        scope: Transactional connection supplied by the subscription runner
        table: Projection table
        values: Column values of the new row

    Returns:
        True if the row was inserted, False if it already existed
    """
    stmt = dialect_insert(scope, table).values(dict(values)).on_conflict_do_nothing()
    result = await scope.execute(stmt)
    return result.rowcount == 1


__all__ = [
    "advance_revision",
    "insert_if_absent",
]
