"""
Connection handling helpers for database operations.

- `execute_with_connection`: accept an AsyncEngine or an AsyncConnection
- `translate_db_errors`: turn driver connectivity failures into TransportError
- `dialect_insert`: dialect-specific INSERT supporting ON CONFLICT clauses
"""

from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from typing import Any

from sqlalchemy import Table
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from eventfold.exceptions import TransportError


@asynccontextmanager
async def execute_with_connection(
    conn: AsyncConnection | AsyncEngine,
    transactional: bool = True,
) -> AsyncIterator[AsyncConnection]:
    """
    Context manager for executing database operations.

    When an AsyncEngine is provided, it opens a transaction (begin) or a
    bare connection (connect). When an AsyncConnection is provided, it is
    yielded directly and the caller owns the transaction.

    Args:
        conn: Database connection or engine
        transactional: If True, wrap in transaction (begin).
                       If False, use bare connection (connect).
                       Only applies when conn is an AsyncEngine.

    Example:
        >>> async with execute_with_connection(self._engine, transactional=False) as conn:
        ...     result = await conn.execute(select_query)
    """
    if isinstance(conn, AsyncEngine):
        if transactional:
            async with conn.begin() as connection:
                yield connection
        else:
            async with conn.connect() as connection:
                yield connection
    else:
        yield conn


@contextmanager
def translate_db_errors(operation: str) -> Iterator[None]:
    """
    Re-raise connectivity failures as TransportError.

    IntegrityError and other statement errors pass through unchanged.

    Args:
        operation: Short description used in the error message
    """
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        raise TransportError(f"{operation} failed: {e}") from e


def dialect_insert(conn: AsyncConnection, table: Table) -> Any:
    """
    Build an INSERT for the connection's dialect.

    Returns the PostgreSQL or SQLite insert construct, both of which offer
    on_conflict_do_update() and on_conflict_do_nothing().

    Raises:
        NotImplementedError: For dialects other than PostgreSQL and SQLite
    """
    name = conn.dialect.name
    if name == "postgresql":
        return postgresql.insert(table)
    if name == "sqlite":
        return sqlite.insert(table)
    raise NotImplementedError(f"Unsupported dialect for upserts: {name}")


__all__ = [
    "execute_with_connection",
    "translate_db_errors",
    "dialect_insert",
]
