"""
Shared pytest fixtures for integration tests.

SQLite-backed tests use the `sink` fixture from the root conftest and need
nothing beyond aiosqlite. PostgreSQL tests run against a container managed
by testcontainers; if testcontainers or Docker is not available, they are
skipped.
"""

from __future__ import annotations

import subprocess
from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from eventfold.schema import create_schema, metadata
from tests.fixtures import create_read_model
from tests.fixtures.projections import read_model

# ============================================================================
# Testcontainers Detection
# ============================================================================

TESTCONTAINERS_AVAILABLE = False

try:
    from testcontainers.postgres import PostgresContainer

    TESTCONTAINERS_AVAILABLE = True
except ImportError:
    PostgresContainer = None  # type: ignore[assignment, misc]


def is_docker_available() -> bool:
    """Check if Docker is available for running containers."""
    try:
        result = subprocess.run(
            ["docker", "info"],
            capture_output=True,
            timeout=5,
        )
        return result.returncode == 0
    except (subprocess.TimeoutExpired, OSError):
        return False


DOCKER_AVAILABLE = is_docker_available()

skip_if_no_postgres_infra = pytest.mark.skipif(
    not (TESTCONTAINERS_AVAILABLE and DOCKER_AVAILABLE),
    reason="PostgreSQL test infrastructure not available",
)


# ============================================================================
# PostgreSQL
# ============================================================================


@pytest.fixture(scope="session")
def postgres_container() -> Generator[Any, None, None]:
    """
    Provide a PostgreSQL container for integration tests.

    The container is shared across all tests in the session.
    """
    if not TESTCONTAINERS_AVAILABLE or not DOCKER_AVAILABLE:
        pytest.skip("PostgreSQL testcontainer not available")

    container = PostgresContainer("postgres:16")
    container.start()
    yield container
    container.stop()


@pytest.fixture(scope="session")
def postgres_connection_url(postgres_container: Any) -> str:
    """Get the asyncpg connection URL of the container."""
    url = postgres_container.get_connection_url()
    return url.replace("postgresql://", "postgresql+asyncpg://").replace("psycopg2", "asyncpg")


@pytest_asyncio.fixture
async def pg_sink(postgres_connection_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """
    PostgreSQL engine with a fresh eventfold schema and cart read model.

    Tables are dropped and recreated for every test.
    """
    engine = create_async_engine(postgres_connection_url, pool_size=10, max_overflow=10)
    async with engine.begin() as conn:
        await conn.run_sync(read_model.drop_all)
        await conn.run_sync(metadata.drop_all)
    await create_schema(engine)
    await create_read_model(engine)
    yield engine
    await engine.dispose()
