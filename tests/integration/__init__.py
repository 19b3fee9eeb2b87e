"""
Integration tests for the eventfold library.

Most tests run against a temporary SQLite database through aiosqlite.
PostgreSQL tests need Docker and testcontainers and are skipped otherwise.

Run integration tests:
    pytest tests/integration/ -v

Run only PostgreSQL tests:
    pytest tests/integration/ -v -m postgres

Skip integration tests:
    pytest tests/ -v -m "not integration"
"""
