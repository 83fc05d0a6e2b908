"""
Shared fixtures for PostgreSQL-backed integration tests.

Requires PostgreSQL to be running (via docker-compose). Tests using the
pool are skipped when the database cannot be reached.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.postgres import PostgresStore, run_migrations
from src.config.settings import get_settings

TABLES = ("relations", "personal_ban_date", "confirmation_tokens", "members")


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for integration tests."""
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=True)
    try:
        pool.wait(timeout=5.0)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def pg_store(pool: ConnectionPool) -> PostgresStore:
    return PostgresStore(pool)


@pytest.fixture
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty every table before the test, children first."""
    with pool.connection() as conn:
        for table in TABLES:
            conn.execute(f"DELETE FROM {table}")
    yield
