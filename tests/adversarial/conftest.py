"""
Shared fixtures for adversarial tests.

Provides domain services on a real PostgreSQL store for race condition tests.
"""

from collections.abc import Generator
from unittest.mock import Mock

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.postgres import PostgresStore, run_migrations
from src.adapters.security.bcrypt_store import BcryptCredentialStore
from src.adapters.validation.email import EmailAddressValidator
from src.config.settings import get_settings
from src.domain.registration import AccountRegistry
from src.domain.relations import RelationGraph
from src.domain.tokens import ConfirmationTokenService

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for adversarial tests."""
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=20, open=True)
    try:
        pool.wait(timeout=5.0)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Empty every table before each test."""
    with pool.connection() as conn:
        for table in ("relations", "personal_ban_date", "confirmation_tokens", "members"):
            conn.execute(f"DELETE FROM {table}")
    yield


@pytest.fixture
def pg_store(pool: ConnectionPool) -> PostgresStore:
    return PostgresStore(pool)


@pytest.fixture
def registry(pg_store: PostgresStore) -> AccountRegistry:
    return AccountRegistry(
        store=pg_store,
        tokens=ConfirmationTokenService(store=pg_store),
        credentials=BcryptCredentialStore(10),
        email_validator=EmailAddressValidator(),
        notifier=Mock(),
    )


@pytest.fixture
def graph(pg_store: PostgresStore) -> RelationGraph:
    return RelationGraph(store=pg_store)
