"""
Adversarial tests for race condition attack prevention.

Verifies that concurrent operations on the same record are handled
atomically, so an attacker cannot:
- Register the same email twice
- Confirm one token more than once
- Create duplicate follow edges
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresStore
from src.domain.ban_dates import BanDateService
from src.domain.exceptions import AlreadyConfirmedError, DuplicateEmailError, DuplicateRelationError
from src.domain.ports import DateStatus
from src.domain.registration import AccountRegistry
from src.domain.relations import RelationGraph

# Apply adversarial marker to all tests in this module
pytestmark = pytest.mark.adversarial


def run_concurrently(action, attackers: int) -> list[object]:
    """Run action from several threads released at the same moment."""
    barrier = threading.Barrier(attackers)

    def attempt() -> object:
        barrier.wait()
        try:
            return action()
        except (DuplicateEmailError, AlreadyConfirmedError, DuplicateRelationError) as e:
            return e

    with ThreadPoolExecutor(max_workers=attackers) as executor:
        futures = [executor.submit(attempt) for _ in range(attackers)]
        return [f.result() for f in futures]


def successes(results: list[object]) -> list[object]:
    return [r for r in results if not isinstance(r, Exception)]


class TestRegistrationRace:
    """Concurrent registrations of one email."""

    @pytest.mark.parametrize("attackers", [5, 10])
    def test_exactly_one_registration_succeeds(
        self, registry: AccountRegistry, pool: ConnectionPool, attackers: int
    ) -> None:
        results = run_concurrently(
            lambda: registry.register("Attacker", "attack@example.com", "password123", ""), attackers
        )

        assert len(successes(results)) == 1
        assert all(isinstance(r, DuplicateEmailError) for r in results if isinstance(r, Exception))

        with pool.connection() as conn:
            members = conn.execute("SELECT COUNT(*) FROM members WHERE email = %s", ("attack@example.com",))
            assert members.fetchone()[0] == 1
            assert conn.execute("SELECT COUNT(*) FROM confirmation_tokens").fetchone()[0] == 1

    def test_notification_sent_once(self, registry: AccountRegistry) -> None:
        run_concurrently(lambda: registry.register("Attacker", "attack@example.com", "password123", ""), 5)

        assert registry.notifier.send.call_count == 1


class TestConfirmationRace:
    """Concurrent confirmations of one token."""

    def test_exactly_one_confirmation_succeeds(self, registry: AccountRegistry, pool: ConnectionPool) -> None:
        token = registry.register("Alice", "alice@example.com", "password123", "")

        results = run_concurrently(lambda: registry.confirm(token), 10)

        assert len(successes(results)) == 1
        assert sum(isinstance(r, AlreadyConfirmedError) for r in results) == 9

        with pool.connection() as conn:
            row = conn.execute(
                "SELECT m.status, t.confirmed_at FROM members m JOIN confirmation_tokens t ON t.member_id = m.id"
            ).fetchone()
        assert row[0] == "ACTIVE"
        assert row[1] is not None


class TestFollowRace:
    """Concurrent identical follow requests."""

    def test_exactly_one_edge_created(self, registry: AccountRegistry, graph: RelationGraph, pool: ConnectionPool) -> None:
        for email in ("a@example.com", "b@example.com"):
            registry.confirm(registry.register("Member", email, "password123", ""))

        results = run_concurrently(lambda: graph.follow("a@example.com", "b@example.com"), 5)

        assert len(successes(results)) == 1
        assert sum(isinstance(r, DuplicateRelationError) for r in results) == 4
        with pool.connection() as conn:
            assert conn.execute("SELECT COUNT(*) FROM relations").fetchone()[0] == 1


class TestBanDateEditRace:
    """Concurrent status edits on one date exception."""

    def test_last_writer_wins_with_a_valid_status(self, registry: AccountRegistry, pg_store: PostgresStore) -> None:
        registry.confirm(registry.register("Alice", "alice@example.com", "password123", ""))
        service = BanDateService(store=pg_store)
        created = service.create("alice@example.com", date(2024, 12, 25))
        statuses = iter([DateStatus.POSSIBLE, DateStatus.UNCERTAIN] * 3)
        lock = threading.Lock()

        def edit() -> object:
            with lock:
                status = next(statuses)
            return service.edit_status(created.id, status, "alice@example.com")

        results = run_concurrently(edit, 6)

        assert len(successes(results)) == 6
        final = service.list_for("alice@example.com")[0]
        assert final.status in (DateStatus.POSSIBLE, DateStatus.UNCERTAIN)
