"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- An in-memory MembershipStore with transactional rollback
- A frozen, manually advanced clock
- Domain services wired to the fakes
"""

import copy
import itertools
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from src.adapters.validation.email import EmailAddressValidator
from src.domain.ban_dates import BanDateService
from src.domain.exceptions import DuplicateEmailError, DuplicateRelationError
from src.domain.models import ConfirmationToken, Member, PersonalBanDate, Relation
from src.domain.ports import DateStatus, MemberStatus
from src.domain.registration import AccountRegistry
from src.domain.relations import RelationGraph
from src.domain.tokens import ConfirmationTokenService

T0 = datetime(2024, 1, 1, 9, 0, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def set(self, seconds: float) -> datetime:
        """Move to T0 + seconds."""
        self.now = T0 + timedelta(seconds=seconds)
        return self.now


class FakeCredentialStore:
    """Reversible-looking but non-plaintext encoding, fast for unit tests."""

    def encode(self, raw: str) -> str:
        return "enc$" + raw[::-1]

    def matches(self, raw: str, encoded: str) -> bool:
        return encoded == self.encode(raw)


class _Members:
    def __init__(self, data: "InMemoryStore") -> None:
        self._data = data

    def find_by_email(self, email: str) -> Member | None:
        return next((m for m in self._data.members.values() if m.email == email), None)

    def find_by_id(self, member_id: int) -> Member | None:
        return self._data.members.get(member_id)

    def add(self, member: Member) -> Member:
        if self.find_by_email(member.email) is not None:
            raise DuplicateEmailError(member.email)
        stored = replace(member, id=self._data.next_id())
        self._data.members[stored.id] = stored
        return stored

    def set_status(self, member_id: int, status: MemberStatus, expected: MemberStatus, updated_at: datetime) -> bool:
        member = self._data.members.get(member_id)
        if member is None or member.status is not expected:
            return False
        self._data.members[member_id] = replace(member, status=status, audit=member.audit.touched(updated_at))
        return True


class _Tokens:
    def __init__(self, data: "InMemoryStore") -> None:
        self._data = data

    def add(self, token: ConfirmationToken) -> ConfirmationToken:
        stored = replace(token, id=self._data.next_id())
        self._data.tokens[stored.token] = stored
        return stored

    def find(self, token: str, for_update: bool = False) -> ConfirmationToken | None:
        return self._data.tokens.get(token)

    def mark_confirmed(self, token: str, confirmed_at: datetime) -> bool:
        found = self._data.tokens.get(token)
        if found is None or found.confirmed_at is not None:
            return False
        self._data.tokens[token] = replace(found, confirmed_at=confirmed_at)
        return True


class _Relations:
    def __init__(self, data: "InMemoryStore") -> None:
        self._data = data

    def exists(self, owner_id: int, friend_id: int) -> bool:
        return any(
            r.owner_id == owner_id and r.friend_id == friend_id for r in self._data.relations.values()
        )

    def add(self, relation: Relation) -> Relation:
        if self.exists(relation.owner_id, relation.friend_id):
            raise DuplicateRelationError(str(relation.owner_id), str(relation.friend_id))
        stored = replace(relation, id=self._data.next_id())
        self._data.relations[stored.id] = stored
        return stored

    def friends_of(self, owner_id: int) -> list[Member]:
        return [
            self._data.members[r.friend_id]
            for r in self._data.relations.values()
            if r.owner_id == owner_id
        ]


class _BanDates:
    def __init__(self, data: "InMemoryStore") -> None:
        self._data = data

    def add(self, ban_date: PersonalBanDate) -> PersonalBanDate:
        stored = copy.deepcopy(ban_date)
        stored.id = self._data.next_id()
        self._data.ban_dates[stored.id] = stored
        return copy.deepcopy(stored)

    def find(self, ban_date_id: int) -> PersonalBanDate | None:
        found = self._data.ban_dates.get(ban_date_id)
        return copy.deepcopy(found) if found is not None else None

    def list_for_member(self, member_id: int) -> list[PersonalBanDate]:
        rows = [b for b in self._data.ban_dates.values() if b.member_id == member_id]
        return [copy.deepcopy(b) for b in sorted(rows, key=lambda b: (b.date, b.id))]

    def update_status(self, ban_date_id: int, status: DateStatus, updated_at: datetime) -> None:
        stored = self._data.ban_dates[ban_date_id]
        stored.status = status
        stored.audit = stored.audit.touched(updated_at)


class _Session:
    def __init__(self, data: "InMemoryStore") -> None:
        self.members = _Members(data)
        self.tokens = _Tokens(data)
        self.relations = _Relations(data)
        self.ban_dates = _BanDates(data)


class InMemoryStore:
    """
    MembershipStore fake.

    Transactions are serialized by a lock and restore a snapshot of every
    table when the block raises, like a database rollback.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self.members: dict[int, Member] = {}
        self.tokens: dict[str, ConfirmationToken] = {}
        self.relations: dict[int, Relation] = {}
        self.ban_dates: dict[int, PersonalBanDate] = {}
        self.commits = 0
        self.rollbacks = 0

    def next_id(self) -> int:
        return next(self._ids)

    @contextmanager
    def transaction(self) -> Iterator[_Session]:
        with self._lock:
            snapshot = copy.deepcopy((self.members, self.tokens, self.relations, self.ban_dates))
            try:
                yield _Session(self)
            except BaseException:
                self.members, self.tokens, self.relations, self.ban_dates = snapshot
                self.rollbacks += 1
                raise
            self.commits += 1

    def member(self, email: str) -> Member | None:
        return next((m for m in self.members.values() if m.email == email), None)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def notifier() -> Mock:
    return Mock()


@pytest.fixture
def credentials() -> FakeCredentialStore:
    return FakeCredentialStore()


@pytest.fixture
def tokens(store: InMemoryStore, clock: FrozenClock) -> ConfirmationTokenService:
    return ConfirmationTokenService(store=store, clock=clock)


@pytest.fixture
def registry(
    store: InMemoryStore,
    tokens: ConfirmationTokenService,
    credentials: FakeCredentialStore,
    notifier: Mock,
) -> AccountRegistry:
    return AccountRegistry(
        store=store,
        tokens=tokens,
        credentials=credentials,
        email_validator=EmailAddressValidator(),
        notifier=notifier,
        base_url="http://localhost:8080",
    )


@pytest.fixture
def graph(store: InMemoryStore) -> RelationGraph:
    return RelationGraph(store=store)


@pytest.fixture
def ban_dates(store: InMemoryStore, clock: FrozenClock) -> BanDateService:
    return BanDateService(store=store, clock=clock)


@pytest.fixture
def make_member(registry: AccountRegistry):
    """Register (and by default confirm) a member, returning its token."""

    def _make(email: str, name: str = "Member", confirm: bool = True) -> str:
        token = registry.register(name, email, "password123", "010-0000-0000")
        if confirm:
            registry.confirm(token)
        return token

    return _make
