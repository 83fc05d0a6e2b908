"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the closed enumerations of the membership domain and
the interfaces (ports) that the domain requires from infrastructure.
Adapters implement these protocols structurally.
"""

from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .models import ConfirmationToken, Member, PersonalBanDate, Relation


class MemberRole(str, Enum):
    """Authorization role of a member."""

    USER = "USER"
    ADMIN = "ADMIN"


class MemberStatus(str, Enum):
    """
    Lifecycle status of a member.

    State Transitions (forward-only):
    - PENDING -> ACTIVE (successful token confirmation)

    Members are never deleted; ACTIVE is terminal.
    """

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"


class DateStatus(str, Enum):
    """
    Availability of a member on a calendar date.

    IMPOSSIBLE is the default for a newly recorded date exception.
    Any value may replace any other (no transition graph).
    """

    IMPOSSIBLE = "IMPOSSIBLE"
    UNCERTAIN = "UNCERTAIN"
    POSSIBLE = "POSSIBLE"

    @property
    def color(self) -> str:
        """Calendar colour used by the client."""
        colors = {
            DateStatus.IMPOSSIBLE: "RED",
            DateStatus.UNCERTAIN: "YELLOW",
            DateStatus.POSSIBLE: "GREEN",
        }
        return colors[self]


Clock = Callable[[], datetime]


class CredentialStore(Protocol):
    """Port interface for one-way credential encoding."""

    def encode(self, raw: str) -> str:
        """Encode a raw credential. The result is never reversed."""
        ...

    def matches(self, raw: str, encoded: str) -> bool:
        """Check a raw credential against a stored encoding."""
        ...


class EmailValidator(Protocol):
    """Port interface for syntactic email validation."""

    def is_valid(self, email: str) -> bool:
        """Return True if the address has an acceptable shape."""
        ...


class Notifier(Protocol):
    """Port interface for message delivery."""

    def send(self, to_email: str, message: str) -> None:
        """
        Deliver a rendered HTML message.

        Args:
            to_email: Recipient email address
            message: Rendered HTML body
        """
        ...


class MemberRepository(Protocol):
    """Port interface for member persistence."""

    def find_by_email(self, email: str) -> "Member | None":
        ...

    def find_by_id(self, member_id: int) -> "Member | None":
        ...

    def add(self, member: "Member") -> "Member":
        """
        Insert a new member and return it with its id assigned.

        Raises:
            DuplicateEmailError: If the email unique constraint is violated
        """
        ...

    def set_status(
        self, member_id: int, status: MemberStatus, expected: MemberStatus, updated_at: datetime
    ) -> bool:
        """
        Conditionally move a member from ``expected`` to ``status``, stamping updated_at.

        Returns:
            True if a row was updated
        """
        ...


class ConfirmationTokenRepository(Protocol):
    """Port interface for confirmation token persistence."""

    def add(self, token: "ConfirmationToken") -> "ConfirmationToken":
        ...

    def find(self, token: str, for_update: bool = False) -> "ConfirmationToken | None":
        """
        Look up a token by its string value.

        Args:
            token: Opaque token string
            for_update: Lock the row until the surrounding transaction ends
        """
        ...

    def mark_confirmed(self, token: str, confirmed_at: datetime) -> bool:
        """
        Set confirmed_at only if it is still NULL.

        Returns:
            True if this call confirmed the token, False if it was already confirmed
        """
        ...


class RelationRepository(Protocol):
    """Port interface for relation persistence."""

    def exists(self, owner_id: int, friend_id: int) -> bool:
        ...

    def add(self, relation: "Relation") -> "Relation":
        """
        Insert a directed edge.

        Raises:
            DuplicateRelationError: If the (owner, friend) unique constraint is violated
        """
        ...

    def friends_of(self, owner_id: int) -> "list[Member]":
        ...


class BanDateRepository(Protocol):
    """Port interface for date exception persistence."""

    def add(self, ban_date: "PersonalBanDate") -> "PersonalBanDate":
        ...

    def find(self, ban_date_id: int) -> "PersonalBanDate | None":
        ...

    def list_for_member(self, member_id: int) -> "list[PersonalBanDate]":
        ...

    def update_status(self, ban_date_id: int, status: DateStatus, updated_at: datetime) -> None:
        ...


class StoreSession(Protocol):
    """Repositories bound to one open transaction."""

    members: MemberRepository
    tokens: ConfirmationTokenRepository
    relations: RelationRepository
    ban_dates: BanDateRepository


class MembershipStore(Protocol):
    """
    Port interface for transactional access to the persistent store.

    Everything done through the yielded session commits when the block
    exits normally and is rolled back when it raises.

    Raises:
        StorageError: If the store cannot be reached
    """

    def transaction(self) -> AbstractContextManager[StoreSession]:
        ...
