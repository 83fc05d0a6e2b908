"""
Domain entities - Members, confirmation tokens, relations and date exceptions.

Entities are plain dataclasses. Shared bookkeeping fields live in the
embedded Audit value rather than a base class, and associations are
explicit foreign keys resolved through repository lookups.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import TypeVar

from .exceptions import InvalidStatusError
from .ports import DateStatus, MemberRole, MemberStatus

E = TypeVar("E", bound=Enum)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_enum(enum_cls: type[E], value: object) -> E:
    """
    Coerce a raw value into a member of a closed enumeration.

    Args:
        enum_cls: Target enumeration
        value: Enum member or its string value

    Raises:
        InvalidStatusError: If the value is not part of the enumeration
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidStatusError(value, tuple(m.value for m in enum_cls)) from None


@dataclass(frozen=True)
class Audit:
    """Creation and last-modification timestamps of a record."""

    created_at: datetime
    updated_at: datetime

    @classmethod
    def at(cls, now: datetime) -> "Audit":
        return cls(created_at=now, updated_at=now)

    def touched(self, now: datetime) -> "Audit":
        return replace(self, updated_at=now)


@dataclass(frozen=True)
class Member:
    """
    Identity aggregate for one registered account.

    ``password`` only ever holds the encoded credential.
    """

    email: str
    name: str
    password: str
    telephone: str
    audit: Audit
    role: MemberRole = MemberRole.USER
    status: MemberStatus = MemberStatus.PENDING
    id: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "role", parse_enum(MemberRole, self.role))
        object.__setattr__(self, "status", parse_enum(MemberStatus, self.status))

    @property
    def is_active(self) -> bool:
        return self.status is MemberStatus.ACTIVE


@dataclass(frozen=True)
class ConfirmationToken:
    """Single-use, time-bounded proof of control of a member's email."""

    token: str
    member_id: int
    created_at: datetime
    expires_at: datetime
    confirmed_at: datetime | None = None
    id: int | None = None

    @property
    def is_confirmed(self) -> bool:
        return self.confirmed_at is not None

    def is_expired(self, now: datetime) -> bool:
        # Confirming at exactly expires_at is still allowed
        return now > self.expires_at


@dataclass(frozen=True)
class Relation:
    """Directed edge: ``owner`` follows ``friend``."""

    owner_id: int
    friend_id: int
    id: int | None = None

    def __post_init__(self) -> None:
        if self.owner_id == self.friend_id:
            raise ValueError(f"Relation owner and friend are the same member (id {self.owner_id})")


@dataclass
class PersonalBanDate:
    """
    A member's availability exception for one calendar date.

    Status starts as IMPOSSIBLE and can be replaced by any other value of
    DateStatus through edit_status(). Unknown values are rejected and leave
    the current status untouched.
    """

    member_id: int
    date: date
    audit: Audit
    status: DateStatus = DateStatus.IMPOSSIBLE
    id: int | None = None

    def __post_init__(self) -> None:
        self.status = parse_enum(DateStatus, self.status)

    @classmethod
    def create(cls, member_id: int, on: date, now: datetime) -> "PersonalBanDate":
        return cls(member_id=member_id, date=on, audit=Audit.at(now))

    def edit_status(self, new_status: object, now: datetime | None = None) -> DateStatus:
        """
        Replace the status unconditionally.

        Raises:
            InvalidStatusError: If new_status is not a DateStatus value
        """
        self.status = parse_enum(DateStatus, new_status)
        if now is not None:
            self.audit = self.audit.touched(now)
        return self.status

