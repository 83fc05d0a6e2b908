"""
Domain exceptions - Semantic error types for the membership core.

Each failure kind is a distinct class so the boundary layer can map it
to a response without inspecting messages. None of them are retried:
they are all caused by caller input or persisted state.

StorageError sits outside the MembershipError hierarchy:
an infrastructure failure is never a domain outcome.
"""

from datetime import datetime


class MembershipError(Exception):
    """Base class for membership domain errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class InvalidEmailError(MembershipError):
    """Email address was rejected by the email validator."""

    def __init__(self, email: str) -> None:
        super().__init__(f"Email is not valid: {email}")
        self.email = email


class DuplicateEmailError(MembershipError):
    """A member with this email already exists."""

    def __init__(self, email: str) -> None:
        super().__init__(f"Email is already registered: {email}")
        self.email = email


class TokenNotFoundError(MembershipError):
    """No confirmation token with this value exists."""

    def __init__(self, token: str) -> None:
        super().__init__("Confirmation token does not exist")
        self.token = token


class TokenExpiredError(MembershipError):
    """Confirmation token was presented after its expiry time."""

    def __init__(self, token: str, expires_at: datetime) -> None:
        super().__init__(f"Confirmation token expired at {expires_at.isoformat()}")
        self.token = token
        self.expires_at = expires_at


class AlreadyConfirmedError(MembershipError):
    """Confirmation token has already been used."""

    def __init__(self, token: str) -> None:
        super().__init__("Email is already confirmed")
        self.token = token


class MemberNotFoundError(MembershipError):
    """No member is registered under this email."""

    def __init__(self, email: str) -> None:
        super().__init__(f"Member not found: {email}")
        self.email = email


class DuplicateRelationError(MembershipError):
    """The requested relation already exists."""

    def __init__(self, owner_email: str, friend_email: str) -> None:
        super().__init__(f"{owner_email} already follows {friend_email}")
        self.owner_email = owner_email
        self.friend_email = friend_email


class SelfFollowError(DuplicateRelationError):
    """A member tried to follow themselves."""

    def __init__(self, email: str) -> None:
        super().__init__(email, email)
        self.message = f"Member cannot follow themselves: {email}"
        self.args = (self.message,)


class InvalidStatusError(MembershipError):
    """Value is not a member of the closed enumeration it was assigned to."""

    def __init__(self, value: object, allowed: tuple[str, ...]) -> None:
        super().__init__(f"Invalid value {value!r}, expected one of {', '.join(allowed)}")
        self.value = value
        self.allowed = allowed


class AccessDeniedError(MembershipError):
    """Caller is not allowed to perform the operation."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(message)


class BanDateNotFoundError(MembershipError):
    """No date exception with this id exists."""

    def __init__(self, ban_date_id: int) -> None:
        super().__init__(f"Ban date not found: {ban_date_id}")
        self.ban_date_id = ban_date_id


class StorageError(Exception):
    """Persistent store is unavailable (connection loss, pool timeout)."""

    pass
