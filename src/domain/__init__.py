"""
Domain layer - Pure business logic with zero framework imports.

This package contains the membership core: account registration with
email confirmation tokens, the directed friend relation graph and
per-date availability exceptions. It defines its own port interfaces
for infrastructure abstraction (hexagonal architecture).
"""

from .ban_dates import BanDateService
from .exceptions import (
    AccessDeniedError,
    AlreadyConfirmedError,
    BanDateNotFoundError,
    DuplicateEmailError,
    DuplicateRelationError,
    InvalidEmailError,
    InvalidStatusError,
    MemberNotFoundError,
    MembershipError,
    SelfFollowError,
    StorageError,
    TokenExpiredError,
    TokenNotFoundError,
)
from .models import Audit, ConfirmationToken, Member, PersonalBanDate, Relation
from .ports import (
    CredentialStore,
    DateStatus,
    EmailValidator,
    MemberRole,
    MembershipStore,
    MemberStatus,
    Notifier,
)
from .registration import AccountRegistry
from .relations import RelationGraph
from .tokens import ConfirmationTokenService

__all__ = [
    "AccessDeniedError",
    "AccountRegistry",
    "AlreadyConfirmedError",
    "Audit",
    "BanDateNotFoundError",
    "BanDateService",
    "ConfirmationToken",
    "ConfirmationTokenService",
    "CredentialStore",
    "DateStatus",
    "DuplicateEmailError",
    "DuplicateRelationError",
    "EmailValidator",
    "InvalidEmailError",
    "InvalidStatusError",
    "Member",
    "MemberNotFoundError",
    "MemberRole",
    "MemberStatus",
    "MembershipError",
    "MembershipStore",
    "Notifier",
    "PersonalBanDate",
    "Relation",
    "RelationGraph",
    "SelfFollowError",
    "StorageError",
    "TokenExpiredError",
    "TokenNotFoundError",
]
