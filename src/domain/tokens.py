"""
Confirmation token service - Issue and confirm email ownership tokens.

Token lifecycle
===============

    ISSUED -> CONFIRMED   (confirm within the validity window, terminal)
    ISSUED -> EXPIRED     (computed at confirm time from now > expires_at)

EXPIRED is never stored. An expired token is rejected on every confirm
call and is never mutated. Confirmation is not idempotent: a second
confirm on the same token is a hard AlreadyConfirmedError.

Double confirmation under concurrency is closed by the repository's
conditional update (confirmed_at is only set while it is still NULL),
so at most one caller can ever win.
"""

import logging
import secrets
from dataclasses import dataclass, field, replace
from datetime import timedelta

from .exceptions import AlreadyConfirmedError, TokenExpiredError, TokenNotFoundError
from .models import ConfirmationToken, Member, utc_now
from .ports import Clock, MembershipStore, StoreSession

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(minutes=15)


@dataclass
class ConfirmationTokenService:
    """
    Domain service for confirmation tokens.

    Methods taking a ``session`` run inside the caller's transaction so
    the registry can commit a token together with the member it belongs to.
    """

    store: MembershipStore
    ttl: timedelta = DEFAULT_TTL
    clock: Clock = field(default=utc_now)

    def issue(self, member: Member, session: StoreSession) -> ConfirmationToken:
        """
        Generate, persist and return a new token for a member.

        Args:
            member: Persisted member (must have an id)
            session: Open store session of the caller's transaction

        Returns:
            The persisted ConfirmationToken
        """
        now = self.clock()
        token = ConfirmationToken(
            token=self._generate_token(),
            member_id=member.id,
            created_at=now,
            expires_at=now + self.ttl,
        )
        token = session.tokens.add(token)
        logger.info("Issued confirmation token for member %s, expires at %s", member.id, token.expires_at)
        return token

    def confirm(self, token: str, session: StoreSession) -> ConfirmationToken:
        """
        Confirm a token inside the caller's transaction.

        Checks run in order: existence, previous confirmation, expiry.

        Raises:
            TokenNotFoundError: No such token
            AlreadyConfirmedError: Token was confirmed before (or concurrently)
            TokenExpiredError: now > expires_at

        Returns:
            The token with confirmed_at set
        """
        now = self.clock()
        found = session.tokens.find(token, for_update=True)

        if found is None:
            raise TokenNotFoundError(token)

        if found.is_confirmed:
            raise AlreadyConfirmedError(token)

        if found.is_expired(now):
            logger.info("Rejected expired confirmation token for member %s", found.member_id)
            raise TokenExpiredError(token, found.expires_at)

        if not session.tokens.mark_confirmed(token, now):
            raise AlreadyConfirmedError(token)

        logger.info("Confirmed token for member %s", found.member_id)
        return replace(found, confirmed_at=now)

    def get_token(self, token: str) -> ConfirmationToken | None:
        """Read-only lookup of a token by its string value."""
        with self.store.transaction() as session:
            return session.tokens.find(token)

    def _generate_token(self) -> str:
        """
        Generate an opaque 128-bit URL-safe token.

        Uses secrets module for cryptographic randomness.
        """
        return secrets.token_urlsafe(16)
