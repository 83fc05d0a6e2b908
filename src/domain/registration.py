"""
Account registry - Member registration and lifecycle.

Member lifecycle (forward-only)
===============================

States:
- PENDING: Initial state after registration, email not yet confirmed
- ACTIVE: Terminal state after a successful token confirmation

Valid Transitions:
    PENDING -> ACTIVE   (confirm() with a valid, unexpired, unused token)

Registration and confirmation each run as a single transaction. The member
row and its confirmation token commit together; the notification is sent
only after the commit and its failure never undoes the registration.
"""

import logging
from dataclasses import dataclass
from html import escape

from .exceptions import (
    AccessDeniedError,
    AlreadyConfirmedError,
    DuplicateEmailError,
    InvalidEmailError,
)
from .models import Audit, Member
from .ports import (
    CredentialStore,
    EmailValidator,
    MemberRole,
    MembershipStore,
    MemberStatus,
    Notifier,
)
from .tokens import ConfirmationTokenService

logger = logging.getLogger(__name__)

CONFIRM_PATH = "/members/confirm"


@dataclass
class AccountRegistry:
    """
    Domain service for member accounts.

    Orchestrates registration: email validation, uniqueness, credential
    encoding, token issuance and notification.
    """

    store: MembershipStore
    tokens: ConfirmationTokenService
    credentials: CredentialStore
    email_validator: EmailValidator
    notifier: Notifier
    base_url: str = "http://localhost:8000/v1"

    def register(self, name: str, email: str, raw_credential: str, telephone: str) -> str:
        """
        Register a new member and send them a confirmation link.

        Args:
            name: Display name
            email: Email address (surrounding whitespace is removed)
            raw_credential: Plaintext password, encoded before storage
            telephone: Phone number

        Returns:
            The confirmation token string

        Raises:
            InvalidEmailError: If the email validator rejects the address
            DuplicateEmailError: If the email is already registered
        """
        email = self._normalize_email(email)
        if not self.email_validator.is_valid(email):
            raise InvalidEmailError(email)

        with self.store.transaction() as session:
            if session.members.find_by_email(email) is not None:
                logger.info("Registration rejected, email already registered: %s", email)
                raise DuplicateEmailError(email)

            now = self.tokens.clock()
            member = session.members.add(
                Member(
                    email=email,
                    name=name,
                    password=self.credentials.encode(raw_credential),
                    telephone=telephone,
                    audit=Audit.at(now),
                    role=MemberRole.USER,
                    status=MemberStatus.PENDING,
                )
            )
            token = self.tokens.issue(member, session)

        logger.info("Registered member %s (%s)", member.id, email)
        self._notify(member, token.token)
        return token.token

    def lookup(self, email: str) -> Member | None:
        """Find a member by email. No validation side effects."""
        with self.store.transaction() as session:
            return session.members.find_by_email(email)

    def confirm(self, token: str) -> Member:
        """
        Confirm a token and activate the member that owns it.

        The token update and the PENDING -> ACTIVE transition commit together.

        Raises:
            TokenNotFoundError: No such token
            AlreadyConfirmedError: Token (or member) was already confirmed
            TokenExpiredError: Token is past its expiry time
        """
        with self.store.transaction() as session:
            confirmed = self.tokens.confirm(token, session)
            activated = session.members.set_status(
                confirmed.member_id,
                MemberStatus.ACTIVE,
                expected=MemberStatus.PENDING,
                updated_at=confirmed.confirmed_at,
            )
            if not activated:
                raise AlreadyConfirmedError(token)
            member = session.members.find_by_id(confirmed.member_id)

        logger.info("Activated member %s", confirmed.member_id)
        return member

    def authenticate(self, email: str, raw_credential: str) -> Member:
        """
        Resolve the member behind a set of credentials.

        Raises:
            AccessDeniedError: Unknown email, wrong credential, or member not ACTIVE
        """
        member = self.lookup(self._normalize_email(email))
        if member is None or not self.credentials.matches(raw_credential, member.password):
            raise AccessDeniedError("Invalid credentials")
        if not member.is_active:
            raise AccessDeniedError("Email is not confirmed")
        return member

    def confirmation_link(self, token: str) -> str:
        return f"{self.base_url.rstrip('/')}{CONFIRM_PATH}?token={token}"

    def _notify(self, member: Member, token: str) -> None:
        """Send the confirmation email. Delivery is best-effort."""
        ttl_minutes = int(self.tokens.ttl.total_seconds() // 60)
        message = build_email(member.name, self.confirmation_link(token), ttl_minutes)
        try:
            self.notifier.send(member.email, message)
        except Exception:
            logger.warning("Confirmation email to %s could not be sent", member.email, exc_info=True)

    def _normalize_email(self, email: str) -> str:
        """
        Normalize email address for storage and lookup.

        Only strips whitespace: the address is a case-sensitive key.
        """
        return email.strip()


def build_email(name: str, link: str, ttl_minutes: int = 15) -> str:
    """Render the HTML body of the confirmation email."""
    return f"""\
<div style="font-family:Helvetica,Arial,sans-serif;font-size:16px;margin:0;color:#0b0c0c">
  <table role="presentation" width="100%" style="border-collapse:collapse;min-width:100%;width:100%!important" cellpadding="0" cellspacing="0" border="0">
    <tbody><tr>
      <td width="100%" height="53" bgcolor="#0b0c0c">
        <span style="font-family:Helvetica,Arial,sans-serif;font-size:28px;font-weight:700;color:#ffffff;padding-left:10px">Confirm your email</span>
      </td>
    </tr></tbody>
  </table>
  <table role="presentation" align="center" cellpadding="0" cellspacing="0" border="0" style="border-collapse:collapse;max-width:580px;width:100%!important" width="100%">
    <tbody><tr>
      <td style="font-family:Helvetica,Arial,sans-serif;font-size:19px;line-height:1.315789474;max-width:560px">
        <p style="Margin:0 0 20px 0;font-size:19px;line-height:25px;color:#0b0c0c">Hi {escape(name)},</p>
        <p style="Margin:0 0 20px 0;font-size:19px;line-height:25px;color:#0b0c0c">Thank you for registering. Please click on the link below to activate your account:</p>
        <blockquote style="Margin:0 0 20px 0;border-left:10px solid #b1b4b6;padding:15px 0 0.1px 15px;font-size:19px;line-height:25px">
          <p style="Margin:0 0 20px 0;font-size:19px;line-height:25px;color:#0b0c0c"><a href="{link}">Activate Now</a></p>
        </blockquote>
        <p>Link will expire in {ttl_minutes} minutes.</p>
        <p>See you soon</p>
      </td>
    </tr></tbody>
  </table>
</div>"""
