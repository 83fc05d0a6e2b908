"""
Ban date service - Per-member, per-date availability exceptions.

A member records the dates they cannot (or might not) make. Records are
created as IMPOSSIBLE and only their owner may change the status.
"""

import logging
from dataclasses import dataclass, field
from datetime import date

from .exceptions import AccessDeniedError, BanDateNotFoundError, MemberNotFoundError
from .models import Member, PersonalBanDate, parse_enum, utc_now
from .ports import Clock, DateStatus, MembershipStore, StoreSession

logger = logging.getLogger(__name__)


@dataclass
class BanDateService:
    """Domain service for PersonalBanDate records."""

    store: MembershipStore
    clock: Clock = field(default=utc_now)

    def create(self, member_email: str, on: date) -> PersonalBanDate:
        """
        Record a date exception for a member, with status IMPOSSIBLE.

        Raises:
            MemberNotFoundError: No member with this email
        """
        with self.store.transaction() as session:
            member = self._resolve(session, member_email)
            ban_date = session.ban_dates.add(PersonalBanDate.create(member.id, on, self.clock()))

        logger.info("Member %s marked %s as %s", member.id, on.isoformat(), ban_date.status.value)
        return ban_date

    def list_for(self, member_email: str) -> list[PersonalBanDate]:
        with self.store.transaction() as session:
            member = self._resolve(session, member_email)
            return session.ban_dates.list_for_member(member.id)

    def edit_status(self, ban_date_id: int, new_status: str | DateStatus, requester_email: str) -> PersonalBanDate:
        """
        Replace the status of a date exception.

        The value is validated before anything is read, so an invalid
        status never touches the stored record.

        Raises:
            InvalidStatusError: new_status is not a DateStatus value
            BanDateNotFoundError: No record with this id
            AccessDeniedError: Requester does not own the record
        """
        status = parse_enum(DateStatus, new_status)

        with self.store.transaction() as session:
            ban_date = session.ban_dates.find(ban_date_id)
            if ban_date is None:
                raise BanDateNotFoundError(ban_date_id)

            requester = session.members.find_by_email(requester_email)
            if requester is None or requester.id != ban_date.member_id:
                raise AccessDeniedError("Only the owner can edit this date")

            now = self.clock()
            ban_date.edit_status(status, now)
            session.ban_dates.update_status(ban_date.id, ban_date.status, now)

        return ban_date

    def _resolve(self, session: StoreSession, email: str) -> Member:
        member = session.members.find_by_email(email)
        if member is None:
            raise MemberNotFoundError(email)
        return member
