"""
Relation graph - Directed "owner follows friend" edges between members.

Following is strictly directed: follow(a, b) never creates the b -> a
edge. A mutual relation needs both members to follow each other.

Duplicate edges are rejected by an explicit existence check and, for
concurrent identical requests, by the (owner, friend) unique constraint
in the store.
"""

import logging
from dataclasses import dataclass

from .exceptions import DuplicateRelationError, MemberNotFoundError, SelfFollowError
from .models import Member, Relation
from .ports import MembershipStore, StoreSession

logger = logging.getLogger(__name__)


@dataclass
class RelationGraph:
    """Domain service for the friend relation graph."""

    store: MembershipStore

    def follow(self, requester_email: str, receiver_email: str) -> Relation:
        """
        Record that the requester follows the receiver.

        Args:
            requester_email: Email of the (authenticated) requesting member
            receiver_email: Email of the member to follow

        Returns:
            The persisted Relation

        Raises:
            MemberNotFoundError: Requester or receiver does not exist
            SelfFollowError: Requester and receiver are the same member
            DuplicateRelationError: The edge already exists
        """
        with self.store.transaction() as session:
            requester = self._resolve(session, requester_email)
            receiver = self._resolve(session, receiver_email)

            if requester.id == receiver.id:
                raise SelfFollowError(requester_email)

            if session.relations.exists(requester.id, receiver.id):
                raise DuplicateRelationError(requester_email, receiver_email)

            try:
                relation = session.relations.add(Relation(owner_id=requester.id, friend_id=receiver.id))
            except DuplicateRelationError:
                # Lost a race against an identical concurrent request
                raise DuplicateRelationError(requester_email, receiver_email) from None

        logger.info("Member %s now follows member %s", requester.id, receiver.id)
        return relation

    def is_following(self, owner_email: str, friend_email: str) -> bool:
        with self.store.transaction() as session:
            owner = session.members.find_by_email(owner_email)
            friend = session.members.find_by_email(friend_email)
            if owner is None or friend is None:
                return False
            return session.relations.exists(owner.id, friend.id)

    def friends(self, email: str) -> list[Member]:
        """
        List the members followed by a member.

        Raises:
            MemberNotFoundError: No member with this email
        """
        with self.store.transaction() as session:
            owner = self._resolve(session, email)
            return session.relations.friends_of(owner.id)

    def _resolve(self, session: StoreSession, email: str) -> Member:
        member = session.members.find_by_email(email)
        if member is None:
            raise MemberNotFoundError(email)
        return member
