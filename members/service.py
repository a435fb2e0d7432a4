"""
Member service: business rules and transaction boundaries.

Every operation opens its own store transaction:
- create_member:  default isolation; publishes MemberCreated after commit
- update_member:  SERIALIZABLE, so concurrent read-modify-write on the same
                  member fails one side with ConcurrentUpdateConflict
- find_member, find_verified_member: read-only
- find_members:   read-only, default isolation
- delete_member:  default isolation

Notification is deliberately outside the create transaction. The event is
published only after the member has been committed, and nothing that
happens to it afterwards (a failed email, a slow listener) is reported back
or rolls the member back. There is no outbox: a crash between commit and
publish loses the notification.
"""

import logging
from typing import Optional

from members.errors import MemberExists, MemberNotFound
from members.models import Member, MemberPatch, Page
from members.store import Isolation, MemberStore, Transaction
from notifications.event_bus import EventBus
from notifications.events import member_created

logger = logging.getLogger("member_service")


class MemberService:
    """
    Orchestrates the member store and the event bus.

    Example:
        service = MemberService(MemberStore(), EventBus())
        member = service.create_member(
            Member(email="a@x.com", name="A", phone="010-1234-5678")
        )
        service.update_member(MemberPatch(member_id=member.member_id, phone="555"))
    """

    def __init__(self, store: MemberStore, event_bus: EventBus):
        self.store = store
        self.event_bus = event_bus

    def create_member(self, member: Member) -> Member:
        """Insert a new member. Any id already on ``member`` is ignored."""
        with self.store.transaction() as tx:
            self._verify_exists_email(tx, member.email)
            saved = tx.save(member.model_copy(update={"member_id": None}))
        logger.info(f"Saved member {saved.member_id}")

        self.event_bus.publish(member_created(saved))
        return saved

    def update_member(self, patch: MemberPatch) -> Member:
        """
        Apply a partial update. Email is never changed here.

        Raises:
            MemberNotFound: no member has ``patch.member_id``
            ConcurrentUpdateConflict: another transaction changed the member
                between our read and our commit; safe to retry
        """
        with self.store.transaction(isolation=Isolation.SERIALIZABLE) as tx:
            current = self._find_verified_member(tx, patch.member_id)
            updated = tx.save(patch.apply_to(current))
        logger.info(f"Updated member {updated.member_id}: {sorted(patch.present_fields())}")
        return updated

    def find_member(self, member_id: int) -> Member:
        return self.find_verified_member(member_id)

    def find_members(self, page: int, size: int) -> Page:
        """Page through members, newest (highest id) first."""
        with self.store.transaction(read_only=True) as tx:
            return tx.find_all(page, size, descending=True)

    def delete_member(self, member_id: int) -> None:
        with self.store.transaction() as tx:
            member = self._find_verified_member(tx, member_id)
            tx.delete(member)
        logger.info(f"Deleted member {member_id}")

    def find_verified_member(self, member_id: int) -> Member:
        """Look up a member, raising MemberNotFound if there is none."""
        with self.store.transaction(read_only=True) as tx:
            return self._find_verified_member(tx, member_id)

    # =========================================================================
    # Helpers that join the caller's transaction
    # =========================================================================

    def _find_verified_member(self, tx: Transaction, member_id: Optional[int]) -> Member:
        member = tx.find_by_id(member_id) if member_id is not None else None
        if member is None:
            raise MemberNotFound(f"id={member_id}")
        return member

    def _verify_exists_email(self, tx: Transaction, email: str) -> None:
        if tx.find_by_email(email) is not None:
            raise MemberExists(email)
