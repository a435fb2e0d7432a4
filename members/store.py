"""
In-memory transactional store for member records.

This module provides the persistence layer behind the member service. In a
real deployment it would be a relational database; here it is a dict of
immutable Member snapshots with just enough transaction machinery to honour
the same contract.

Design decisions:
- Writes are buffered per transaction and applied atomically on commit,
  so other transactions never observe uncommitted data
- Reads inside a transaction see its own pending writes first, then the
  latest committed state (read committed)
- Every committed row carries a version number; SERIALIZABLE transactions
  remember the version of each row they touched and refuse to commit if
  any of them moved (optimistic concurrency control)
- The unique-email constraint is checked at commit time, under the lock
- Ids come from a sequence at save time; a rolled-back insert burns its id
  the same way a database sequence would

Usage:
    store = MemberStore()
    with store.transaction() as tx:
        saved = tx.save(Member(email="a@x.com", name="A", phone="010-1234-5678"))
"""

import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, Optional

from members.errors import ConcurrentUpdateConflict, StoreFailure
from members.models import Member, Page

logger = logging.getLogger("member_store")


class Isolation(str, Enum):
    """Transaction isolation levels supported by the store."""
    DEFAULT = "DEFAULT"             # read committed
    SERIALIZABLE = "SERIALIZABLE"   # commit fails if anything read has changed


# Marker stored in a transaction's write buffer for a pending delete
_DELETED = object()


class Transaction:
    """
    A unit of work against a ``MemberStore``.

    Implements the store contract (save / find_by_id / find_by_email /
    find_all / delete). Obtain one from ``MemberStore.transaction()``; do not
    construct directly.
    """

    def __init__(self, store: "MemberStore", isolation: Isolation, read_only: bool):
        self._store = store
        self.isolation = isolation
        self.read_only = read_only

        # member_id -> pending Member, or _DELETED
        self._writes: dict[int, object] = {}
        self._inserted: set[int] = set()

        # What this transaction has seen, for SERIALIZABLE validation.
        # A version of None means "the row did not exist".
        self._observed_versions: dict[int, Optional[int]] = {}
        self._observed_emails: dict[str, Optional[int]] = {}

        self._active = True

    # =========================================================================
    # Reads
    # =========================================================================

    def find_by_id(self, member_id: int) -> Optional[Member]:
        """Return the member with this id, or None."""
        self._check_active()
        if member_id in self._writes:
            pending = self._writes[member_id]
            return None if pending is _DELETED else pending

        member, version = self._store._read(member_id)
        self._observed_versions.setdefault(member_id, version)
        return member

    def find_by_email(self, email: str) -> Optional[Member]:
        """Return the member registered with this email, or None."""
        self._check_active()
        for pending in self._writes.values():
            if pending is not _DELETED and pending.email == email:
                return pending

        member_id = self._store._lookup_email(email)
        self._observed_emails.setdefault(email, member_id)
        if member_id is None:
            return None
        return self.find_by_id(member_id)

    def find_all(self, page: int, size: int, descending: bool = True) -> Page:
        """
        Return one page of members ordered by id, highest first unless
        ``descending`` is False.

        Pages past the end come back empty rather than raising.
        """
        self._check_active()
        if page < 0:
            raise ValueError(f"page must not be negative: {page}")
        if size < 1:
            raise ValueError(f"size must be positive: {size}")

        rows = self._store._snapshot()
        for member_id, pending in self._writes.items():
            if pending is _DELETED:
                rows.pop(member_id, None)
            else:
                rows[member_id] = pending

        ordered = sorted(rows.values(), key=lambda m: m.member_id, reverse=descending)
        start = page * size
        return Page(
            content=ordered[start:start + size],
            page=page,
            size=size,
            total_elements=len(ordered),
        )

    # =========================================================================
    # Writes
    # =========================================================================

    def save(self, member: Member) -> Member:
        """
        Insert a new member (no id yet) or replace an existing one by id.

        Returns the state that will be persisted on commit.
        """
        self._check_writable()
        now = datetime.now(timezone.utc)

        if member.member_id is None:
            member_id = self._store._next_id()
            saved = member.model_copy(update={
                "member_id": member_id,
                "created_at": now,
                "modified_at": now,
            })
            self._inserted.add(member_id)
        else:
            current = self.find_by_id(member.member_id)
            if current is None:
                if (self.isolation is Isolation.SERIALIZABLE
                        and self._observed_versions.get(member.member_id) is not None):
                    raise ConcurrentUpdateConflict(f"member {member.member_id} was deleted since it was read")
                raise StoreFailure(f"cannot update missing member {member.member_id}")
            saved = member.model_copy(update={
                "created_at": current.created_at,
                "modified_at": now,
            })

        self._writes[saved.member_id] = saved
        return saved

    def delete(self, member: Member) -> None:
        """Remove the member with ``member.member_id`` on commit."""
        self._check_writable()
        if member.member_id is None:
            raise StoreFailure("cannot delete a member that was never saved")
        # Records the observed version for SERIALIZABLE validation
        self.find_by_id(member.member_id)
        self._writes[member.member_id] = _DELETED
        self._inserted.discard(member.member_id)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def commit(self) -> None:
        self._check_active()
        try:
            if self._writes or self.isolation is Isolation.SERIALIZABLE:
                self._store._commit(self)
        finally:
            self._active = False

    def rollback(self) -> None:
        if not self._active:
            return
        if self._writes:
            logger.debug(f"Rolling back {len(self._writes)} pending write(s)")
        self._writes.clear()
        self._inserted.clear()
        self._active = False

    def _check_active(self) -> None:
        if not self._active:
            raise StoreFailure("transaction is no longer active")

    def _check_writable(self) -> None:
        self._check_active()
        if self.read_only:
            raise StoreFailure("write attempted in a read-only transaction")


class MemberStore:
    """
    Thread-safe in-memory member store.

    All committed state lives behind a single re-entrant lock; transactions
    only take the lock briefly for each read and once for commit.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._rows: dict[int, Member] = {}
        self._versions: dict[int, int] = {}
        self._email_index: dict[str, int] = {}
        self._last_id = 0

    @contextmanager
    def transaction(
        self,
        isolation: Isolation = Isolation.DEFAULT,
        read_only: bool = False,
    ) -> Iterator[Transaction]:
        """
        Open a transaction.

        The block's writes are committed when it exits normally. Any
        exception rolls them back and propagates unchanged.
        """
        tx = Transaction(self, isolation, read_only)
        try:
            yield tx
        except BaseException:
            tx.rollback()
            raise
        tx.commit()

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def count(self) -> int:
        """Number of committed members."""
        with self._lock:
            return len(self._rows)

    def clear(self) -> None:
        """Drop every record and restart the id sequence (for tests and demos)."""
        with self._lock:
            self._rows.clear()
            self._versions.clear()
            self._email_index.clear()
            self._last_id = 0

    # =========================================================================
    # Internal API used by Transaction
    # =========================================================================

    def _read(self, member_id: int) -> tuple[Optional[Member], Optional[int]]:
        with self._lock:
            return self._rows.get(member_id), self._versions.get(member_id)

    def _lookup_email(self, email: str) -> Optional[int]:
        with self._lock:
            return self._email_index.get(email)

    def _snapshot(self) -> dict[int, Member]:
        with self._lock:
            return dict(self._rows)

    def _next_id(self) -> int:
        with self._lock:
            self._last_id += 1
            return self._last_id

    def _commit(self, tx: Transaction) -> None:
        with self._lock:
            if tx.isolation is Isolation.SERIALIZABLE:
                self._validate_serializable(tx)

            email_index = self._check_constraints(tx)

            for member_id, pending in tx._writes.items():
                if pending is _DELETED:
                    self._rows.pop(member_id, None)
                    self._versions.pop(member_id, None)
                else:
                    self._rows[member_id] = pending
                    self._versions[member_id] = self._versions.get(member_id, 0) + 1
            self._email_index = email_index

        logger.debug(f"Committed {len(tx._writes)} write(s) at {tx.isolation.value}")

    def _validate_serializable(self, tx: Transaction) -> None:
        for member_id, seen in tx._observed_versions.items():
            if self._versions.get(member_id) != seen:
                logger.warning(f"Serialization conflict on member {member_id}")
                raise ConcurrentUpdateConflict(f"member {member_id} changed since it was read")
        for email, seen in tx._observed_emails.items():
            if self._email_index.get(email) != seen:
                logger.warning(f"Serialization conflict on email {email}")
                raise ConcurrentUpdateConflict(f"email {email} changed since it was read")

    def _check_constraints(self, tx: Transaction) -> dict[str, int]:
        """Return the email index as it will be after commit, or raise."""
        email_index = dict(self._email_index)

        for member_id, pending in tx._writes.items():
            current = self._rows.get(member_id)
            if current is None and member_id not in tx._inserted and pending is not _DELETED:
                raise StoreFailure(f"member {member_id} no longer exists")
            if current is not None and (pending is _DELETED or pending.email != current.email):
                email_index.pop(current.email, None)

        for member_id, pending in tx._writes.items():
            if pending is _DELETED:
                continue
            owner = email_index.get(pending.email)
            if owner is not None and owner != member_id:
                raise StoreFailure(f"duplicate email {pending.email}")
            email_index[pending.email] = member_id

        return email_index
