"""
Tests for the transactional member store.

These tests verify commit/rollback, read visibility between transactions,
the unique-email constraint and serializable conflict detection.
"""

import pytest

from members.errors import ConcurrentUpdateConflict, StoreFailure
from members.models import Member
from members.store import Isolation, MemberStore


def _candidate(email: str = "a@x.com", name: str = "A") -> Member:
    return Member(email=email, name=name, phone="010")


def _insert(store: MemberStore, email: str = "a@x.com", name: str = "A") -> Member:
    with store.transaction() as tx:
        return tx.save(_candidate(email, name))


class TestSaveAndFind:
    """Basic store contract."""

    def test_save_assigns_sequential_ids(self, store: MemberStore):
        first = _insert(store, "a@x.com")
        second = _insert(store, "b@x.com")

        assert first.member_id == 1
        assert second.member_id == 2

    def test_save_stamps_timestamps(self, store: MemberStore):
        saved = _insert(store)

        assert saved.created_at is not None
        assert saved.modified_at == saved.created_at

    def test_find_by_id(self, store: MemberStore):
        saved = _insert(store)

        with store.transaction(read_only=True) as tx:
            assert tx.find_by_id(saved.member_id) == saved

    def test_find_missing_returns_none(self, store: MemberStore):
        with store.transaction(read_only=True) as tx:
            assert tx.find_by_id(99) is None
            assert tx.find_by_email("nobody@x.com") is None

    def test_find_by_email(self, store: MemberStore):
        saved = _insert(store, "a@x.com")

        with store.transaction(read_only=True) as tx:
            assert tx.find_by_email("a@x.com") == saved

    def test_update_keeps_created_at(self, store: MemberStore):
        saved = _insert(store)

        with store.transaction() as tx:
            updated = tx.save(saved.model_copy(update={"name": "B"}))

        assert updated.name == "B"
        assert updated.created_at == saved.created_at
        assert updated.modified_at >= saved.modified_at

    def test_update_of_missing_member_fails(self, store: MemberStore):
        ghost = Member(member_id=42, email="g@x.com", name="G", phone="010")

        with pytest.raises(StoreFailure):
            with store.transaction() as tx:
                tx.save(ghost)

    def test_delete(self, store: MemberStore):
        saved = _insert(store)

        with store.transaction() as tx:
            tx.delete(saved)

        assert store.count() == 0
        with store.transaction(read_only=True) as tx:
            assert tx.find_by_email("a@x.com") is None

    def test_delete_frees_email(self, store: MemberStore):
        saved = _insert(store, "a@x.com")
        with store.transaction() as tx:
            tx.delete(saved)

        again = _insert(store, "a@x.com")

        assert again.member_id == 2

    def test_delete_unsaved_member_fails(self, store: MemberStore):
        with pytest.raises(StoreFailure):
            with store.transaction() as tx:
                tx.delete(_candidate())


class TestFindAll:
    """Paging, ordered by id descending."""

    @pytest.fixture
    def loaded_store(self, store: MemberStore) -> MemberStore:
        for i in range(1, 6):
            _insert(store, f"user{i}@x.com")
        return store

    @pytest.mark.parametrize("page, expected", [
        (0, [5, 4]),
        (1, [3, 2]),
        (2, [1]),
        (10, []),
    ])
    def test_pages(self, loaded_store: MemberStore, page: int, expected: list[int]):
        with loaded_store.transaction(read_only=True) as tx:
            result = tx.find_all(page, 2)

        assert result.member_ids() == expected
        assert result.total_elements == 5
        assert result.total_pages == 3

    def test_ascending(self, loaded_store: MemberStore):
        with loaded_store.transaction(read_only=True) as tx:
            result = tx.find_all(0, 2, descending=False)

        assert result.member_ids() == [1, 2]

    def test_empty_store(self, store: MemberStore):
        with store.transaction(read_only=True) as tx:
            result = tx.find_all(0, 10)

        assert result.is_empty()
        assert result.total_pages == 0

    @pytest.mark.parametrize("page, size", [(-1, 2), (0, 0)])
    def test_invalid_arguments(self, store: MemberStore, page: int, size: int):
        with store.transaction(read_only=True) as tx:
            with pytest.raises(ValueError):
                tx.find_all(page, size)

    def test_sees_own_pending_writes(self, loaded_store: MemberStore):
        with loaded_store.transaction() as tx:
            tx.delete(tx.find_by_id(5))
            tx.save(_candidate("new@x.com"))
            result = tx.find_all(0, 3)

        assert result.member_ids() == [6, 4, 3]


class TestTransactions:
    """Atomicity and isolation."""

    def test_exception_rolls_back(self, store: MemberStore):
        with pytest.raises(RuntimeError):
            with store.transaction() as tx:
                tx.save(_candidate("a@x.com"))
                tx.save(_candidate("b@x.com"))
                raise RuntimeError("boom")

        assert store.count() == 0

    def test_uncommitted_writes_are_invisible(self, store: MemberStore):
        with store.transaction() as writer:
            saved = writer.save(_candidate())
            with store.transaction(read_only=True) as reader:
                assert reader.find_by_id(saved.member_id) is None
                assert reader.find_by_email("a@x.com") is None

        with store.transaction(read_only=True) as reader:
            assert reader.find_by_id(saved.member_id) == saved

    def test_reads_see_own_writes(self, store: MemberStore):
        with store.transaction() as tx:
            saved = tx.save(_candidate())
            assert tx.find_by_id(saved.member_id) == saved
            assert tx.find_by_email("a@x.com") == saved

    def test_read_only_rejects_writes(self, store: MemberStore):
        with pytest.raises(StoreFailure):
            with store.transaction(read_only=True) as tx:
                tx.save(_candidate())

        assert store.count() == 0

    def test_closed_transaction_cannot_be_used(self, store: MemberStore):
        with store.transaction() as tx:
            pass

        with pytest.raises(StoreFailure):
            tx.find_by_id(1)

    def test_duplicate_email_fails_at_commit(self, store: MemberStore):
        _insert(store, "a@x.com")

        with pytest.raises(StoreFailure):
            with store.transaction() as tx:
                tx.save(_candidate("a@x.com"))

        assert store.count() == 1

    def test_duplicate_email_within_one_transaction(self, store: MemberStore):
        with pytest.raises(StoreFailure):
            with store.transaction() as tx:
                tx.save(_candidate("a@x.com"))
                tx.save(_candidate("a@x.com", name="Other"))

        assert store.count() == 0

    def test_default_isolation_is_last_writer_wins(self, store: MemberStore):
        saved = _insert(store)

        with store.transaction() as first:
            current = first.find_by_id(saved.member_id)
            with store.transaction() as second:
                second.save(second.find_by_id(saved.member_id).model_copy(update={"phone": "555"}))
            first.save(current.model_copy(update={"name": "B"}))

        with store.transaction(read_only=True) as tx:
            final = tx.find_by_id(saved.member_id)
        assert final.name == "B"
        assert final.phone == "010"

    def test_serializable_detects_lost_update(self, store: MemberStore):
        saved = _insert(store)

        with pytest.raises(ConcurrentUpdateConflict):
            with store.transaction(isolation=Isolation.SERIALIZABLE) as first:
                current = first.find_by_id(saved.member_id)
                with store.transaction(isolation=Isolation.SERIALIZABLE) as second:
                    fresh = second.find_by_id(saved.member_id)
                    second.save(fresh.model_copy(update={"phone": "555"}))
                first.save(current.model_copy(update={"name": "B"}))

        with store.transaction(read_only=True) as tx:
            final = tx.find_by_id(saved.member_id)
        assert final.phone == "555"
        assert final.name == "A"

    def test_serializable_detects_concurrent_delete(self, store: MemberStore):
        saved = _insert(store)

        with pytest.raises(ConcurrentUpdateConflict):
            with store.transaction(isolation=Isolation.SERIALIZABLE) as tx:
                current = tx.find_by_id(saved.member_id)
                with store.transaction() as deleter:
                    deleter.delete(deleter.find_by_id(saved.member_id))
                tx.save(current.model_copy(update={"name": "B"}))

        assert store.count() == 0

    def test_serializable_without_interference_commits(self, store: MemberStore):
        saved = _insert(store)

        with store.transaction(isolation=Isolation.SERIALIZABLE) as tx:
            tx.save(tx.find_by_id(saved.member_id).model_copy(update={"name": "B"}))

        with store.transaction(read_only=True) as tx:
            assert tx.find_by_id(saved.member_id).name == "B"

    def test_clear(self, store: MemberStore):
        _insert(store)
        store.clear()

        assert store.count() == 0
        assert _insert(store).member_id == 1
