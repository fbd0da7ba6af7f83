"""Tests for ExpenseRepository CRUD and snapshot publishing."""

import threading
import time
from decimal import Decimal

import pytest

from expense_core.exceptions import PersistenceError, RecordNotFoundError
from expense_core.models import ExpenseDraft, ExpenseRecord
from expense_core.repository import ExpenseRepository


class TestRepositoryCrud:
    """Create, read, update and delete."""

    def test_insert_assigns_id_and_round_trips(self, repository, coffee):
        """A read after insert contains a record with the draft's fields."""
        record = repository.insert(coffee)
        assert isinstance(record.id, int)
        stored = repository.read_all()
        assert [item.as_draft() for item in stored] == [coffee]
        assert stored[0].id == record.id
        assert stored[0].amount == Decimal("4.50")

    def test_draft_from_dict_keeps_fields(self, repository):
        """A draft rebuilt from its dict form stores exactly the same values."""
        draft = ExpenseDraft.from_dict(
            {"name": "Fuel", "amount": "12.345", "category": "Transport", "date": "2024-02-10"}
        )
        assert ExpenseDraft.from_dict(draft.to_dict()) == draft
        record = repository.insert(draft)
        assert repository.get(record.id).amount == Decimal("12.345")

    def test_ids_are_unique(self, repository, coffee):
        first = repository.insert(coffee)
        second = repository.insert(coffee)
        assert first.id != second.id

    def test_read_all_orders_by_date(self, repository, coffee, rent):
        repository.insert(coffee)
        repository.insert(rent)
        assert [item.name for item in repository.read_all()] == ["Rent", "Coffee"]

    def test_get(self, repository, coffee):
        record = repository.insert(coffee)
        assert repository.get(record.id) == record
        with pytest.raises(RecordNotFoundError):
            repository.get(record.id + 100)

    def test_update_replaces_fields(self, repository, coffee):
        record = repository.insert(coffee)
        changed = ExpenseRecord(record.id, "Latte", Decimal("5.10"), "Food", "2024-01-06")
        repository.update(changed)
        assert repository.get(record.id) == changed

    def test_update_is_idempotent(self, repository, coffee, rent):
        """Applying the same update twice leaves the same state as once."""
        record = repository.insert(coffee)
        repository.insert(rent)
        changed = record.with_changes(
            ExpenseDraft(name="Latte", amount=Decimal("5.10"), category="Food", date="2024-01-06")
        )
        repository.update(changed)
        once = repository.read_all()
        repository.update(changed)
        assert repository.read_all() == once

    def test_update_unknown_id(self, repository):
        ghost = ExpenseRecord(999, "Ghost", Decimal("1"), "Others", "2024-01-01")
        with pytest.raises(RecordNotFoundError):
            repository.update(ghost)
        assert repository.read_all() == []

    def test_delete(self, repository, coffee, rent):
        """After deleting X, read_all has no entry with X's id."""
        record = repository.insert(coffee)
        kept = repository.insert(rent)
        repository.delete(record)
        assert [item.id for item in repository.read_all()] == [kept.id]

    def test_delete_by_id_and_absent_is_noop(self, repository, coffee):
        record = repository.insert(coffee)
        repository.delete(record.id)
        repository.delete(record.id)
        assert repository.read_all() == []

    def test_closed_store_raises_persistence_error(self, store, coffee):
        repository = ExpenseRepository(store)
        store.close()
        with pytest.raises(PersistenceError):
            repository.insert(coffee)


class TestRepositorySubscriptions:
    """Snapshot publishing."""

    def test_subscribe_delivers_current_snapshot(self, repository, coffee):
        repository.insert(coffee)
        received = []
        repository.subscribe(received.append)
        assert len(received) == 1
        assert received[0][0].name == "Coffee"

    def test_snapshot_after_every_mutation(self, repository, coffee):
        received = []
        repository.subscribe(received.append)
        record = repository.insert(coffee)
        repository.update(record.with_changes(coffee))
        repository.delete(record)
        assert [len(snapshot) for snapshot in received] == [0, 1, 1, 0]

    def test_cancelled_subscription_stops_delivery(self, repository, coffee):
        received = []
        subscription = repository.subscribe(received.append)
        subscription.cancel()
        subscription.cancel()
        assert not subscription.active
        repository.insert(coffee)
        assert len(received) == 1

    def test_unsubscribe_unknown_listener(self, repository):
        repository.unsubscribe(lambda snapshot: None)

    def test_failing_listener_does_not_block_others(self, repository, coffee):
        def broken(snapshot):
            raise RuntimeError("listener failure")

        received = []
        repository.subscribe(broken)
        repository.subscribe(received.append)
        repository.insert(coffee)
        assert [len(snapshot) for snapshot in received] == [0, 1]

    def test_failed_update_publishes_nothing(self, repository):
        received = []
        repository.subscribe(received.append)
        with pytest.raises(RecordNotFoundError):
            repository.update(ExpenseRecord(5, "Ghost", Decimal("1"), "Others", "2024-01-01"))
        assert len(received) == 1

    def test_slow_initial_delivery_is_not_overtaken(self, repository, coffee):
        """An insert racing a subscription is delivered after the initial snapshot."""
        entered = threading.Event()
        release = threading.Event()
        received = []

        def slow_listener(snapshot):
            if not entered.is_set():
                entered.set()
                release.wait(5)
            received.append(snapshot)

        subscriber = threading.Thread(target=repository.subscribe, args=(slow_listener,))
        subscriber.start()
        assert entered.wait(5)
        writer = threading.Thread(target=repository.insert, args=(coffee,))
        writer.start()
        time.sleep(0.2)
        release.set()
        subscriber.join(5)
        writer.join(5)

        assert [len(snapshot) for snapshot in received] == [0, 1]
