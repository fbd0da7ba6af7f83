"""Tests for ExpenseCoordinator."""

import threading
import time
from decimal import Decimal

import pytest

from expense_core.exceptions import PersistenceError, RecordNotFoundError
from expense_core.models import ExpenseRecord
from expense_core.repository import ExpenseRepository
from expense_core.services import ExpenseCoordinator, total_amount

TIMEOUT = 5


class TestCoordinatorState:
    """Observable state exposed to presentation code."""

    def test_starts_with_current_snapshot(self, repository, coffee):
        repository.insert(coffee)
        with ExpenseCoordinator(repository) as coordinator:
            assert [item.name for item in coordinator.expenses] == ["Coffee"]

    def test_add_expense_updates_state(self, coordinator, coffee, rent):
        record = coordinator.add_expense(coffee).result(timeout=TIMEOUT)
        coordinator.add_expense(rent).result(timeout=TIMEOUT)
        assert record.id in {item.id for item in coordinator.expenses}
        assert coordinator.total == Decimal("954.50")

    def test_update_and_delete(self, coordinator, coffee):
        record = coordinator.add_expense(coffee).result(timeout=TIMEOUT)
        changed = ExpenseRecord(record.id, "Latte", Decimal("5.10"), "Food", "2024-01-05")
        coordinator.update_expense(changed).result(timeout=TIMEOUT)
        assert coordinator.expenses == [changed]
        coordinator.delete_expense(changed).result(timeout=TIMEOUT)
        assert coordinator.expenses == []

    def test_observe_receives_snapshots(self, coordinator, coffee):
        received = []
        coordinator.observe(received.append)
        coordinator.add_expense(coffee).result(timeout=TIMEOUT)
        assert [len(snapshot) for snapshot in received] == [0, 1]

    def test_cancelled_observer(self, coordinator, coffee):
        received = []
        subscription = coordinator.observe(received.append)
        subscription.cancel()
        coordinator.add_expense(coffee).result(timeout=TIMEOUT)
        assert len(received) == 1

    def test_slow_initial_delivery_is_not_overtaken(self, coordinator, coffee):
        """A mutation finishing during the first delivery arrives after it."""
        entered = threading.Event()
        release = threading.Event()
        received = []

        def slow_observer(snapshot):
            if not entered.is_set():
                entered.set()
                release.wait(TIMEOUT)
            received.append(snapshot)

        observer = threading.Thread(target=coordinator.observe, args=(slow_observer,))
        observer.start()
        assert entered.wait(TIMEOUT)
        future = coordinator.add_expense(coffee)
        time.sleep(0.2)
        release.set()
        observer.join(TIMEOUT)
        future.result(timeout=TIMEOUT)

        assert [len(snapshot) for snapshot in received] == [0, 1]
        assert [item.name for item in coordinator.expenses] == ["Coffee"]

    def test_total_amount_of_nothing(self):
        assert total_amount([]) == Decimal("0.00")


class TestCoordinatorErrors:
    """Failures are returned to the caller and forwarded to error observers."""

    def test_update_of_missing_record(self, coordinator):
        seen = []
        reported = threading.Event()

        def on_error(exc):
            seen.append(exc)
            reported.set()

        coordinator.on_error(on_error)
        ghost = ExpenseRecord(404, "Ghost", Decimal("1"), "Others", "2024-01-01")
        future = coordinator.update_expense(ghost)
        with pytest.raises(RecordNotFoundError):
            future.result(timeout=TIMEOUT)
        assert reported.wait(TIMEOUT)
        assert isinstance(seen[0], RecordNotFoundError)

    def test_store_failure_surfaces(self, store, coffee):
        coordinator = ExpenseCoordinator(ExpenseRepository(store))
        try:
            store.close()
            with pytest.raises(PersistenceError):
                coordinator.add_expense(coffee).result(timeout=TIMEOUT)
        finally:
            coordinator.close()

    def test_failing_error_observer_is_isolated(self, coordinator):
        reported = threading.Event()

        def broken(exc):
            raise RuntimeError("observer failure")

        coordinator.on_error(broken)
        coordinator.on_error(lambda exc: reported.set())
        ghost = ExpenseRecord(404, "Ghost", Decimal("1"), "Others", "2024-01-01")
        coordinator.update_expense(ghost)
        assert reported.wait(TIMEOUT)


class TestCoordinatorLifecycle:
    """Teardown cancels the subscription and refuses new work."""

    def test_close_unsubscribes(self, repository, coffee):
        coordinator = ExpenseCoordinator(repository)
        coordinator.close()
        coordinator.close()
        assert coordinator.closed
        repository.insert(coffee)
        assert coordinator.expenses == []

    def test_submit_after_close(self, repository, coffee):
        coordinator = ExpenseCoordinator(repository)
        coordinator.close()
        with pytest.raises(RuntimeError):
            coordinator.add_expense(coffee)

    def test_close_cancels_queued_operations(self, repository, coffee):
        """Work still queued behind a running operation is cancelled en masse."""
        coordinator = ExpenseCoordinator(repository)
        started = threading.Event()
        release = threading.Event()

        def slow_listener(snapshot):
            if snapshot:
                started.set()
                release.wait(TIMEOUT)

        repository.subscribe(slow_listener)
        running = coordinator.add_expense(coffee)
        assert started.wait(TIMEOUT)
        queued = [coordinator.add_expense(coffee) for _ in range(3)]

        closer = threading.Thread(target=coordinator.close)
        closer.start()
        deadline = time.monotonic() + TIMEOUT
        while not all(future.cancelled() for future in queued) and time.monotonic() < deadline:
            time.sleep(0.01)
        release.set()
        closer.join(TIMEOUT)

        assert running.result(timeout=TIMEOUT).name == "Coffee"
        assert all(future.cancelled() for future in queued)
        assert len(repository.read_all()) == 1
