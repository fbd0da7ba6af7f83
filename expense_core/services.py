"""Framework-agnostic coordination between presentation code and the repository."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from decimal import Decimal
from typing import Callable, Iterable, List, Union

from .models import ExpenseDraft, ExpenseRecord
from .repository import ExpenseRepository, Snapshot, SnapshotListener, Subscription

logger = logging.getLogger(__name__)

ErrorListener = Callable[[Exception], None]


def total_amount(records: Iterable[ExpenseRecord]) -> Decimal:
    return sum((record.amount for record in records), start=Decimal("0.00"))


class ExpenseCoordinator:
    """Exposes the live expense collection and forwards user mutations.

    Store calls run on a single worker thread owned by the coordinator, so they
    never block the caller. Each mutation returns a ``Future``; failures are set
    on it and also forwarded to the registered error observers.
    """

    def __init__(self, repository: ExpenseRepository) -> None:
        self._repository = repository
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="expense-store")
        self._lock = threading.Lock()
        # Serialises snapshot hand-off so a late initial delivery never overtakes a newer one.
        self._delivery_lock = threading.RLock()
        self._expenses: Snapshot = []
        self._observers: List[SnapshotListener] = []
        self._error_observers: List[ErrorListener] = []
        self._closed = False
        self._subscription = repository.subscribe(self._on_snapshot)

    # Observable state -----------------------------------------------------
    @property
    def expenses(self) -> Snapshot:
        with self._lock:
            return list(self._expenses)

    @property
    def total(self) -> Decimal:
        return total_amount(self.expenses)

    @property
    def closed(self) -> bool:
        return self._closed

    def observe(self, callback: SnapshotListener) -> Subscription:
        """Register for snapshot changes; the current snapshot is delivered immediately."""
        with self._delivery_lock:
            with self._lock:
                self._observers.append(callback)
                current = list(self._expenses)
            callback(current)
        return Subscription(lambda: self._discard(self._observers, callback))

    def on_error(self, callback: ErrorListener) -> Subscription:
        with self._lock:
            self._error_observers.append(callback)
        return Subscription(lambda: self._discard(self._error_observers, callback))

    # Mutations ------------------------------------------------------------
    def add_expense(self, draft: ExpenseDraft) -> "Future[ExpenseRecord]":
        return self._submit("add", self._repository.insert, draft)

    def update_expense(self, record: ExpenseRecord) -> "Future[ExpenseRecord]":
        return self._submit("update", self._repository.update, record)

    def delete_expense(self, record: Union[ExpenseRecord, int]) -> "Future[None]":
        return self._submit("delete", self._repository.delete, record)

    # Lifecycle ------------------------------------------------------------
    def close(self) -> None:
        """Cancel pending work, release the subscription and drop observers."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=True, cancel_futures=True)
        self._subscription.cancel()
        with self._lock:
            self._observers.clear()
            self._error_observers.clear()
        logger.debug("Expense coordinator closed")

    def __enter__(self) -> "ExpenseCoordinator":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Internal helpers -----------------------------------------------------
    def _submit(self, action: str, operation: Callable, argument: object) -> Future:
        with self._lock:
            if self._closed:
                raise RuntimeError("Expense coordinator is closed")
            future = self._executor.submit(operation, argument)
        future.add_done_callback(lambda done: self._report(action, done))
        return future

    def _report(self, action: str, future: Future) -> None:
        if future.cancelled():
            logger.debug("Cancelled pending %s operation", action)
            return
        exc = future.exception()
        if exc is None:
            return
        logger.error("Expense %s failed: %s", action, exc)
        with self._lock:
            observers = list(self._error_observers)
        for observer in observers:
            try:
                observer(exc)
            except Exception:
                logger.exception("Error observer %r failed", observer)

    def _on_snapshot(self, snapshot: Snapshot) -> None:
        with self._delivery_lock:
            with self._lock:
                self._expenses = list(snapshot)
                observers = list(self._observers)
            for observer in observers:
                try:
                    observer(list(snapshot))
                except Exception:
                    logger.exception("Snapshot observer %r failed", observer)

    def _discard(self, observers: List, callback: Callable) -> None:
        with self._lock:
            if callback in observers:
                observers.remove(callback)
