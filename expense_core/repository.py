"""Expense repository: typed CRUD over the record store plus snapshot publishing."""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Union

from .exceptions import RecordNotFoundError
from .models import ExpenseDraft, ExpenseRecord
from .storage import RecordStore

logger = logging.getLogger(__name__)

Snapshot = List[ExpenseRecord]
SnapshotListener = Callable[[Snapshot], None]

_COLUMNS = "id, name, amount, category, date"


class Subscription:
    """Handle returned by ``subscribe``; cancelling it is idempotent."""

    def __init__(self, cancel: Callable[[], None]) -> None:
        self._cancel = cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._cancel()


class ExpenseRepository:
    """Access layer translating typed operations into store calls."""

    def __init__(self, store: RecordStore) -> None:
        self._store = store
        self._listeners: List[SnapshotListener] = []
        self._listeners_lock = threading.Lock()
        # Held while a snapshot is read and handed out, so listeners see them in order.
        self._delivery_lock = threading.RLock()

    # Public API -----------------------------------------------------------
    def insert(self, draft: ExpenseDraft) -> ExpenseRecord:
        with self._store.transaction() as cursor:
            cursor.execute(
                "INSERT INTO expenses (name, amount, category, date) VALUES (?, ?, ?, ?)",
                (draft.name, str(draft.amount), draft.category, draft.date),
            )
            record = ExpenseRecord.from_draft(cursor.lastrowid, draft)
        logger.debug("Inserted expense %s", record.id)
        self._publish()
        return record

    def read_all(self) -> Snapshot:
        rows = self._store.query(f"SELECT {_COLUMNS} FROM expenses ORDER BY date, id")
        return [ExpenseRecord.from_dict(row) for row in rows]

    def get(self, record_id: int) -> ExpenseRecord:
        rows = self._store.query(f"SELECT {_COLUMNS} FROM expenses WHERE id = ?", (record_id,))
        if not rows:
            raise RecordNotFoundError(f"Expense {record_id} not found")
        return ExpenseRecord.from_dict(rows[0])

    def update(self, record: ExpenseRecord) -> ExpenseRecord:
        with self._store.transaction() as cursor:
            cursor.execute(
                "UPDATE expenses SET name = ?, amount = ?, category = ?, date = ? WHERE id = ?",
                (record.name, str(record.amount), record.category, record.date, record.id),
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError(f"Expense {record.id} not found")
        logger.debug("Updated expense %s", record.id)
        self._publish()
        return record

    def delete(self, record: Union[ExpenseRecord, int]) -> None:
        record_id = record.id if isinstance(record, ExpenseRecord) else record
        with self._store.transaction() as cursor:
            cursor.execute("DELETE FROM expenses WHERE id = ?", (record_id,))
            removed = cursor.rowcount
        if removed:
            logger.debug("Deleted expense %s", record_id)
        else:
            logger.debug("Delete of unknown expense %s ignored", record_id)
        self._publish()

    def subscribe(self, listener: SnapshotListener) -> Subscription:
        """Register for snapshots; the current one is delivered immediately."""
        with self._delivery_lock:
            with self._listeners_lock:
                self._listeners.append(listener)
            self._notify(listener, self.read_all())
        return Subscription(lambda: self.unsubscribe(listener))

    def unsubscribe(self, listener: SnapshotListener) -> None:
        with self._listeners_lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

    # Internal helpers -----------------------------------------------------
    def _publish(self) -> None:
        with self._delivery_lock:
            with self._listeners_lock:
                listeners = list(self._listeners)
            if not listeners:
                return
            snapshot = self.read_all()
            for listener in listeners:
                self._notify(listener, list(snapshot))

    @staticmethod
    def _notify(listener: SnapshotListener, snapshot: Snapshot) -> None:
        try:
            listener(snapshot)
        except Exception:
            # One faulty observer must not starve the others.
            logger.exception("Snapshot listener %r failed", listener)
