"""Toolkit-independent form and list state bound by the desktop UI."""

from __future__ import annotations

import enum
import logging
from concurrent.futures import Future
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .exceptions import ValidationError
from .models import ExpenseRecord, format_amount
from .repository import Snapshot, Subscription
from .services import ExpenseCoordinator
from .validators import validate_expense_input

logger = logging.getLogger(__name__)

Today = Callable[[], date]


class ExpenseForm:
    """State and submit action of the "Add Expense" form."""

    def __init__(
        self,
        coordinator: ExpenseCoordinator,
        *,
        allowed_categories: Optional[Iterable[str]] = None,
        today: Today = date.today,
    ) -> None:
        self._coordinator = coordinator
        self._allowed = tuple(allowed_categories) if allowed_categories is not None else None
        self._today = today
        self.name = ""
        self.amount = ""
        self.category = ""
        self.date = today().isoformat()
        self.error: Optional[str] = None

    def submit(self) -> "Future[ExpenseRecord]":
        """Validate, request the insert and reset the form.

        On invalid input the fields are kept for correction, ``error`` holds the
        notice and the ``ValidationError`` is re-raised.
        """
        try:
            draft = validate_expense_input(
                self.name,
                self.amount,
                self.category,
                self.date,
                allowed_categories=self._allowed,
            )
        except ValidationError as exc:
            self.error = str(exc)
            logger.debug("Rejected form input, invalid fields: %s", ", ".join(exc.fields))
            raise
        future = self._coordinator.add_expense(draft)
        self.reset()
        return future

    def reset(self) -> None:
        self.name = ""
        self.amount = ""
        self.category = ""
        self.date = self._today().isoformat()
        self.error = None


class RowState(enum.Enum):
    VIEWING = "viewing"
    EDITING = "editing"


class ExpenseRow:
    """One displayed record with its viewing/editing state machine."""

    def __init__(
        self,
        record: ExpenseRecord,
        coordinator: ExpenseCoordinator,
        allowed_categories: Optional[Tuple[str, ...]] = None,
    ) -> None:
        self.record = record
        self.state = RowState.VIEWING
        self.draft: Dict[str, str] = {}
        self.error: Optional[str] = None
        self._coordinator = coordinator
        self._allowed = allowed_categories

    @property
    def editing(self) -> bool:
        return self.state is RowState.EDITING

    def start_edit(self) -> None:
        self.draft = {
            "name": self.record.name,
            "amount": str(self.record.amount),
            "category": self.record.category,
            "date": self.record.date,
        }
        self.error = None
        self.state = RowState.EDITING

    def set_field(self, field: str, value: str) -> None:
        if not self.editing:
            raise RuntimeError("Row is not being edited")
        if field not in self.draft:
            raise KeyError(field)
        self.draft[field] = value

    def save(self) -> "Future[ExpenseRecord]":
        """Submit the draft; an invalid draft keeps the row in editing state."""
        if not self.editing:
            raise RuntimeError("Row is not being edited")
        try:
            draft = validate_expense_input(
                self.draft["name"],
                self.draft["amount"],
                self.draft["category"],
                self.draft["date"],
                allowed_categories=self._allowed,
            )
        except ValidationError as exc:
            self.error = str(exc)
            raise
        future = self._coordinator.update_expense(self.record.with_changes(draft))
        self.state = RowState.VIEWING
        self.draft = {}
        self.error = None
        return future

    def cancel(self) -> None:
        self.state = RowState.VIEWING
        self.draft = {}
        self.error = None

    def delete(self) -> "Future[None]":
        return self._coordinator.delete_expense(self.record)

    def display(self) -> Tuple[str, str, str, str]:
        return (
            self.record.name,
            format_amount(self.record.amount),
            self.record.category,
            self.record.date,
        )


class ExpenseListPresenter:
    """Keeps one ``ExpenseRow`` per record in the coordinator's snapshot."""

    def __init__(
        self,
        coordinator: ExpenseCoordinator,
        *,
        allowed_categories: Optional[Iterable[str]] = None,
        on_change: Optional[Callable[[List[ExpenseRow]], None]] = None,
    ) -> None:
        self._coordinator = coordinator
        self._allowed = tuple(allowed_categories) if allowed_categories is not None else None
        self._on_change = on_change
        self._rows: Dict[int, ExpenseRow] = {}
        self._order: List[int] = []
        self._subscription: Optional[Subscription] = None

    def attach(self) -> None:
        if self._subscription is None:
            self._subscription = self._coordinator.observe(self.apply_snapshot)

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    @property
    def rows(self) -> List[ExpenseRow]:
        return [self._rows[record_id] for record_id in self._order]

    def row(self, record_id: int) -> ExpenseRow:
        return self._rows[record_id]

    def apply_snapshot(self, snapshot: Snapshot) -> None:
        rows: Dict[int, ExpenseRow] = {}
        for record in snapshot:
            row = self._rows.get(record.id)
            if row is None:
                row = ExpenseRow(record, self._coordinator, self._allowed)
            else:
                # Edits in progress keep their draft; only the source record moves on.
                row.record = record
            rows[record.id] = row
        self._rows = rows
        self._order = [record.id for record in snapshot]
        if self._on_change is not None:
            self._on_change(self.rows)
