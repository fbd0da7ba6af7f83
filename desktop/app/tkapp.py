"""Tkinter desktop application for the expense recorder."""

from __future__ import annotations

import argparse
import logging
import queue
import tkinter as tk
from dataclasses import replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from tkinter import messagebox, ttk
from typing import Callable, Iterable, List, Optional, Tuple

from expense_core.config import Settings, configure_logging, load_settings
from expense_core.exceptions import PersistenceError, RecordNotFoundError, ValidationError
from expense_core.models import CATEGORIES, format_amount
from expense_core.presenters import ExpenseForm, ExpenseListPresenter, ExpenseRow
from expense_core.repository import ExpenseRepository
from expense_core.services import ExpenseCoordinator
from expense_core.storage import RecordStore

logger = logging.getLogger(__name__)

PRIMARY_BG = "#0f172a"
SECONDARY_BG = "#1e293b"
ACCENT_BG = "#1d4ed8"
ACCENT_ACTIVE_BG = "#2563eb"
TEXT_PRIMARY = "#e2e8f0"
TEXT_MUTED = "#94a3b8"

POLL_INTERVAL_MS = 100


def sanitize_amount_input(raw: str) -> str:
    if raw is None:
        return ""
    cleaned = raw.replace(",", "").strip()
    return cleaned


def format_amount_display(value: Decimal | str) -> str:
    if isinstance(value, Decimal):
        return format_amount(value)
    sanitized = sanitize_amount_input(value)
    if not sanitized:
        return ""
    try:
        amount = Decimal(sanitized)
    except InvalidOperation:
        return value.strip()
    return format_amount(amount)


class ExpenseTab(ttk.Frame):
    """Add form, expense list and the edit panel for the selected row."""

    def __init__(
        self,
        master: tk.Misc,
        coordinator: ExpenseCoordinator,
        *,
        strict_categories: bool,
        on_change: Callable[[], None],
    ) -> None:
        super().__init__(master, padding=16, style="Panel.TFrame")
        self.coordinator = coordinator
        self.on_change = on_change
        allowed = CATEGORIES if strict_categories else None
        self.strict_categories = strict_categories

        self.form = ExpenseForm(coordinator, allowed_categories=allowed)
        self.presenter = ExpenseListPresenter(
            coordinator, allowed_categories=allowed, on_change=self._schedule_populate
        )
        # Snapshots arrive on the store worker thread; tkinter is only touched here.
        self._events: "queue.Queue[Tuple[str, object]]" = queue.Queue()

        self.name_var = tk.StringVar()
        self.amount_var = tk.StringVar()
        self.category_var = tk.StringVar()
        self.date_var = tk.StringVar(value=self.form.date)

        self.edit_name_var = tk.StringVar()
        self.edit_amount_var = tk.StringVar()
        self.edit_category_var = tk.StringVar()
        self.edit_date_var = tk.StringVar()
        self.editing_row: Optional[ExpenseRow] = None

        self._build_form()
        self._build_table()
        self._build_edit_panel()
        self.columnconfigure(0, weight=1)
        self.rowconfigure(1, weight=1)

        coordinator.on_error(lambda exc: self._events.put(("error", exc)))
        self.presenter.attach()
        self._poll_id: Optional[str] = self.after(POLL_INTERVAL_MS, self._drain_events)

    def destroy(self) -> None:
        if self._poll_id is not None:
            self.after_cancel(self._poll_id)
            self._poll_id = None
        super().destroy()

    def _build_form(self) -> None:
        form = ttk.LabelFrame(self, text="Add Expense", style="Card.TLabelframe")
        form.grid(row=0, column=0, sticky="ew", padx=4, pady=(0, 12))
        form.columnconfigure(0, weight=1)
        form.columnconfigure(1, weight=1)

        def add_field(label: str, var: tk.StringVar, column: int, row: int) -> ttk.Entry:
            ttk.Label(form, text=label, style="FormLabel.TLabel").grid(
                column=column, row=row, sticky="w", padx=4, pady=4
            )
            entry = ttk.Entry(form, textvariable=var, style="App.TEntry")
            entry.grid(column=column, row=row + 1, sticky="ew", padx=4, pady=(0, 8))
            return entry

        add_field("Name", self.name_var, 0, 0)
        amount_entry = add_field("Amount", self.amount_var, 1, 0)
        amount_entry.bind("<FocusOut>", self._handle_amount_focus_out)

        ttk.Label(form, text="Category", style="FormLabel.TLabel").grid(
            column=0, row=2, sticky="w", padx=4, pady=4
        )
        self._category_combo(form, self.category_var).grid(
            column=0, row=3, sticky="ew", padx=4, pady=(0, 8)
        )
        add_field("Date (YYYY-MM-DD)", self.date_var, 1, 2)

        button_row = ttk.Frame(form, style="Panel.TFrame")
        button_row.grid(column=0, row=4, columnspan=2, sticky="e", padx=4, pady=4)
        ttk.Button(
            button_row,
            text="Reset",
            command=self.reset_form,
            style="Secondary.TButton",
        ).grid(column=0, row=0, padx=4)
        ttk.Button(
            button_row,
            text="Add Expense",
            command=self.submit,
            style="Primary.TButton",
        ).grid(column=1, row=0, padx=4)

    def _build_table(self) -> None:
        table_frame = ttk.Frame(self, style="Panel.TFrame")
        table_frame.grid(row=1, column=0, sticky="nsew")
        table_frame.columnconfigure(0, weight=1)
        table_frame.rowconfigure(0, weight=1)

        columns = ("name", "amount", "category", "date")
        self.tree = ttk.Treeview(
            table_frame,
            columns=columns,
            show="headings",
            height=10,
            style="App.Treeview",
            selectmode="browse",
        )
        headings = {
            "name": "Name",
            "amount": "Amount",
            "category": "Category",
            "date": "Date",
        }
        for key, label in headings.items():
            width = 220 if key == "name" else 120
            self.tree.heading(key, text=label, anchor="w")
            self.tree.column(key, width=width, anchor="w")

        vsb = ttk.Scrollbar(table_frame, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscroll=vsb.set)

        self.tree.grid(row=0, column=0, sticky="nsew")
        vsb.grid(row=0, column=1, sticky="ns")
        self.tree.bind("<Double-1>", lambda _event: self.edit_selected())

        button_bar = ttk.Frame(table_frame, style="Panel.TFrame")
        button_bar.grid(row=1, column=0, columnspan=2, sticky="e", pady=8)
        ttk.Button(
            button_bar,
            text="Edit Selected",
            command=self.edit_selected,
            style="Secondary.TButton",
        ).grid(row=0, column=0, padx=4)
        ttk.Button(
            button_bar,
            text="Delete Selected",
            command=self.delete_selected,
            style="Secondary.TButton",
        ).grid(row=0, column=1, padx=4)

    def _build_edit_panel(self) -> None:
        self.edit_panel = ttk.LabelFrame(self, text="Edit Expense", style="Card.TLabelframe")
        panel = self.edit_panel
        for column in range(4):
            panel.columnconfigure(column, weight=1)

        entries = (
            ("Name", self.edit_name_var),
            ("Amount", self.edit_amount_var),
            ("Category", self.edit_category_var),
            ("Date (YYYY-MM-DD)", self.edit_date_var),
        )
        for column, (label, var) in enumerate(entries):
            ttk.Label(panel, text=label, style="FormLabel.TLabel").grid(
                column=column, row=0, sticky="w", padx=4, pady=4
            )
            if var is self.edit_category_var:
                widget: tk.Widget = self._category_combo(panel, var)
            else:
                widget = ttk.Entry(panel, textvariable=var, style="App.TEntry")
            widget.grid(column=column, row=1, sticky="ew", padx=4, pady=(0, 8))

        button_row = ttk.Frame(panel, style="Panel.TFrame")
        button_row.grid(column=0, row=2, columnspan=4, sticky="e", padx=4, pady=4)
        ttk.Button(
            button_row,
            text="Cancel",
            command=self.cancel_edit,
            style="Secondary.TButton",
        ).grid(column=0, row=0, padx=4)
        ttk.Button(
            button_row,
            text="Save",
            command=self.save_edit,
            style="Primary.TButton",
        ).grid(column=1, row=0, padx=4)

    def _category_combo(self, parent: tk.Misc, var: tk.StringVar) -> ttk.Combobox:
        return ttk.Combobox(
            parent,
            textvariable=var,
            values=list(CATEGORIES),
            state="readonly" if self.strict_categories else "normal",
            style="App.TCombobox",
        )

    # Form -----------------------------------------------------------------
    def submit(self) -> None:
        self.form.name = self.name_var.get()
        self.form.amount = sanitize_amount_input(self.amount_var.get())
        self.form.category = self.category_var.get()
        self.form.date = self.date_var.get()
        try:
            self.form.submit()
        except ValidationError as exc:
            messagebox.showerror("Invalid Expense", str(exc), parent=self)
            return
        except RuntimeError as exc:
            messagebox.showerror("Unavailable", str(exc), parent=self)
            return
        self._sync_form_vars()

    def reset_form(self) -> None:
        self.form.reset()
        self._sync_form_vars()

    def _sync_form_vars(self) -> None:
        self.name_var.set(self.form.name)
        self.amount_var.set(self.form.amount)
        self.category_var.set(self.form.category)
        self.date_var.set(self.form.date)

    def _handle_amount_focus_out(self, _event: object) -> None:
        self.amount_var.set(format_amount_display(self.amount_var.get()))

    # List -----------------------------------------------------------------
    def _selected_row(self) -> Optional[ExpenseRow]:
        selection = self.tree.selection()
        if not selection:
            return None
        try:
            return self.presenter.row(int(selection[0]))
        except KeyError:
            return None

    def edit_selected(self) -> None:
        row = self._selected_row()
        if row is None:
            messagebox.showinfo("No selection", "Please select an expense to edit.", parent=self)
            return
        if self.editing_row is not None and self.editing_row is not row:
            self.editing_row.cancel()
        row.start_edit()
        self.editing_row = row
        self.edit_name_var.set(row.draft["name"])
        self.edit_amount_var.set(row.draft["amount"])
        self.edit_category_var.set(row.draft["category"])
        self.edit_date_var.set(row.draft["date"])
        self.edit_panel.grid(row=2, column=0, sticky="ew", padx=4, pady=(12, 0))

    def save_edit(self) -> None:
        row = self.editing_row
        if row is None:
            return
        row.set_field("name", self.edit_name_var.get())
        row.set_field("amount", sanitize_amount_input(self.edit_amount_var.get()))
        row.set_field("category", self.edit_category_var.get())
        row.set_field("date", self.edit_date_var.get())
        try:
            row.save()
        except ValidationError as exc:
            messagebox.showerror("Invalid Expense", str(exc), parent=self)
            return
        except RuntimeError as exc:
            messagebox.showerror("Unavailable", str(exc), parent=self)
            return
        self._close_edit_panel()

    def cancel_edit(self) -> None:
        if self.editing_row is not None:
            self.editing_row.cancel()
        self._close_edit_panel()

    def _close_edit_panel(self) -> None:
        self.editing_row = None
        self.edit_panel.grid_remove()

    def delete_selected(self) -> None:
        row = self._selected_row()
        if row is None:
            messagebox.showinfo("No selection", "Please select an expense to delete.", parent=self)
            return
        if row is self.editing_row:
            self.cancel_edit()
        try:
            row.delete()
        except RuntimeError as exc:
            messagebox.showerror("Unavailable", str(exc), parent=self)

    def populate(self, rows: Iterable[ExpenseRow]) -> None:
        selected = self.tree.selection()
        self.tree.delete(*self.tree.get_children())
        for row in rows:
            self.tree.insert("", "end", iid=str(row.record.id), values=row.display())
        still_present = [iid for iid in selected if self.tree.exists(iid)]
        if still_present:
            self.tree.selection_set(still_present)
        if self.editing_row is not None and not self.tree.exists(str(self.editing_row.record.id)):
            self._close_edit_panel()
        self.on_change()

    def _schedule_populate(self, rows: List[ExpenseRow]) -> None:
        self._events.put(("rows", rows))

    def _drain_events(self) -> None:
        try:
            while True:
                kind, payload = self._events.get_nowait()
                if kind == "rows":
                    self.populate(payload)  # type: ignore[arg-type]
                elif kind == "error":
                    self._show_error(payload)  # type: ignore[arg-type]
        except queue.Empty:
            pass
        self._poll_id = self.after(POLL_INTERVAL_MS, self._drain_events)

    def _show_error(self, exc: Exception) -> None:
        if isinstance(exc, ValidationError):
            messagebox.showerror("Invalid Expense", str(exc), parent=self)
        elif isinstance(exc, RecordNotFoundError):
            messagebox.showwarning("Not Found", str(exc), parent=self)
        elif isinstance(exc, PersistenceError):
            messagebox.showerror("Storage Error", str(exc), parent=self)
        else:
            messagebox.showerror("Error", f"Unexpected error: {exc}", parent=self)


class ExpenseRecorderApp(tk.Tk):
    """Main application window."""

    def __init__(self, settings: Settings) -> None:
        super().__init__()
        self.title("Expense Recorder")
        self.geometry("900x640")
        self.minsize(760, 560)
        self.configure(bg=PRIMARY_BG)

        self._configure_styles()

        self.store = RecordStore.open(settings.db_path)
        self.coordinator = ExpenseCoordinator(ExpenseRepository(self.store))

        self.total_var = tk.StringVar(value="0.00")
        self.count_var = tk.StringVar(value="0")

        self._build_layout(settings)
        self.protocol("WM_DELETE_WINDOW", self.shutdown)

    def _configure_styles(self) -> None:
        style = ttk.Style(self)
        try:
            style.theme_use("clam")
        except tk.TclError:
            pass

        style.configure("TFrame", background=PRIMARY_BG)
        style.configure("TLabel", background=PRIMARY_BG, foreground=TEXT_PRIMARY)

        style.configure("Panel.TFrame", background=SECONDARY_BG, relief="flat")
        style.configure("Card.TLabelframe", background=SECONDARY_BG, foreground=TEXT_PRIMARY)
        style.configure("Card.TLabelframe.Label", background=SECONDARY_BG, foreground=TEXT_PRIMARY)
        style.configure("Header.TFrame", background=PRIMARY_BG)
        style.configure("Summary.TFrame", background=SECONDARY_BG)
        style.configure("Metric.TFrame", background=SECONDARY_BG)

        style.configure("FormLabel.TLabel", background=SECONDARY_BG, foreground=TEXT_MUTED, font=("Segoe UI", 9))
        style.configure("Header.TLabel", background=PRIMARY_BG, foreground=TEXT_PRIMARY, font=("Segoe UI", 20, "bold"))
        style.configure("MetricLabel.TLabel", background=SECONDARY_BG, foreground=TEXT_MUTED, font=("Segoe UI", 9, "bold"))
        style.configure("MetricValue.TLabel", background=SECONDARY_BG, foreground=TEXT_PRIMARY, font=("Segoe UI", 16, "bold"))

        style.configure(
            "App.TEntry",
            fieldbackground=SECONDARY_BG,
            background=SECONDARY_BG,
            foreground=TEXT_PRIMARY,
            insertcolor=TEXT_PRIMARY,
            bordercolor=ACCENT_BG,
        )
        style.configure(
            "App.TCombobox",
            fieldbackground=SECONDARY_BG,
            background=SECONDARY_BG,
            foreground=TEXT_PRIMARY,
            arrowcolor=TEXT_PRIMARY,
        )
        style.map(
            "App.TCombobox",
            fieldbackground=[("readonly", SECONDARY_BG)],
            foreground=[("disabled", TEXT_MUTED)],
        )

        style.configure(
            "Primary.TButton",
            background=ACCENT_BG,
            foreground=TEXT_PRIMARY,
            bordercolor=ACCENT_BG,
            padding=(18, 6),
        )
        style.map("Primary.TButton", background=[("active", ACCENT_ACTIVE_BG)])
        style.configure(
            "Secondary.TButton",
            background=SECONDARY_BG,
            foreground=TEXT_PRIMARY,
            bordercolor=SECONDARY_BG,
            padding=(14, 6),
        )
        style.map("Secondary.TButton", background=[("active", ACCENT_BG)])

        style.configure(
            "App.Treeview",
            background=SECONDARY_BG,
            fieldbackground=SECONDARY_BG,
            foreground=TEXT_PRIMARY,
            bordercolor=SECONDARY_BG,
            rowheight=28,
        )
        style.configure("App.Treeview.Heading", background=SECONDARY_BG, foreground=TEXT_MUTED, relief="flat")
        style.map(
            "App.Treeview",
            background=[("selected", ACCENT_BG)],
            foreground=[("selected", TEXT_PRIMARY)],
        )

    def _build_layout(self, settings: Settings) -> None:
        self.columnconfigure(0, weight=1)
        self.rowconfigure(2, weight=1)

        header = ttk.Frame(self, padding=20, style="Header.TFrame")
        header.grid(row=0, column=0, sticky="ew")
        ttk.Label(header, text="Expense Recorder", style="Header.TLabel").grid(row=0, column=0, sticky="w")

        summary = ttk.Frame(self, padding=(20, 10), style="Summary.TFrame")
        summary.grid(row=1, column=0, sticky="ew")
        summary.columnconfigure((0, 1), weight=1)

        def build_metric(column: int, label: str, var: tk.StringVar) -> None:
            container = ttk.Frame(summary, style="Metric.TFrame", padding=(16, 12))
            container.grid(row=0, column=column, sticky="ew", padx=6)
            ttk.Label(container, text=label, style="MetricLabel.TLabel").grid(row=0, column=0, sticky="w")
            ttk.Label(container, textvariable=var, style="MetricValue.TLabel").grid(row=1, column=0, sticky="w")

        build_metric(0, "Total Spent", self.total_var)
        build_metric(1, "Expenses", self.count_var)

        self.expense_tab = ExpenseTab(
            self,
            self.coordinator,
            strict_categories=settings.strict_categories,
            on_change=self.refresh_summary,
        )
        self.expense_tab.grid(row=2, column=0, sticky="nsew")

    def refresh_summary(self) -> None:
        expenses = self.coordinator.expenses
        self.total_var.set(format_amount(self.coordinator.total))
        self.count_var.set(str(len(expenses)))

    def shutdown(self) -> None:
        self.expense_tab.presenter.detach()
        self.coordinator.close()
        self.store.close()
        self.destroy()


def main(argv: Optional[Iterable[str]] = None) -> None:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Tkinter desktop app for the expense recorder")
    parser.add_argument(
        "--db",
        default=settings.db_path,
        type=Path,
        help=f"SQLite database file (default: {settings.db_path})",
    )
    parser.add_argument(
        "--strict-categories",
        action=argparse.BooleanOptionalAction,
        default=settings.strict_categories,
        help="Only accept the predefined categories",
    )
    args = parser.parse_args(list(argv) if argv is not None else None)
    configure_logging(settings.log_level)

    settings = replace(settings, db_path=args.db, strict_categories=args.strict_categories)
    try:
        app = ExpenseRecorderApp(settings)
    except PersistenceError as exc:
        logger.error("Unable to open the expense database: %s", exc)
        raise SystemExit(1) from exc
    app.mainloop()


if __name__ == "__main__":  # pragma: no cover - manual execution
    main()
