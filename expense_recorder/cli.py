"""Console interface for the expense recorder."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from expense_core.config import Settings, configure_logging, load_settings
from expense_core.exceptions import PersistenceError, RecordNotFoundError, ValidationError
from expense_core.models import CATEGORIES, ExpenseRecord, format_amount
from expense_core.repository import ExpenseRepository
from expense_core.services import ExpenseCoordinator, total_amount
from expense_core.storage import RecordStore
from expense_core.validators import validate_expense_input

logger = logging.getLogger(__name__)


def _format_expense(expense: ExpenseRecord) -> str:
    return (
        f"[{expense.id}] {expense.date} {format_amount(expense.amount)}\n"
        f"  Name: {expense.name} | Category: {expense.category}\n"
    )


def handle_add(
    args: argparse.Namespace,
    coordinator: ExpenseCoordinator,
    allowed: Optional[Sequence[str]],
) -> None:
    draft = validate_expense_input(
        args.name, args.amount, args.category, args.date, allowed_categories=allowed
    )
    expense = coordinator.add_expense(draft).result()
    print("Expense added:\n" + _format_expense(expense))


def handle_list(args: argparse.Namespace, coordinator: ExpenseCoordinator) -> None:
    expenses = coordinator.expenses
    if args.category:
        wanted = args.category.strip().lower()
        expenses = [expense for expense in expenses if expense.category.lower() == wanted]
    if not expenses:
        print("No expenses found.")
        return
    total = total_amount(expenses)
    print(f"Found {len(expenses)} expenses (total {format_amount(total)}):")
    for expense in expenses:
        print(_format_expense(expense))


def handle_edit(
    args: argparse.Namespace,
    repository: ExpenseRepository,
    coordinator: ExpenseCoordinator,
    allowed: Optional[Sequence[str]],
) -> None:
    existing = repository.get(args.id)
    draft = validate_expense_input(
        args.name if args.name is not None else existing.name,
        args.amount if args.amount is not None else str(existing.amount),
        args.category if args.category is not None else existing.category,
        args.date if args.date is not None else existing.date,
        allowed_categories=allowed,
    )
    expense = coordinator.update_expense(existing.with_changes(draft)).result()
    print("Expense updated:\n" + _format_expense(expense))


def handle_delete(args: argparse.Namespace, coordinator: ExpenseCoordinator) -> None:
    coordinator.delete_expense(args.id).result()
    print(f"Expense {args.id} deleted.")


def build_parser(settings: Optional[Settings] = None) -> argparse.ArgumentParser:
    settings = settings or load_settings()
    parser = argparse.ArgumentParser(description="Expense Recorder CLI")
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
    parser.add_argument("--log-level", default=settings.log_level, help="Logging level (default: %(default)s)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    add = subparsers.add_parser("add", help="Record a new expense")
    add.add_argument("name")
    add.add_argument("amount")
    add.add_argument("category")
    add.add_argument("date", help="YYYY-MM-DD")

    listing = subparsers.add_parser("list", help="List expenses")
    listing.add_argument("--category")

    edit = subparsers.add_parser("edit", help="Edit an existing expense")
    edit.add_argument("id", type=int)
    edit.add_argument("--name")
    edit.add_argument("--amount")
    edit.add_argument("--category")
    edit.add_argument("--date")

    delete = subparsers.add_parser("delete", help="Delete an expense")
    delete.add_argument("id", type=int)

    subparsers.add_parser("categories", help="Show the predefined categories")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "categories":
        for category in CATEGORIES:
            print(category)
        return 0

    allowed = CATEGORIES if args.strict_categories else None
    try:
        with RecordStore.open(args.db) as store:
            repository = ExpenseRepository(store)
            with ExpenseCoordinator(repository) as coordinator:
                if args.command == "add":
                    handle_add(args, coordinator, allowed)
                elif args.command == "list":
                    handle_list(args, coordinator)
                elif args.command == "edit":
                    handle_edit(args, repository, coordinator, allowed)
                elif args.command == "delete":
                    handle_delete(args, coordinator)
                else:  # pragma: no cover - argparse should prevent this
                    parser.error(f"Unknown command: {args.command}")
                    return 2
    except ValidationError as exc:
        detail = f" ({', '.join(exc.fields)})" if exc.fields else ""
        print(f"Validation error: {exc}{detail}", file=sys.stderr)
        return 1
    except RecordNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except PersistenceError as exc:
        logger.debug("Storage failure", exc_info=True)
        print(f"Storage error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
