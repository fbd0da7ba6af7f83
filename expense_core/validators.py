"""Validation helpers shared by the expense form, row editor and adapters."""

from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from .exceptions import ValidationError
from .models import ExpenseDraft

DATE_FORMAT = "%Y-%m-%d"
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
FORM_ERROR_MESSAGE = "Please fill all fields correctly"


def parse_amount(raw: object, field: str) -> Decimal:
    """Convert raw input to a finite, non-negative Decimal without rounding it."""
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            raise ValidationError(f"{field} cannot be empty", [field])
    try:
        amount = Decimal(str(raw))
    except (InvalidOperation, TypeError) as exc:  # type: ignore[arg-type]
        raise ValidationError(f"{field} must be a numeric value", [field]) from exc

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a numeric value", [field])
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative", [field])
    return amount


def validate_required_str(value: object, field: str) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", [field])
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(f"{field} cannot be empty", [field])
    return trimmed


def validate_date(value: object, field: str) -> str:
    """Accept a real calendar date written exactly as YYYY-MM-DD."""
    text = validate_required_str(value, field)
    message = f"{field} must be a date in YYYY-MM-DD format"
    if not DATE_PATTERN.fullmatch(text):
        raise ValidationError(message, [field])
    try:
        datetime.strptime(text, DATE_FORMAT)
    except ValueError as exc:
        raise ValidationError(message, [field]) from exc
    return text


def validate_category(
    value: object, field: str, allowed: Optional[Iterable[str]] = None
) -> str:
    category = validate_required_str(value, field)
    if allowed is None:
        return category
    # Match case-insensitively but store the canonical spelling.
    canonical = {item.lower(): item for item in allowed}
    try:
        return canonical[category.lower()]
    except KeyError as exc:
        raise ValidationError(
            f"{field} must be one of: {', '.join(canonical.values())}", [field]
        ) from exc


def validate_expense_input(
    name: object,
    amount_text: object,
    category: object,
    date_text: object,
    *,
    allowed_categories: Optional[Iterable[str]] = None,
) -> ExpenseDraft:
    """Validate raw form input and build a draft.

    Every field is checked so that the raised error lists all offending fields,
    but the message shown to the user stays the same generic notice.
    """
    allowed = tuple(allowed_categories) if allowed_categories is not None else None
    checks = (
        ("name", lambda: validate_required_str(name, "name")),
        ("amount", lambda: parse_amount(amount_text, "amount")),
        ("category", lambda: validate_category(category, "category", allowed)),
        ("date", lambda: validate_date(date_text, "date")),
    )

    values = {}
    failed: List[str] = []
    for field, check in checks:
        try:
            values[field] = check()
        except ValidationError:
            failed.append(field)

    if failed:
        raise ValidationError(FORM_ERROR_MESSAGE, failed)
    return ExpenseDraft(**values)
