"""Data models for the expense recorder domain."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Mapping

__all__ = ["CATEGORIES", "ExpenseDraft", "ExpenseRecord", "format_amount"]

# Choices offered by the category selector.
CATEGORIES = (
    "Food",
    "Apartment",
    "Transport",
    "Fees",
    "Health",
    "Social",
    "Shopping",
    "Travel",
    "Others",
)


def format_amount(amount: Decimal) -> str:
    """Render an amount for display with thousands separators and two decimals."""
    return f"{amount:,.2f}"


@dataclass(frozen=True)
class ExpenseDraft:
    """An expense awaiting its store-assigned id."""

    name: str
    amount: Decimal
    category: str
    date: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "amount": str(self.amount),
            "category": self.category,
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExpenseDraft":
        return cls(
            name=data["name"],
            amount=Decimal(str(data["amount"])),
            category=data["category"],
            date=data["date"],
        )


@dataclass(frozen=True)
class ExpenseRecord:
    id: int
    name: str
    amount: Decimal
    category: str
    date: str

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the record to JSON-friendly natives."""
        return {
            "id": self.id,
            "name": self.name,
            "amount": str(self.amount),
            "category": self.category,
            "date": self.date,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExpenseRecord":
        """Hydrate a record from JSON-native data or a database row."""
        return cls(
            id=int(data["id"]),
            name=data["name"],
            amount=Decimal(str(data["amount"])),
            category=data["category"],
            date=data["date"],
        )

    @classmethod
    def from_draft(cls, record_id: int, draft: ExpenseDraft) -> "ExpenseRecord":
        return cls(
            id=record_id,
            name=draft.name,
            amount=draft.amount,
            category=draft.category,
            date=draft.date,
        )

    def with_changes(self, draft: ExpenseDraft) -> "ExpenseRecord":
        """Return a copy carrying the draft's field values under this record's id."""
        return ExpenseRecord.from_draft(self.id, draft)

    def as_draft(self) -> ExpenseDraft:
        return ExpenseDraft(
            name=self.name, amount=self.amount, category=self.category, date=self.date
        )
