"""Shared fixtures: a fresh database file per test."""

from decimal import Decimal

import pytest

from expense_core.models import ExpenseDraft
from expense_core.repository import ExpenseRepository
from expense_core.services import ExpenseCoordinator
from expense_core.storage import RecordStore


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "expenses.db"


@pytest.fixture
def store(db_path):
    with RecordStore.open(db_path) as opened:
        yield opened


@pytest.fixture
def repository(store):
    return ExpenseRepository(store)


@pytest.fixture
def coordinator(repository):
    with ExpenseCoordinator(repository) as running:
        yield running


@pytest.fixture
def coffee():
    return ExpenseDraft(name="Coffee", amount=Decimal("4.50"), category="Food", date="2024-01-05")


@pytest.fixture
def rent():
    return ExpenseDraft(name="Rent", amount=Decimal("950.00"), category="Apartment", date="2024-01-01")
