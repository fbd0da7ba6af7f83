"""Core business logic package for the expense recorder."""

from .exceptions import PersistenceError, RecordNotFoundError, ValidationError
from .models import CATEGORIES, ExpenseDraft, ExpenseRecord
from .presenters import ExpenseForm, ExpenseListPresenter, ExpenseRow, RowState
from .repository import ExpenseRepository, Subscription
from .services import ExpenseCoordinator
from .storage import RecordStore
from .validators import FORM_ERROR_MESSAGE, validate_expense_input

__all__ = [
    "CATEGORIES",
    "ExpenseDraft",
    "ExpenseRecord",
    "ExpenseForm",
    "ExpenseListPresenter",
    "ExpenseRow",
    "RowState",
    "ExpenseRepository",
    "Subscription",
    "ExpenseCoordinator",
    "RecordStore",
    "FORM_ERROR_MESSAGE",
    "validate_expense_input",
    "PersistenceError",
    "ValidationError",
    "RecordNotFoundError",
]
