"""Flask REST API exposing the expense recorder over the local record store."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from expense_core.config import Settings, load_settings
from expense_core.exceptions import PersistenceError, RecordNotFoundError, ValidationError
from expense_core.models import CATEGORIES
from expense_core.repository import ExpenseRepository
from expense_core.services import ExpenseCoordinator, total_amount
from expense_core.storage import RecordStore
from expense_core.validators import validate_expense_input

# Generous upper bound for a single store call made on behalf of a request.
STORE_TIMEOUT = 10.0


def create_app(db_path: Optional[Path] = None, settings: Optional[Settings] = None) -> Flask:
    settings = settings or load_settings()
    app = Flask(__name__)

    if settings.is_dev:
        CORS(app, resources={r"/*": {"origins": "*"}}, supports_credentials=True)
    elif settings.allowed_origins:
        CORS(app, resources={r"/*": {"origins": list(settings.allowed_origins)}}, supports_credentials=True)
    else:
        CORS(app)

    store = RecordStore.open(db_path or settings.db_path)
    repository = ExpenseRepository(store)
    coordinator = ExpenseCoordinator(repository)
    allowed = CATEGORIES if settings.strict_categories else None
    app.extensions["expense_recorder"] = {"store": store, "coordinator": coordinator}

    def _success(payload: Any, status: int = 200):
        if status == 204:
            return ("", status)
        return jsonify(payload), status

    def _handle_error(exc: Exception, status: int, message: str):
        app.logger.error("%s: %s", message, exc)
        body: Dict[str, Any] = {"error": message, "details": str(exc)}
        fields = getattr(exc, "fields", ())
        if fields:
            body["fields"] = list(fields)
        return jsonify(body), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return _handle_error(exc, 400, "Validation error")

    @app.errorhandler(RecordNotFoundError)
    def handle_not_found(exc: RecordNotFoundError):
        return _handle_error(exc, 404, "Record not found")

    @app.errorhandler(PersistenceError)
    def handle_persistence_error(exc: PersistenceError):
        return _handle_error(exc, 500, "Persistence error")

    def _json_body() -> Dict[str, Any]:
        if not request.is_json:
            raise ValidationError("Request content must be application/json")
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Malformed JSON body")
        return data

    def _draft_from(payload: Dict[str, Any]):
        return validate_expense_input(
            payload.get("name"),
            payload.get("amount"),
            payload.get("category"),
            payload.get("date"),
            allowed_categories=allowed,
        )

    @app.get("/categories")
    def list_categories():
        return _success({"items": list(CATEGORIES), "strict": settings.strict_categories})

    @app.get("/expenses")
    def list_expenses():
        expenses = repository.read_all()
        return _success({
            "items": [expense.to_dict() for expense in expenses],
            "total": f"{total_amount(expenses):.2f}",
        })

    @app.post("/expenses")
    def create_expense():
        draft = _draft_from(_json_body())
        expense = coordinator.add_expense(draft).result(timeout=STORE_TIMEOUT)
        return _success(expense.to_dict(), 201)

    @app.get("/expenses/<int:expense_id>")
    def get_expense(expense_id: int):
        expense = repository.get(expense_id)
        return _success(expense.to_dict())

    @app.put("/expenses/<int:expense_id>")
    def update_expense(expense_id: int):
        payload = _json_body()
        existing = repository.get(expense_id)
        # Merge existing serialised data with incoming changes to support partial updates.
        merged = {**existing.to_dict(), **payload}
        draft = _draft_from(merged)
        expense = coordinator.update_expense(existing.with_changes(draft)).result(timeout=STORE_TIMEOUT)
        return _success(expense.to_dict())

    @app.delete("/expenses/<int:expense_id>")
    def delete_expense(expense_id: int):
        coordinator.delete_expense(expense_id).result(timeout=STORE_TIMEOUT)
        return _success({}, 204)

    return app


def shutdown_app(app: Flask) -> None:
    """Release the coordinator and store owned by ``app``."""
    resources = app.extensions.pop("expense_recorder", None)
    if resources is None:
        return
    resources["coordinator"].close()
    resources["store"].close()
