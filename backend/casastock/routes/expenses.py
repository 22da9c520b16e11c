# Overview: Flask API routes for expenses operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import CasaStockError, error_response
from ..services import expense_service
from ..decorators import require_auth, require_active_subscription


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
@require_active_subscription
def list_expenses():
    expenses = expense_service.list_expenses(g.owner_id)
    return jsonify({"items": [e.to_dict() for e in expenses]}), 200


@expenses_bp.post("")
@require_auth
@require_active_subscription
def record_expense():
    """Body: {"expense_type", "amount_cents"}. Debits capital."""
    data = request.get_json(silent=True) or {}
    try:
        expense = expense_service.record_expense(
            g.owner_id, data.get("expense_type"), data.get("amount_cents")
        )
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record expense")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"expense": expense.to_dict()}), 201


@expenses_bp.patch("/<int:expense_id>")
@require_auth
@require_active_subscription
def update_expense(expense_id: int):
    """Capital moves by the difference between the new and old amounts."""
    data = request.get_json(silent=True) or {}
    try:
        expense = expense_service.update_expense(
            g.owner_id, expense_id, data.get("expense_type"), data.get("amount_cents")
        )
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update expense %s", expense_id)
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"expense": expense.to_dict()}), 200


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_active_subscription
def delete_expense(expense_id: int):
    """Credits the deleted amount back to capital."""
    try:
        expense_service.delete_expense(g.owner_id, expense_id)
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete expense %s", expense_id)
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"message": "Expense deleted"}), 200
