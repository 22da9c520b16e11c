# Overview: Flask API routes for capital operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import CasaStockError, error_response
from ..services import ledger_service
from ..decorators import require_auth, require_active_subscription


capital_bp = Blueprint("capital", __name__, url_prefix="/api/capital")


@capital_bp.get("")
@require_auth
@require_active_subscription
def get_capital():
    """Current balance, or null when capital was never set."""
    entry = ledger_service.get_current_capital(g.owner_id)
    return jsonify({"capital": entry.to_dict() if entry else None}), 200


@capital_bp.post("")
@require_auth
@require_active_subscription
def adjust_capital():
    """
    Add or withdraw capital.

    Body: {"amount_cents": int (may be negative), "note"?}
    The first call sets the initial capital.
    """
    data = request.get_json(silent=True) or {}
    if "amount_cents" not in data:
        return jsonify({"error": "amount_cents is required"}), 400
    try:
        entry = ledger_service.adjust_capital(g.owner_id, data.get("amount_cents"), note=data.get("note"))
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust capital")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"capital": entry.to_dict()}), 201


@capital_bp.get("/history")
@require_auth
@require_active_subscription
def capital_history():
    """Query params: limit (default 50, max 500)."""
    limit = request.args.get("limit", default=50, type=int)
    entries = ledger_service.list_capital_history(g.owner_id, limit=limit)
    return jsonify({"items": [e.to_dict() for e in entries]}), 200
