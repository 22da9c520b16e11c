# Overview: Flask API routes for batches operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import CasaStockError, error_response
from ..services import inventory_service
from ..decorators import require_auth, require_active_subscription


batches_bp = Blueprint("batches", __name__, url_prefix="/api/batches")


@batches_bp.get("")
@require_auth
@require_active_subscription
def list_batches():
    """Batches newest first, with product counts."""
    return jsonify({"items": inventory_service.list_batches(g.owner_id)}), 200


@batches_bp.post("")
@require_auth
@require_active_subscription
def create_batch():
    """Body: {"name"}"""
    data = request.get_json(silent=True) or {}
    try:
        batch = inventory_service.create_batch(g.owner_id, data.get("name"))
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create batch")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"batch": batch.to_dict()}), 201


@batches_bp.patch("/<int:batch_id>")
@require_auth
@require_active_subscription
def rename_batch(batch_id: int):
    data = request.get_json(silent=True) or {}
    try:
        batch = inventory_service.rename_batch(g.owner_id, batch_id, data.get("name"))
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to rename batch %s", batch_id)
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"batch": batch.to_dict()}), 200


@batches_bp.delete("/<int:batch_id>")
@require_auth
@require_active_subscription
def delete_batch(batch_id: int):
    """Products in the batch are kept, with batch_id cleared."""
    try:
        inventory_service.delete_batch(g.owner_id, batch_id)
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete batch %s", batch_id)
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"message": "Batch deleted"}), 200
