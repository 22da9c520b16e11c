# Overview: Flask API routes for orders operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import CasaStockError, error_response
from ..services import order_service
from ..decorators import require_auth, require_active_subscription


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.get("")
@require_auth
@require_active_subscription
def list_orders():
    """
    Orders newest first, with lines and totals.

    Query params:
    - search: str (optional) - matches any line's product name
    """
    orders = order_service.list_orders(g.owner_id, search=request.args.get("search"))
    return jsonify({"items": [o.to_dict() for o in orders]}), 200


@orders_bp.post("")
@require_auth
@require_active_subscription
def place_order():
    """
    Place a multi-item order.

    Body: {"address", "shipping_charge_cents"?,
           "lines": [{"product_id", "quantity", "selling_price_cents"}, ...]}

    400 with details.items when the aggregate demand exceeds stock.
    """
    data = request.get_json(silent=True) or {}
    try:
        order = order_service.place_order(
            g.owner_id,
            address=data.get("address"),
            lines=data.get("lines"),
            shipping_charge_cents=data.get("shipping_charge_cents", 0),
        )
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to place order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"order": order.to_dict()}), 201


@orders_bp.get("/<int:order_id>")
@require_auth
@require_active_subscription
def get_order(order_id: int):
    try:
        order = order_service.get_order(g.owner_id, order_id)
    except CasaStockError as e:
        return error_response(e)
    return jsonify({"order": order.to_dict()}), 200
