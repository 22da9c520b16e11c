# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product and stock routes.

All routes are owner-scoped (g.owner_id, set by @require_auth) and
require an active subscription.

POST registers a stock purchase: the product is created and capital is
debited by buying_price_cents x quantity in the same transaction.
"""
from flask import Blueprint, request, jsonify, current_app, g

from ..errors import CasaStockError, error_response
from ..models import Product
from ..services import inventory_service
from ..validation import ModelValidationPolicy, validate_payload, enforce_rules_product
from ..decorators import require_auth, require_active_subscription

PRODUCT_PATCH_POLICY = ModelValidationPolicy(
    writable_fields=set(inventory_service.PRODUCT_MUTABLE_FIELDS),
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
@require_active_subscription
def list_products():
    """
    List products newest first.

    Query params:
    - search: str (optional) - case-insensitive name match
    """
    products = inventory_service.list_products(g.owner_id, search=request.args.get("search"))
    return jsonify({"items": [p.to_dict() for p in products]}), 200


@products_bp.get("/stock-summary")
@require_auth
@require_active_subscription
def stock_summary():
    """Restock reminder: remaining share of all stock ever purchased."""
    summary = inventory_service.stock_summary(
        g.owner_id,
        low_stock_percent=current_app.config.get("LOW_STOCK_PERCENT", 25),
    )
    return jsonify(summary), 200


@products_bp.post("")
@require_auth
@require_active_subscription
def create_product():
    """
    Record a stock purchase.

    Body: {"batch_id", "name", "buying_price_cents", "selling_price_cents",
           "quantity", "image_url"?, "description"?}
    """
    data = request.get_json(silent=True) or {}
    try:
        product = inventory_service.record_stock_purchase(
            g.owner_id,
            batch_id=data.get("batch_id"),
            name=data.get("name"),
            buying_price_cents=data.get("buying_price_cents"),
            selling_price_cents=data.get("selling_price_cents"),
            quantity=data.get("quantity"),
            image_url=data.get("image_url"),
            description=data.get("description"),
        )
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record stock purchase")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"product": product.to_dict()}), 201


@products_bp.get("/<int:product_id>")
@require_auth
@require_active_subscription
def get_product(product_id: int):
    try:
        product = inventory_service.get_product(g.owner_id, product_id)
    except CasaStockError as e:
        return error_response(e)
    return jsonify({"product": product.to_dict()}), 200


@products_bp.patch("/<int:product_id>")
@require_auth
@require_active_subscription
def update_product(product_id: int):
    """Edit product details or correct current_quantity. No capital effect."""
    try:
        patch = validate_payload(
            model=Product,
            payload=request.get_json(silent=True),
            policy=PRODUCT_PATCH_POLICY,
        )
        enforce_rules_product(patch)
        product = inventory_service.update_product(g.owner_id, product_id, patch)
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"product": product.to_dict()}), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_active_subscription
def delete_product(product_id: int):
    try:
        inventory_service.delete_product(g.owner_id, product_id)
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"message": "Product deleted"}), 200
