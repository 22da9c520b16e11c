# Overview: Public read-only catalog routes; no authentication.

from flask import Blueprint, request, jsonify

from ..errors import CasaStockError, error_response
from ..services import catalog_service


catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/catalog")


@catalog_bp.get("")
def get_catalog():
    """
    Query params:
    - owner: int (required) - whose catalog to show
    """
    owner_id = request.args.get("owner", type=int)
    if owner_id is None:
        return jsonify({"error": "owner query parameter is required"}), 400
    try:
        return jsonify(catalog_service.get_catalog(owner_id)), 200
    except CasaStockError as e:
        return error_response(e)


@catalog_bp.get("/<int:product_id>")
def get_catalog_product(product_id: int):
    try:
        return jsonify({"product": catalog_service.get_catalog_product(product_id)}), 200
    except CasaStockError as e:
        return error_response(e)
