# Overview: Flask API routes for the business profile; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import CasaStockError, error_response
from ..services import profile_service
from ..decorators import require_auth, require_active_subscription


profile_bp = Blueprint("profile", __name__, url_prefix="/api/profile")


@profile_bp.get("")
@require_auth
@require_active_subscription
def get_profile():
    profile = profile_service.get_profile(g.owner_id)
    return jsonify({"profile": profile.to_dict() if profile else None}), 200


@profile_bp.put("")
@require_auth
@require_active_subscription
def save_profile():
    """
    Upsert the business profile.

    Body (all optional): business_name, instagram_url, facebook_url,
    website_url, phone_number, show_catalog_price, show_catalog_description
    """
    try:
        profile = profile_service.upsert_profile(g.owner_id, request.get_json(silent=True))
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to save profile")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify({"profile": profile.to_dict()}), 200
