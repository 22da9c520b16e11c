# Overview: Flask API routes for subscription billing; parses input and returns JSON responses.

"""
Subscription billing routes (Razorpay).

These routes are reachable without an active subscription: they are how
an owner gets one. The webhook is public and authenticated by HMAC.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import CasaStockError, error_response
from ..services import subscription_service
from ..decorators import require_auth


subscriptions_bp = Blueprint("subscriptions", __name__, url_prefix="/api")


@subscriptions_bp.get("/subscription")
@require_auth
def get_subscription():
    """Latest subscription (or null) and whether it unlocks the app."""
    latest = subscription_service.get_latest_subscription(g.owner_id)
    return jsonify({
        "subscription": latest.to_dict() if latest else None,
        "active": bool(latest and latest.is_active),
        "plan_name": current_app.config["SUBSCRIPTION_PLAN_NAME"],
        "amount_cents": current_app.config["SUBSCRIPTION_AMOUNT_CENTS"],
        "currency": current_app.config["SUBSCRIPTION_CURRENCY"],
    }), 200


@subscriptions_bp.post("/subscription-order")
@require_auth
def create_subscription_order():
    """Create a gateway subscription; the client completes checkout at checkout_url."""
    try:
        subscription = subscription_service.create_subscription_order(
            g.owner_id,
            client=current_app.extensions["razorpay"],
            config=current_app.config,
        )
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create subscription order")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "subscription": subscription.to_dict(),
        "key_id": current_app.config.get("RAZORPAY_KEY_ID"),
    }), 201


@subscriptions_bp.post("/subscription-verify")
@require_auth
def verify_subscription():
    """
    Body: {"razorpay_payment_id", "razorpay_subscription_id", "razorpay_signature"}
    """
    data = request.get_json(silent=True) or {}
    try:
        subscription = subscription_service.verify_payment(
            g.owner_id,
            payment_id=data.get("razorpay_payment_id"),
            subscription_id=data.get("razorpay_subscription_id"),
            signature=data.get("razorpay_signature"),
            key_secret=current_app.config.get("RAZORPAY_KEY_SECRET"),
        )
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to verify subscription payment")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"subscription": subscription.to_dict()}), 200


@subscriptions_bp.post("/subscription-webhook")
def subscription_webhook():
    """Gateway callback; the raw body is signed with the webhook secret."""
    try:
        result = subscription_service.handle_webhook(
            request.get_data(),
            request.headers.get("X-Razorpay-Signature"),
            webhook_secret=current_app.config.get("RAZORPAY_WEBHOOK_SECRET"),
        )
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to process subscription webhook")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(result), 200
