# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

- Self-registration creates an owner plus an empty business profile
- Session management with bearer-token auth
- /me reports whether the subscription gate is open
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import AuthError, CasaStockError, error_response
from ..services import auth_service
from ..services import session_service
from ..services import subscription_service
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(user, token, session):
    return {
        "user": user.to_dict(),
        "token": token,
        "expires_at": session.to_dict()["expires_at"],
    }


@auth_bp.post("/register")
def register_route():
    """
    Create an owner account and log it in.

    Body: {"username", "email", "password"}
    """
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.create_user(
            data.get("username"),
            data.get("email"),
            data.get("password"),
        )
        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except CasaStockError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Registration failed")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(_session_payload(user, token, session)), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate owner and create session token.

    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}
    username = data.get("username") or data.get("email") or data.get("identifier")
    password = data.get("password")

    if not all([username, password]):
        return jsonify({"error": "username/email and password required"}), 400

    try:
        user = auth_service.authenticate(username, password)
        if not user:
            current_app.logger.info("Failed login for %s from %s", username, request.remote_addr)
            return error_response(AuthError("Invalid credentials"))

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except Exception:
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(_session_payload(user, token, session)), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the current session token."""
    session_service.revoke_session(g.token)
    return jsonify({"message": "Logged out successfully"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current owner plus subscription status."""
    latest = subscription_service.get_latest_subscription(g.owner_id)
    return jsonify({
        "user": g.current_user.to_dict(),
        "subscription": latest.to_dict() if latest else None,
        "subscription_active": bool(latest and latest.is_active),
    }), 200
