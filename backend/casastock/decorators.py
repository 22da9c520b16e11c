# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, g

from .errors import AuthError, SubscriptionRequiredError, error_response
from .services import session_service
from .services.subscription_service import has_active_subscription


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'owner_id')


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header.split(" ", 1)[1].strip()
    return token or None


def require_auth(f):
    """
    Require authentication and establish owner context.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.owner_id: The owner whose rows this request may touch
    - g.session_token: The live SessionToken
    - g.token: The plaintext bearer token (for logout)

    Returns 401 on a missing, invalid, expired or revoked token.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = _bearer_token()
        if token is None:
            return error_response(AuthError("Authentication required"))

        session = session_service.validate_session(token)
        if not session:
            return error_response(AuthError("Invalid or expired token"))

        g.current_user = session.user
        g.owner_id = session.user_id
        g.session_token = session
        g.token = token

        return f(*args, **kwargs)

    return decorated_function


def require_active_subscription(f):
    """
    Require the owner's most recent subscription to be active.

    Must be stacked below @require_auth.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return error_response(AuthError("Authentication required"))

        if not has_active_subscription(g.owner_id):
            return error_response(SubscriptionRequiredError())

        return f(*args, **kwargs)

    return decorated_function
