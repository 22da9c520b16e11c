# Overview: Error taxonomy shared by services and routes.

"""
CasaStock error taxonomy.

Every service-level failure is a CasaStockError subclass carrying the HTTP
status the API layer should answer with. Routes translate them with
error_response(); anything else is an unexpected failure (500).
"""

from __future__ import annotations

from flask import jsonify


class CasaStockError(Exception):
    """Base class for errors surfaced verbatim to the caller."""
    status_code = 500
    # Extra top-level keys merged into the JSON error body
    response_fields: dict = {}

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(CasaStockError, ValueError):
    """400-level input problem."""
    status_code = 400


class PreconditionError(CasaStockError):
    """Required prior state is missing (e.g. capital not initialized)."""
    status_code = 400


class InsufficientStockError(CasaStockError):
    """Aggregate order demand exceeds available stock for one or more products."""
    status_code = 400

    def __init__(self, items: list[dict], message: str = "Not enough stock available."):
        super().__init__(message, details={"items": items})
        self.items = items


class AuthError(CasaStockError):
    """Missing/invalid session, or the owner has no active subscription."""
    status_code = 401


class SubscriptionRequiredError(AuthError):
    """Authenticated owner whose latest subscription is not active."""
    response_fields = {"subscription_required": True}

    def __init__(self, message: str = "Active subscription required"):
        super().__init__(message)


class NotFoundError(CasaStockError):
    """Referenced entity is absent or not owned by the caller."""
    status_code = 404


class ConflictError(CasaStockError, ValueError):
    """409-level business rule conflict (e.g., subscription already active)."""
    status_code = 409


class GatewayError(CasaStockError):
    """The payment gateway call failed or returned an unusable response."""
    status_code = 502


class StoreError(CasaStockError):
    """Underlying persistence failure; not retried beyond the retry helper."""
    status_code = 500


def error_response(exc: CasaStockError):
    body = {"error": exc.message}
    body.update(exc.response_fields)
    if exc.details:
        body["details"] = exc.details
    return jsonify(body), exc.status_code
