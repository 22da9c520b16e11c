# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..errors import CasaStockError, error_response
from ..services import reporting_service
from ..decorators import require_auth, require_active_subscription


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("")
@require_auth
@require_active_subscription
def revenue_summary():
    """Weekly, monthly and yearly revenue plus all-time revenue, cost and profit."""
    return jsonify(reporting_service.revenue_summary(g.owner_id)), 200


@reports_bp.get("/period")
@require_auth
@require_active_subscription
def period_report():
    """
    Query params:
    - start: ISO-8601 datetime (required, inclusive)
    - end: ISO-8601 datetime (optional, defaults to now)
    """
    try:
        report = reporting_service.period_report(
            g.owner_id,
            request.args.get("start"),
            request.args.get("end"),
        )
    except CasaStockError as e:
        return error_response(e)
    return jsonify(report), 200
