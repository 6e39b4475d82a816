# Overview: Flask API routes for dashboard KPIs and stock alerts.

from flask import Blueprint, request, jsonify, g

from ..services import reporting_service
from ..decorators import require_auth, require_permission
from .common import DOMAIN_ERRORS, error_response


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/low-stock")
@require_auth
@require_permission("DASHBOARD_READ")
def low_stock_route():
    limit = min(max(request.args.get("limit", 5, type=int), 1), 100)
    items = reporting_service.low_stock(g.org_id, limit=limit)
    return jsonify({"items": items, "count": len(items)}), 200


@dashboard_bp.get("/stock-health")
@require_auth
@require_permission("DASHBOARD_READ")
def stock_health_route():
    return jsonify(reporting_service.stock_health(g.org_id)), 200


@dashboard_bp.get("/summary")
@require_auth
@require_permission("DASHBOARD_READ")
def summary_route():
    """Query params: start, end (ISO-8601, both optional)."""
    try:
        data = reporting_service.summary(
            g.org_id,
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
        return jsonify(data), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
