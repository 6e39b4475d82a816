# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/stockroom/routes/sales.py
"""Sales API routes with permission enforcement"""

from flask import Blueprint, request, jsonify, g

from ..services import sales_service
from ..decorators import require_auth, require_permission
from .common import DOMAIN_ERRORS, arg_bool, arg_datetime, error_response, internal_error, json_body


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_auth
@require_permission("SALES_READ")
def list_sales_route():
    """
    Query params: product_id, start, end (ISO-8601), is_promo, limit, offset.
    """
    try:
        limit = min(max(request.args.get("limit", 50, type=int), 1), 500)
        offset = max(request.args.get("offset", 0, type=int), 0)
        items, total = sales_service.list_sales(
            org_id=g.org_id,
            product_id=request.args.get("product_id", type=int),
            start=arg_datetime("start"),
            end=arg_datetime("end"),
            is_promo=arg_bool("is_promo"),
            limit=limit,
            offset=offset,
        )
        return jsonify({
            "items": [s.to_dict() for s in items],
            "count": len(items),
            "total": total,
            "limit": limit,
            "offset": offset,
        }), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@sales_bp.post("")
@require_auth
@require_permission("SALES_CREATE")
def create_sale_route():
    """
    Body: {product_id, quantity, price_per_unit_cents, is_promo?, sale_date?, notes?}

    409 with {available, requested} when stock is short; 400 when selling
    below cost without notes.
    """
    try:
        sale = sales_service.create_sale(org_id=g.org_id, payload=json_body(), user_id=g.current_user.id)
        return jsonify({"sale": sale.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create sale")


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("SALES_READ")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id, g.org_id)
        return jsonify({"sale": sale.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@sales_bp.put("/<int:sale_id>")
@require_auth
@require_permission("SALES_UPDATE")
def update_sale_route(sale_id: int):
    try:
        sale = sales_service.update_sale(
            sale_id=sale_id, org_id=g.org_id, payload=json_body(), user_id=g.current_user.id
        )
        return jsonify({"sale": sale.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update sale")


@sales_bp.delete("/<int:sale_id>")
@require_auth
@require_permission("SALES_DELETE")
def delete_sale_route(sale_id: int):
    try:
        sales_service.delete_sale(sale_id=sale_id, org_id=g.org_id, user_id=g.current_user.id)
        return jsonify({"ok": True}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to delete sale")
