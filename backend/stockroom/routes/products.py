# Overview: Flask API routes for products and their stock; parses input and returns JSON responses.

# backend/stockroom/routes/products.py
"""
Product routes.

All operations are scoped to g.org_id (set by @require_auth).
Stock counters change only through adjust-stock, reset-stock and sales.
"""
from flask import Blueprint, current_app, request, g

from ..services import import_service, products_service, stock_service
from ..services.import_service import ImportRequestError
from ..validation import ValidationError, enforce_rules_adjustment, enforce_rules_reset
from ..decorators import require_auth, require_permission
from .common import DOMAIN_ERRORS, arg_bool, error_response, internal_error, json_body

products_bp = Blueprint("products", __name__, url_prefix="/api/products")

# Accepted camelCase spellings of the reset payload
_RESET_ALIASES = {"newStock": "new_stock", "resetSold": "reset_sold"}


def _product_response(product):
    return products_service.serialize_products([product], g.org_id)[0]


@products_bp.get("")
@require_auth
@require_permission("PRODUCTS_READ")
def list_products():
    """
    Query params: category_id, arrivage_id, source, search, status (OUT|LOW|OK),
    include_inactive, page, per_page.
    """
    try:
        return products_service.list_products(
            g.org_id,
            category_id=request.args.get("category_id", type=int),
            arrivage_id=request.args.get("arrivage_id", type=int),
            source=request.args.get("source"),
            search=request.args.get("search"),
            status=(request.args.get("status") or "").upper() or None,
            include_inactive=bool(arg_bool("include_inactive")),
            page=request.args.get("page", type=int),
            per_page=request.args.get("per_page", type=int),
        )
    except DOMAIN_ERRORS as e:
        return error_response(e)


@products_bp.get("/available-stock")
@require_auth
@require_permission("PRODUCTS_READ")
def available_stock_route():
    products = products_service.available_stock(g.org_id)
    return {"items": products_service.serialize_products(products, g.org_id), "count": len(products)}


@products_bp.post("")
@require_auth
@require_permission("PRODUCTS_CREATE")
def create_product_route():
    try:
        product = products_service.create_product(g.org_id, json_body())
        return _product_response(product), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create product")


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("PRODUCTS_READ")
def get_product_route(product_id: int):
    try:
        product = stock_service.get_product(product_id, g.org_id)
        return _product_response(product)
    except DOMAIN_ERRORS as e:
        return error_response(e)


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("PRODUCTS_UPDATE")
def update_product_route(product_id: int):
    try:
        product = products_service.update_product(product_id, g.org_id, json_body())
        return _product_response(product), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update product")


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("PRODUCTS_DELETE")
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id, g.org_id)
        return {"ok": True}, 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to delete product")


@products_bp.post("/<int:product_id>/adjust-stock")
@require_auth
@require_permission("STOCK_ADJUST")
def adjust_stock_route(product_id: int):
    """
    Body: {delta, reason, notes?}

    409 with {available, requested} when the result would be negative.
    """
    try:
        delta, reason, notes = enforce_rules_adjustment(json_body())
        product, movement = stock_service.adjust_stock(
            product_id=product_id,
            org_id=g.org_id,
            delta=delta,
            reason=reason,
            notes=notes,
            user_id=g.current_user.id,
        )
        return {"product": _product_response(product), "movement": movement.to_dict()}, 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to adjust stock")


@products_bp.post("/<int:product_id>/reset-stock")
@require_auth
@require_permission("STOCK_RESET")
def reset_stock_route(product_id: int):
    """Body: {new_stock, reset_sold?, reason, notes?} (camelCase accepted)."""
    payload = {_RESET_ALIASES.get(k, k): v for k, v in json_body().items()}
    try:
        new_stock, reset_sold, reason, notes = enforce_rules_reset(payload)
        product, movement = stock_service.reset_stock(
            product_id=product_id,
            org_id=g.org_id,
            new_stock=new_stock,
            reset_sold=reset_sold,
            reason=reason,
            notes=notes,
            user_id=g.current_user.id,
        )
        return {"product": _product_response(product), "movement": movement.to_dict()}, 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to reset stock")


@products_bp.get("/<int:product_id>/stock-movements")
@require_auth
@require_permission("STOCK_READ")
def stock_movements_route(product_id: int):
    try:
        limit = min(max(request.args.get("limit", 200, type=int), 1), 1000)
        movements = stock_service.list_movements(product_id=product_id, org_id=g.org_id, limit=limit)
        return {"items": [m.to_dict() for m in movements], "count": len(movements)}
    except DOMAIN_ERRORS as e:
        return error_response(e)


@products_bp.post("/import")
@require_auth
@require_permission("PRODUCTS_CREATE")
def import_products_route():
    """
    JSON {sheets: [{sheetName, products: [...]}]} or a multipart .xlsx upload
    in field "file". Row failures are reported, never fatal.
    """
    try:
        if "file" in request.files:
            file = request.files["file"]
            ext = (file.filename or "").rsplit(".", 1)[-1].lower()
            if ext not in {"xlsx", "xlsm"}:
                return {"error": "Unsupported file format"}, 400
            try:
                sheets = import_service.parse_workbook(file.stream)
            except Exception:
                current_app.logger.warning("unreadable workbook upload %r", file.filename, exc_info=True)
                return {"error": "Failed to parse upload"}, 400
        else:
            sheets = json_body().get("sheets")

        return import_service.import_sheets(g.org_id, sheets), 200
    except (ImportRequestError, ValidationError) as e:
        return {"error": str(e)}, 400
    except Exception:
        return internal_error("Failed to import products")
