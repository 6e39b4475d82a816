# Overview: Flask API routes for expenses; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..services import expense_service
from ..decorators import require_auth, require_permission
from .common import DOMAIN_ERRORS, arg_datetime, error_response, internal_error, json_body


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@expenses_bp.get("")
@require_auth
@require_permission("EXPENSES_READ")
def list_expenses_route():
    """Query params: arrivage_id, type, start, end."""
    try:
        items = expense_service.list_expenses(
            g.org_id,
            arrivage_id=request.args.get("arrivage_id", type=int),
            expense_type=request.args.get("type"),
            start=arg_datetime("start"),
            end=arg_datetime("end"),
        )
        return jsonify({
            "items": [e.to_dict() for e in items],
            "count": len(items),
            "total_dh_cents": sum(e.amount_dh_cents or 0 for e in items),
        }), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@expenses_bp.post("")
@require_auth
@require_permission("EXPENSES_CREATE")
def create_expense_route():
    try:
        expense = expense_service.create_expense(g.org_id, json_body())
        return jsonify({"expense": expense.to_dict()}), 201
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create expense")


@expenses_bp.get("/<int:expense_id>")
@require_auth
@require_permission("EXPENSES_READ")
def get_expense_route(expense_id: int):
    try:
        return jsonify({"expense": expense_service.get_expense(expense_id, g.org_id).to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)


@expenses_bp.put("/<int:expense_id>")
@require_auth
@require_permission("EXPENSES_UPDATE")
def update_expense_route(expense_id: int):
    try:
        expense = expense_service.update_expense(expense_id, g.org_id, json_body())
        return jsonify({"expense": expense.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update expense")


@expenses_bp.delete("/<int:expense_id>")
@require_auth
@require_permission("EXPENSES_DELETE")
def delete_expense_route(expense_id: int):
    try:
        expense_service.delete_expense(expense_id, g.org_id)
        return jsonify({"ok": True}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to delete expense")
