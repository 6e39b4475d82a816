# Overview: Shared helpers for route handlers; maps domain errors to HTTP responses.

from flask import current_app, jsonify, request
from sqlalchemy.exc import IntegrityError

from ..errors import InsufficientStockError, NotFoundError, StockroomError, TransactionConflictError
from ..extensions import db
from ..services.auth_service import PasswordValidationError
from ..validation import ConflictError
from stockroom.time_utils import parse_iso_datetime

# Everything a service raises on purpose; anything else is a 500
DOMAIN_ERRORS = (StockroomError, ValueError, PasswordValidationError, IntegrityError)


def error_response(e: Exception):
    """
    400 validation, 404 not found, 409 insufficient stock or conflict.

    InsufficientStockError carries {available, requested} so the UI can
    show how many units are left.
    """
    if isinstance(e, InsufficientStockError):
        return jsonify({"error": str(e), "details": e.details}), 409
    if isinstance(e, TransactionConflictError):
        return jsonify({"error": str(e), "details": e.details}), 409
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, StockroomError):
        return jsonify({"error": str(e), "details": e.details}), 400
    if isinstance(e, ConflictError):
        return jsonify({"error": str(e)}), 409
    if isinstance(e, IntegrityError):
        db.session.rollback()
        current_app.logger.warning("integrity error on %s %s: %s", request.method, request.path, e.orig)
        return jsonify({"error": "Conflicting data"}), 409
    return jsonify({"error": str(e)}), 400


def internal_error(message: str):
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def arg_bool(name: str):
    value = request.args.get(name)
    if value is None or value == "":
        return None
    return value.strip().lower() in {"1", "true", "yes"}


def arg_datetime(name: str):
    value = request.args.get(name)
    if not value:
        return None
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValueError(f"{name} must be an ISO-8601 date")
