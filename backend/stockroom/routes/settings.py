# Overview: Flask API routes for organization settings.

from flask import Blueprint, jsonify, g

from ..services import settings_service
from ..decorators import require_auth, require_permission
from .common import DOMAIN_ERRORS, error_response, internal_error, json_body


settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
@require_permission("SETTINGS_READ")
def get_settings_route():
    return jsonify({"settings": settings_service.get_settings(g.org_id)}), 200


@settings_bp.put("")
@require_auth
@require_permission("SETTINGS_UPDATE")
def update_settings_route():
    """
    Body: {key: value, ...} or {settings: {key: value, ...}}.

    Unknown keys and non-numeric values are rejected; nothing is written
    unless every value is valid.
    """
    data = json_body()
    values = data.get("settings") if isinstance(data.get("settings"), dict) else data
    try:
        return jsonify({"settings": settings_service.update_settings(g.org_id, values)}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update settings")
