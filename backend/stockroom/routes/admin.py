# Overview: Flask API routes for team administration.

# backend/stockroom/routes/admin.py
"""
Team administration: approve pending registrations, deactivate members,
change roles. Deactivating a user revokes all of their sessions.
"""

from flask import Blueprint, jsonify, current_app, g

from ..services import auth_service, session_service
from ..decorators import require_auth, require_permission
from .common import DOMAIN_ERRORS, error_response, internal_error, json_body


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/users")
@require_auth
@require_permission("USERS_READ")
def list_users_route():
    users = auth_service.list_users(g.org_id)
    return jsonify({"items": [u.to_dict() for u in users], "count": len(users)}), 200


@admin_bp.put("/users/<int:user_id>")
@require_auth
@require_permission("USERS_UPDATE")
def update_user_route(user_id: int):
    """Body: {role?, is_active?}"""
    data = json_body()
    if user_id == g.current_user.id and data.get("is_active") is False:
        return jsonify({"error": "You cannot deactivate yourself"}), 400
    try:
        user = auth_service.update_user(
            org_id=g.org_id,
            user_id=user_id,
            acting_role=g.current_user.role,
            role=data.get("role"),
            is_active=data.get("is_active"),
        )
        if not user.is_active:
            revoked = session_service.revoke_all_user_sessions(user.id, reason="User deactivated")
            current_app.logger.info("deactivated user id=%s revoked_sessions=%s", user.id, revoked)
        return jsonify({"user": user.to_dict()}), 200
    except DOMAIN_ERRORS as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update user")
