# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/stockroom/routes/auth.py
"""
Authentication API routes

- Registration creates an organization, or joins one pending approval
- Login issues an opaque bearer token (only its hash is stored)
- Logout revokes the presented token
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services import session_service
from ..services.auth_service import AuthError, PasswordValidationError
from ..permissions import get_role_permissions
from ..decorators import require_auth
from .common import json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _bearer_token():
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1]


@auth_bp.post("/register")
def register_route():
    """
    Body: {email, password, full_name?, invite_code?,
           organization_name | organization_code}

    Joining an existing organization leaves the account inactive until an
    admin approves it.
    """
    data = json_body()
    try:
        user = auth_service.register_user(
            email=data.get("email"),
            password=data.get("password"),
            full_name=data.get("full_name") or data.get("fullName"),
            invite_code=data.get("invite_code") or data.get("inviteCode"),
            organization_name=data.get("organization_name") or data.get("organizationName"),
            organization_code=data.get("organization_code") or data.get("organizationCode"),
        )
        return jsonify({
            "user": user.to_dict(),
            "pending_approval": not user.is_active,
        }), 201
    except (PasswordValidationError, AuthError) as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """Returns {user, permissions, token, org_id}; 401 on bad credentials."""
    data = json_body()
    email = data.get("email")
    password = data.get("password")
    if not email or not password:
        return jsonify({"error": "email and password required"}), 400

    try:
        user = auth_service.authenticate(email, password)
        if not user:
            current_app.logger.info("failed login for %r from %s", email, request.remote_addr)
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
        return jsonify({
            "user": user.to_dict(),
            "permissions": sorted(get_role_permissions(user.role)),
            "token": token,
            "org_id": session.org_id,
            "expires_at": session.expires_at.isoformat() + "Z",
            "message": "Login successful",
        }), 200
    except ValueError as e:
        return jsonify({"error": str(e)}), 401
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
def logout_route():
    token = _bearer_token()
    if not token:
        return jsonify({"error": "Authorization header required"}), 401
    try:
        if not session_service.revoke_session(token, reason="User logout"):
            return jsonify({"error": "Invalid or expired token"}), 401
        return jsonify({"message": "Logout successful"}), 200
    except Exception:
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user with the permission codes the UI filters on."""
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(get_role_permissions(user.role)),
        "org_id": g.org_id,
    }), 200
