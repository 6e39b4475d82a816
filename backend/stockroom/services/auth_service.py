# Overview: Service-layer operations for auth; passwords, registration and team management.

"""
Authentication Service

Users belong to exactly one organization and carry one role
(SUPER_ADMIN, ADMIN, STAFF). Email is globally unique because login does
not ask for an organization.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters, upper, lower, digit and special char required
- Self-registered users joining an existing organization start inactive
  until an admin approves them
- Registration is gated by invite codes when INVITE_CODES is configured
"""

import re
import secrets

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Organization, User
from ..models.auth import ROLE_STAFF, ROLE_SUPER_ADMIN, ROLES
from ..permissions import is_super_admin
from stockroom.time_utils import utcnow
from . import settings_service


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthError(ValueError):
    """Registration or account management rejected."""


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>_\-]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe bcrypt check; malformed hashes never verify."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def _normalize_email(email) -> str:
    if not isinstance(email, str) or not EMAIL_RE.match(email.strip()):
        raise AuthError("A valid email is required")
    return email.strip().lower()


def create_user(
    *,
    email: str,
    password: str,
    org_id: int,
    full_name: str | None = None,
    role: str = ROLE_STAFF,
    is_active: bool = True,
    commit: bool = True,
) -> User:
    """
    Create a user in an organization.

    Raises AuthError for unknown org, bad role or duplicate email, and
    PasswordValidationError for weak passwords.
    """
    email = _normalize_email(email)
    if role not in ROLES:
        raise AuthError(f"Unknown role: {role}")

    org = db.session.query(Organization).filter_by(id=org_id).first()
    if not org:
        raise AuthError("Organization not found")
    if not org.is_active:
        raise AuthError("Organization is not active")

    if db.session.query(User).filter_by(email=email).first():
        raise AuthError("Email already registered")

    user = User(
        org_id=org_id,
        email=email,
        full_name=(full_name or "").strip() or None,
        password_hash=hash_password(password),
        role=role,
        is_active=is_active,
    )
    db.session.add(user)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return user


def _check_invite_code(invite_code) -> None:
    codes = current_app.config.get("INVITE_CODES") or frozenset()
    if not codes:
        return
    if not isinstance(invite_code, str) or invite_code.strip().upper() not in codes:
        raise AuthError("Invalid invite code")


def register_user(
    *,
    email: str,
    password: str,
    full_name: str | None = None,
    invite_code: str | None = None,
    organization_name: str | None = None,
    organization_code: str | None = None,
) -> User:
    """
    Self-registration.

    With organization_code the user joins that organization as an inactive
    STAFF member (pending approval). Otherwise a new organization is created
    and the user becomes its active SUPER_ADMIN with default settings.
    """
    _check_invite_code(invite_code)

    if organization_code:
        org = db.session.query(Organization).filter_by(code=organization_code.strip().upper()).first()
        if not org or not org.is_active:
            raise AuthError("Organization not found")
        user = create_user(
            email=email,
            password=password,
            org_id=org.id,
            full_name=full_name,
            role=ROLE_STAFF,
            is_active=False,
        )
        current_app.logger.info("registered pending user id=%s org=%s", user.id, org.id)
        return user

    name = (organization_name or "").strip()
    if not name:
        raise AuthError("organization_name or organization_code is required")

    org = Organization(name=name, code=secrets.token_hex(4).upper())
    db.session.add(org)
    db.session.flush()
    try:
        user = create_user(
            email=email,
            password=password,
            org_id=org.id,
            full_name=full_name,
            role=ROLE_SUPER_ADMIN,
            is_active=True,
            commit=False,
        )
    except Exception:
        db.session.rollback()
        raise
    db.session.commit()
    settings_service.seed_defaults(org.id)
    current_app.logger.info("registered organization id=%s owner=%s", org.id, user.id)
    return user


def authenticate(email: str, password: str) -> User | None:
    """
    Returns the active user for these credentials, None otherwise.

    Updates last_login_at on success.
    """
    if not isinstance(email, str) or not isinstance(password, str):
        return None
    user = (
        db.session.query(User)
        .filter(User.email == email.strip().lower(), User.is_active.is_(True))
        .first()
    )
    if not user:
        return None

    org = db.session.query(Organization).filter_by(id=user.org_id).first()
    if not org or not org.is_active:
        return None

    if verify_password(password, user.password_hash):
        user.last_login_at = utcnow()
        db.session.commit()
        return user

    return None


def list_users(org_id: int) -> list[User]:
    return (
        db.session.query(User)
        .filter_by(org_id=org_id)
        .order_by(User.created_at.asc(), User.id.asc())
        .all()
    )


def update_user(*, org_id: int, user_id: int, acting_role: str, role: str | None = None,
                is_active: bool | None = None) -> User:
    """
    Approve/deactivate a team member or change their role.

    Only a SUPER_ADMIN may grant or revoke SUPER_ADMIN.
    """
    user = db.session.query(User).filter_by(id=user_id, org_id=org_id).first()
    if not user:
        raise AuthError("User not found")

    if role is not None:
        if role not in ROLES:
            raise AuthError(f"Unknown role: {role}")
        touches_super = is_super_admin(role) or is_super_admin(user.role)
        if touches_super and not is_super_admin(acting_role):
            raise AuthError("Only a super admin can change super admin roles")
        user.role = role

    if is_active is not None:
        if not isinstance(is_active, bool):
            raise AuthError("is_active must be a boolean")
        if is_super_admin(user.role) and not is_super_admin(acting_role):
            raise AuthError("Only a super admin can change a super admin")
        user.is_active = is_active

    db.session.commit()
    return user


