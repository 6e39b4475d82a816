# Overview: Utility functions for permission lookups and validation.

from ..models.auth import ROLE_SUPER_ADMIN
from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


def get_role_permissions(role: str) -> frozenset[str]:
    if is_super_admin(role):
        return frozenset(get_all_permission_codes())
    return DEFAULT_ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(role: str, permission_code: str) -> bool:
    """Pure lookup: does this role grant this permission? Unknown codes are never granted."""
    if not validate_permission_code(permission_code):
        return False
    return permission_code in get_role_permissions(role)


def is_super_admin(role: str) -> bool:
    return role == ROLE_SUPER_ADMIN
