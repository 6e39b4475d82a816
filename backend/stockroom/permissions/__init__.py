# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    PRODUCT_PERMISSIONS,
    STOCK_PERMISSIONS,
    ARRIVAGE_PERMISSIONS,
    SALES_PERMISSIONS,
    EXPENSE_PERMISSIONS,
    DASHBOARD_PERMISSIONS,
    SETTINGS_PERMISSIONS,
    USER_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    get_role_permissions,
    has_permission,
    is_super_admin,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "PRODUCT_PERMISSIONS",
    "STOCK_PERMISSIONS",
    "ARRIVAGE_PERMISSIONS",
    "SALES_PERMISSIONS",
    "EXPENSE_PERMISSIONS",
    "DASHBOARD_PERMISSIONS",
    "SETTINGS_PERMISSIONS",
    "USER_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_all_permission_codes",
    "get_role_permissions",
    "has_permission",
    "is_super_admin",
    "validate_permission_code",
]
