# Overview: Role -> permission table. SUPER_ADMIN is handled in helpers (holds everything).

from ..models.auth import ROLE_ADMIN, ROLE_STAFF
from .definitions import PERMISSION_DEFINITIONS

STAFF_PERMISSIONS = frozenset({
    "PRODUCTS_READ",
    "STOCK_READ",
    "ARRIVAGES_READ",
    "SALES_READ",
    "SALES_CREATE",
    "DASHBOARD_READ",
})

# Stock resets rewrite history-derived counters; only SUPER_ADMIN may do that
ADMIN_PERMISSIONS = frozenset(
    perm[0] for perm in PERMISSION_DEFINITIONS if perm[0] != "STOCK_RESET"
)

DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMIN: ADMIN_PERMISSIONS,
    ROLE_STAFF: STAFF_PERMISSIONS,
}
