# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    PRODUCTS = "PRODUCTS"
    STOCK = "STOCK"
    ARRIVAGES = "ARRIVAGES"
    SALES = "SALES"
    EXPENSES = "EXPENSES"
    DASHBOARD = "DASHBOARD"
    SETTINGS = "SETTINGS"
    USERS = "USERS"
