# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- PRODUCTS --

PRODUCT_PERMISSIONS = [
    ("PRODUCTS_READ", "View Products", "Browse the product catalog", PermissionCategory.PRODUCTS),
    ("PRODUCTS_CREATE", "Create Products", "Create products and run spreadsheet imports", PermissionCategory.PRODUCTS),
    ("PRODUCTS_UPDATE", "Edit Products", "Edit catalog fields, categories and brands", PermissionCategory.PRODUCTS),
    ("PRODUCTS_DELETE", "Delete Products", "Deactivate products", PermissionCategory.PRODUCTS),
]


# -- STOCK --

STOCK_PERMISSIONS = [
    ("STOCK_READ", "View Stock Movements", "View the stock movement ledger", PermissionCategory.STOCK),
    (
        "STOCK_ADJUST",
        "Adjust Stock",
        "Apply relative stock corrections (damage, recount, found inventory)",
        PermissionCategory.STOCK,
    ),
    (
        "STOCK_RESET",
        "Reset Stock",
        "Overwrite received/sold counters with absolute values",
        PermissionCategory.STOCK,
    ),
]


# -- ARRIVAGES --

ARRIVAGE_PERMISSIONS = [
    ("ARRIVAGES_READ", "View Shipments", "View shipments and their products", PermissionCategory.ARRIVAGES),
    ("ARRIVAGES_CREATE", "Create Shipments", "Create shipments", PermissionCategory.ARRIVAGES),
    (
        "ARRIVAGES_UPDATE",
        "Edit Shipments",
        "Edit shipments and add products to them",
        PermissionCategory.ARRIVAGES,
    ),
    ("ARRIVAGES_DELETE", "Delete Shipments", "Delete empty shipments", PermissionCategory.ARRIVAGES),
]


# -- SALES --

SALES_PERMISSIONS = [
    ("SALES_READ", "View Sales", "View sales history", PermissionCategory.SALES),
    ("SALES_CREATE", "Create Sale", "Record a sale", PermissionCategory.SALES),
    ("SALES_UPDATE", "Edit Sale", "Change quantity, price, date or notes of a sale", PermissionCategory.SALES),
    ("SALES_DELETE", "Delete Sale", "Delete a sale and restore its stock", PermissionCategory.SALES),
]


# -- EXPENSES --

EXPENSE_PERMISSIONS = [
    ("EXPENSES_READ", "View Expenses", "View expenses", PermissionCategory.EXPENSES),
    ("EXPENSES_CREATE", "Create Expenses", "Record expenses", PermissionCategory.EXPENSES),
    ("EXPENSES_UPDATE", "Edit Expenses", "Edit expenses", PermissionCategory.EXPENSES),
    ("EXPENSES_DELETE", "Delete Expenses", "Delete expenses", PermissionCategory.EXPENSES),
]


# -- DASHBOARD / SETTINGS / USERS --

DASHBOARD_PERMISSIONS = [
    ("DASHBOARD_READ", "View Dashboard", "View KPIs and stock alerts", PermissionCategory.DASHBOARD),
]

SETTINGS_PERMISSIONS = [
    ("SETTINGS_READ", "View Settings", "View organization settings", PermissionCategory.SETTINGS),
    ("SETTINGS_UPDATE", "Edit Settings", "Edit organization settings", PermissionCategory.SETTINGS),
]

USER_PERMISSIONS = [
    ("USERS_READ", "View Users", "List team members", PermissionCategory.USERS),
    ("USERS_UPDATE", "Manage Users", "Approve, deactivate and change roles of team members", PermissionCategory.USERS),
]


PERMISSION_DEFINITIONS = (
    PRODUCT_PERMISSIONS
    + STOCK_PERMISSIONS
    + ARRIVAGE_PERMISSIONS
    + SALES_PERMISSIONS
    + EXPENSE_PERMISSIONS
    + DASHBOARD_PERMISSIONS
    + SETTINGS_PERMISSIONS
    + USER_PERMISSIONS
)
