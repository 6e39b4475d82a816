from .tenancy import Organization
from .auth import User, SessionToken
from .catalog import Category, Brand, Supplier
from .inventory import Arrivage, Product, StockMovement
from .sales import Sale
from .expenses import Expense
from .settings import Setting

__all__ = [
    'Organization',
    'User', 'SessionToken',
    'Category', 'Brand', 'Supplier',
    'Arrivage', 'Product', 'StockMovement',
    'Sale',
    'Expense',
    'Setting',
]
