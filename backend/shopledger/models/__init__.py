from .inventory import Product
from .customers import Customer
from .sales import Sale, SaleItem
from .auth import User

__all__ = [
    'Product',
    'Customer',
    'Sale', 'SaleItem',
    'User',
]
