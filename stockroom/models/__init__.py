from .auth import User, SessionToken, ROLES
from .inventory import Product
from .sales import Sale, SaleLine

__all__ = [
    'User', 'SessionToken', 'ROLES',
    'Product',
    'Sale', 'SaleLine',
]
