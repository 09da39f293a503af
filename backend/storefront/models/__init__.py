from .inventory import Product
from .parties import Party
from .ledger import Transaction
from .auth import User, SessionToken

__all__ = [
    'Product',
    'Party',
    'Transaction',
    'User', 'SessionToken',
]
