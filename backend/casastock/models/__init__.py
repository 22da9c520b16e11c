from .auth import User, SessionToken
from .inventory import Batch, Product
from .orders import Order, OrderLine
from .ledger import CapitalEntry, Expense
from .billing import Subscription
from .profiles import Profile

__all__ = [
    'User', 'SessionToken',
    'Batch', 'Product',
    'Order', 'OrderLine',
    'CapitalEntry', 'Expense',
    'Subscription',
    'Profile',
]
