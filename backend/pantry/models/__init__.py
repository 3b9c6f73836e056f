from .employees import Employee
from .products import Product
from .orders import Order, OrderLine
from .purchase_history import PurchaseHistoryEntry
from .security import SecurityEvent
from .reconciliation import ReconciliationItem
from .feedback import Feedback

__all__ = [
    'Employee',
    'Product',
    'Order', 'OrderLine',
    'PurchaseHistoryEntry',
    'SecurityEvent',
    'ReconciliationItem',
    'Feedback',
]
