from .order import ORDER_STATUSES, Order, OrderItem
from .product import Product
from .review import Review
from .user import ROLES, STAFF_ROLES, User

__all__ = [
    "ORDER_STATUSES",
    "ROLES",
    "STAFF_ROLES",
    "Order",
    "OrderItem",
    "Product",
    "Review",
    "User",
]
