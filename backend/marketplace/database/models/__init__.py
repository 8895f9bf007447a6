"""
ORM models.

Importing this package registers every table on ``Base.metadata``.
"""

from marketplace.database.models.order import Order
from marketplace.database.models.product import Product
from marketplace.database.models.user import User, UserRole, UserStatus

__all__ = ["Order", "Product", "User", "UserRole", "UserStatus"]
