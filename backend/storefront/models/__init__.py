from .catalog import Category, Product
from .auth import User
from .orders import Order, OrderItem, OrderSequence
from .wishlist import WishlistItem

__all__ = [
    'Category', 'Product',
    'User',
    'Order', 'OrderItem', 'OrderSequence',
    'WishlistItem',
]
