"""Models package - exports all SQLAlchemy models."""
# Accounts
from farmstore.models.app_user import AppUser
from farmstore.models.admin_user import AdminUser

# Catalog & cart
from farmstore.models.product import Product
from farmstore.models.product_variant import ProductVariant
from farmstore.models.cart_item import CartItem

# Orders
from farmstore.models.discount import Discount, DiscountType
from farmstore.models.discount_usage import DiscountUsage
from farmstore.models.order import Order, OrderStatus, PaymentMethod
from farmstore.models.order_item import OrderItem
from farmstore.models.payment import Payment
from farmstore.models.product_review import ProductReview

# Back-office
from farmstore.models.audit_log import AuditLog, AuditAction

__all__ = [
    'AppUser', 'AdminUser',
    'Product', 'ProductVariant', 'CartItem',
    'Discount', 'DiscountType', 'DiscountUsage',
    'Order', 'OrderStatus', 'PaymentMethod', 'OrderItem', 'Payment', 'ProductReview',
    'AuditLog', 'AuditAction',
]
