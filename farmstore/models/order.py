"""Order model."""
from sqlalchemy import Column, BigInteger, String, Numeric, DateTime, Enum, ForeignKey, JSON, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from farmstore.database import Base, BigIntPK
import enum


class OrderStatus(str, enum.Enum):
    """Order lifecycle status."""
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    PROCESSING = 'processing'
    SHIPPED = 'shipped'
    DELIVERED = 'delivered'
    CANCELLATION_REQUESTED = 'cancellation_requested'
    CANCELLED = 'cancelled'


class PaymentMethod(str, enum.Enum):
    """Checkout payment method."""
    RAZORPAY = 'razorpay'
    COD = 'cod'


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


order_status_type = Enum(OrderStatus, name='order_status', values_callable=_enum_values)


class Order(Base):
    """Order (completed checkout).
    
    customer_info and the item prices are a point-in-time snapshot; only
    status, tracking fields and the timeline change after creation.
    """
    
    __tablename__ = 'orders'
    
    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=True, index=True)
    session_id = Column(String(64), nullable=True)
    subtotal = Column(Numeric(10, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)
    status = Column(order_status_type, nullable=False, default=OrderStatus.CONFIRMED, index=True)
    previous_status = Column(order_status_type, nullable=True)
    customer_info = Column(JSON, nullable=False, default=dict)
    payment_method = Column(
        Enum(PaymentMethod, name='payment_method', values_callable=_enum_values),
        nullable=False
    )
    payment_id = Column(String(100), nullable=True)  # Gateway payment reference, NULL for COD
    tracking_id = Column(String(12), nullable=False, unique=True, index=True)
    shipment_tracking_number = Column(String(64), nullable=True)
    discount_id = Column(BigInteger, ForeignKey('discount.id'), nullable=True)
    status_timeline = Column(JSON, nullable=False, default=list)
    cancellation_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    
    # Relationships
    user = relationship('AppUser')
    items = relationship('OrderItem', back_populates='order', cascade='all, delete-orphan', order_by='OrderItem.id')
    payment = relationship('Payment', back_populates='order', uselist=False, cascade='all, delete-orphan')
    discount = relationship('Discount')
    
    @property
    def customer_email(self):
        return (self.customer_info or {}).get('email')
    
    def __repr__(self):
        return f"<Order(id={self.id}, tracking_id='{self.tracking_id}', status={self.status.value})>"
