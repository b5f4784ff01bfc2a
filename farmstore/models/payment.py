"""Payment model for gateway-paid orders."""
from sqlalchemy import Column, BigInteger, String, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from farmstore.database import Base, BigIntPK


class Payment(Base):
    """
    Payment - one per electronically paid order.
    
    Cash-on-delivery orders have no Payment row.
    """
    
    __tablename__ = 'payment'
    
    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    order_id = Column(BigInteger, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, unique=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=True, index=True)
    razorpay_payment_id = Column(String(100), nullable=False)
    razorpay_order_id = Column(String(100), nullable=True)
    amount = Column(Numeric(10, 2), nullable=False)
    currency = Column(String(3), nullable=False, default='INR')
    status = Column(String(20), nullable=False, default='completed')
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    
    # Relationships
    order = relationship('Order', back_populates='payment')
    
    def __repr__(self):
        return f"<Payment(id={self.id}, order_id={self.order_id}, amount={self.amount})>"
