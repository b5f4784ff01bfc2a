"""Discount Usage model - one row per redemption."""
from sqlalchemy import Column, BigInteger, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from farmstore.database import Base, BigIntPK


class DiscountUsage(Base):
    """Discount Usage (redemption ledger used for limit enforcement)."""
    
    __tablename__ = 'discount_usage'
    __table_args__ = (
        UniqueConstraint('discount_id', 'order_id', name='uq_discount_usage_discount_order'),
    )
    
    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    discount_id = Column(BigInteger, ForeignKey('discount.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=True, index=True)
    session_id = Column(String(64), nullable=True)
    order_id = Column(BigInteger, ForeignKey('orders.id'), nullable=True)
    used_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    
    # Relationships
    discount = relationship('Discount', back_populates='usages')
    
    def to_dict(self):
        return {
            'id': self.id,
            'discountId': self.discount_id,
            'userId': self.user_id,
            'sessionId': self.session_id,
            'orderId': self.order_id,
        }
    
    def __repr__(self):
        return f"<DiscountUsage(discount_id={self.discount_id}, user_id={self.user_id}, order_id={self.order_id})>"
