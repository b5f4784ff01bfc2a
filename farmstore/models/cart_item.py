"""Cart Item model - session scoped cart lines."""
from sqlalchemy import Column, BigInteger, String, Integer, DateTime, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from farmstore.database import Base, BigIntPK


class CartItem(Base):
    """Cart line owned by a browser session until checkout."""
    
    __tablename__ = 'cart_item'
    __table_args__ = (
        UniqueConstraint('session_id', 'product_id', 'variant_id', name='uq_cart_item_session_product_variant'),
        CheckConstraint('quantity > 0', name='ck_cart_item_quantity_positive'),
    )
    
    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False)
    variant_id = Column(BigInteger, ForeignKey('product_variant.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    
    # Relationships
    product = relationship('Product')
    variant = relationship('ProductVariant')
    
    def __repr__(self):
        return f"<CartItem(session={self.session_id}, variant_id={self.variant_id}, qty={self.quantity})>"
