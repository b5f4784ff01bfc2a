"""Order Item model."""
from sqlalchemy import Column, BigInteger, Integer, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from farmstore.database import Base, BigIntPK


class OrderItem(Base):
    """Order Item. price is the unit price captured at purchase time."""
    
    __tablename__ = 'order_item'
    
    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    order_id = Column(BigInteger, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False)
    variant_id = Column(BigInteger, ForeignKey('product_variant.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    
    # Relationships
    order = relationship('Order', back_populates='items')
    product = relationship('Product')
    variant = relationship('ProductVariant')
    
    @property
    def line_total(self):
        return self.price * self.quantity
    
    def __repr__(self):
        return f"<OrderItem(id={self.id}, variant_id={self.variant_id}, qty={self.quantity}, price={self.price})>"
