"""Product Variant model - the purchasable unit that carries price and stock."""
from decimal import Decimal
from sqlalchemy import Column, BigInteger, String, Boolean, Integer, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from farmstore.database import Base, BigIntPK


class ProductVariant(Base):
    """Product Variant (a pack size / price point of a product)."""
    
    __tablename__ = 'product_variant'
    __table_args__ = (
        CheckConstraint('stock_quantity >= 0', name='ck_product_variant_stock_non_negative'),
    )
    
    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False, index=True)
    price = Column(Numeric(10, 2), nullable=False)
    discount_price = Column(Numeric(10, 2), nullable=True)
    quantity = Column(Numeric(10, 2), nullable=False, default=1)  # Pack size, e.g. 1 (kg)
    unit = Column(String(20), nullable=False, default='unit')
    stock_quantity = Column(Integer, nullable=False, default=0)
    sku = Column(String(64), nullable=False, unique=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    
    # Relationships
    product = relationship('Product', back_populates='variants')
    
    @property
    def effective_price(self):
        """Price charged right now: discount price when set, else list price."""
        if self.discount_price is not None and self.discount_price > 0:
            return self.discount_price
        return self.price
    
    @property
    def pack_label(self):
        """Human readable pack size, e.g. '1kg' or '500g'."""
        qty = Decimal(str(self.quantity if self.quantity is not None else 1))
        if qty == qty.to_integral_value():
            qty = int(qty)
        return f"{qty}{self.unit}"
    
    def __repr__(self):
        return f"<ProductVariant(id={self.id}, sku='{self.sku}', stock={self.stock_quantity})>"
