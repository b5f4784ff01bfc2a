"""Product model."""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from farmstore.database import Base, BigIntPK


class Product(Base):
    """Product model. Prices and stock live on its variants."""
    
    __tablename__ = 'product'
    
    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100), nullable=True)
    image_url = Column(String(500), nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    
    # Relationships
    variants = relationship('ProductVariant', back_populates='product', order_by='ProductVariant.id')
    
    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}')>"
