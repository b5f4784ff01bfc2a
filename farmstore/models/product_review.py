"""Product Review model."""
from sqlalchemy import Column, BigInteger, String, Boolean, Integer, Text, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from farmstore.database import Base, BigIntPK


class ProductReview(Base):
    """Rating left by a customer for a product from one of their orders."""
    
    __tablename__ = 'product_review'
    __table_args__ = (
        UniqueConstraint('user_id', 'product_id', 'order_id', name='uq_product_review_user_product_order'),
    )
    
    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    product_id = Column(BigInteger, ForeignKey('product.id'), nullable=False, index=True)
    user_id = Column(BigInteger, ForeignKey('app_user.id'), nullable=True)
    order_id = Column(BigInteger, ForeignKey('orders.id'), nullable=True)
    customer_name = Column(String(200), nullable=True)
    rating = Column(Integer, nullable=False)
    review_text = Column(Text, nullable=True)
    verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    
    def to_dict(self):
        return {
            'id': self.id,
            'productId': self.product_id,
            'userId': self.user_id,
            'orderId': self.order_id,
            'customerName': self.customer_name,
            'rating': self.rating,
            'reviewText': self.review_text,
            'verified': self.verified,
        }
    
    def __repr__(self):
        return f"<ProductReview(id={self.id}, product_id={self.product_id}, rating={self.rating})>"
