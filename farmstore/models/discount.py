"""Discount model."""
from sqlalchemy import Column, String, Boolean, Integer, Numeric, DateTime, Enum, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from farmstore.database import Base, BigIntPK
import enum


class DiscountType(str, enum.Enum):
    """Discount type enum."""
    PERCENTAGE = 'percentage'
    FIXED = 'fixed'


class Discount(Base):
    """Discount code with usage limits and an active date window."""
    
    __tablename__ = 'discount'
    
    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    code = Column(String(50), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    type = Column(
        Enum(DiscountType, name='discount_type', values_callable=lambda e: [m.value for m in e]),
        nullable=False
    )
    value = Column(Numeric(10, 2), nullable=False)
    min_purchase = Column(Numeric(10, 2), nullable=False, default=0)
    usage_limit = Column(Integer, nullable=True)  # NULL or 0 = unlimited
    per_user = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    used = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    
    # Relationships
    usages = relationship('DiscountUsage', back_populates='discount', cascade='all, delete-orphan')
    
    @property
    def has_usage_limit(self):
        return bool(self.usage_limit and self.usage_limit > 0)
    
    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'description': self.description,
            'type': self.type.value,
            'value': float(self.value),
            'minPurchase': float(self.min_purchase or 0),
            'usageLimit': self.usage_limit,
            'perUser': self.per_user,
            'isActive': self.is_active,
            'startDate': self.start_date.isoformat() if self.start_date else None,
            'endDate': self.end_date.isoformat() if self.end_date else None,
            'used': self.used,
        }
    
    def __repr__(self):
        return f"<Discount(id={self.id}, code='{self.code}', used={self.used})>"
