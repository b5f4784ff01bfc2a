"""
Audit Log model for tracking operator actions on orders, stock and discounts.
"""
from sqlalchemy import Column, BigInteger, String, Text, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
import enum
import json

from farmstore.database import Base, BigIntPK


class AuditAction(enum.Enum):
    """Enumeration of auditable actions."""
    # Orders
    ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED"
    ORDER_CANCELLATION_APPROVED = "ORDER_CANCELLATION_APPROVED"
    ORDER_CANCELLATION_REJECTED = "ORDER_CANCELLATION_REJECTED"
    
    # Stock
    STOCK_ADJUSTED = "STOCK_ADJUSTED"
    
    # Discounts
    DISCOUNT_CREATED = "DISCOUNT_CREATED"
    DISCOUNT_UPDATED = "DISCOUNT_UPDATED"
    DISCOUNT_DELETED = "DISCOUNT_DELETED"


class AuditLog(Base):
    """Audit log entry written by back-office actions."""
    __tablename__ = 'audit_log'
    
    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    admin_user_id = Column(BigInteger, nullable=True)
    action = Column(SQLEnum(AuditAction), nullable=False, index=True)
    resource_type = Column(String(50))  # e.g., 'order', 'variant', 'discount'
    resource_id = Column(BigInteger)
    details = Column(Text)  # JSON with additional details
    ip_address = Column(String(45))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), index=True)
    
    def to_dict(self):
        return {
            'id': self.id,
            'adminUserId': self.admin_user_id,
            'action': self.action.value,
            'resourceType': self.resource_type,
            'resourceId': self.resource_id,
            'details': json.loads(self.details) if self.details else None,
            'ipAddress': self.ip_address,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
    
    def __repr__(self):
        return f"<AuditLog {self.action.value} on {self.resource_type} {self.resource_id}>"
