"""AdminUser model - back-office operators."""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from farmstore.database import Base, BigIntPK
from farmstore.models.mixins import PasswordMixin


class AdminUser(PasswordMixin, Base):
    """Operator managing orders, stock and discounts.
    
    Logged in through session['admin_user_id'], never through the shopper
    login; deactivated operators keep their audit history.
    """
    
    __tablename__ = 'admin_users'
    
    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(200), nullable=True)
    password_hash = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    last_login = Column(DateTime(timezone=True), nullable=True)
    
    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'lastLogin': self.last_login.isoformat() if self.last_login else None,
        }
    
    def __repr__(self):
        return f"<AdminUser(id={self.id}, email='{self.email}')>"
