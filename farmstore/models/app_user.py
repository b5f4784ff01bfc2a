"""AppUser model - storefront customers."""
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.sql import func
from farmstore.database import Base, BigIntPK
from farmstore.models.mixins import PasswordMixin


class AppUser(PasswordMixin, Base):
    """Customer account; orders reference it, carts do not."""
    
    __tablename__ = 'app_user'
    
    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    password_hash = Column(String(255), nullable=True)
    name = Column(String(200), nullable=True)
    phone = Column(String(20), nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
    
    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'email': self.email}
    
    def __repr__(self):
        return f"<AppUser(id={self.id}, email='{self.email}')>"
