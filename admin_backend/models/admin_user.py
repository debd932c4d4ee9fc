"""Admin account model."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from admin_backend.db.base import Base


class AdminUser(Base):
    """Console operator; the password hash backs step-up re-authentication."""
    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default="guest")
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
