"""Audit log model (append-only)."""

from sqlalchemy import Column, String, Text, DateTime
from admin_backend.db.base import Base


class AuditLog(Base):
    """Durable copy of every audit entry written by the console.

    This table is APPEND-ONLY: no UPDATE or DELETE operations should ever
    be performed on it (enforced at application level). Timestamps are
    stored as naive UTC.
    """
    __tablename__ = "audit_logs"

    id = Column(String(64), primary_key=True)  # audit_<epoch ms>_<random>
    action = Column(String(100), nullable=False, index=True)  # e.g. "user.suspend"
    target_id = Column(String(100), nullable=True)
    target_type = Column(String(50), nullable=True, index=True)  # user, listing, payment, etc.
    details = Column(Text, nullable=False, default="")
    admin_id = Column(String(100), nullable=True, index=True)
    admin_role = Column(String(50), nullable=True)
    ip_address = Column(String(45), nullable=True)
    timestamp = Column(DateTime, nullable=False, index=True)
