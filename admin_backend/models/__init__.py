"""Models package; import all models so metadata.create_all can discover them."""

from admin_backend.models.admin_user import AdminUser
from admin_backend.models.audit_log import AuditLog

__all__ = ["AdminUser", "AuditLog"]
