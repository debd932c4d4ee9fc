"""Seed the super-admin account from env vars."""

import logging

from sqlalchemy.orm import Session

from admin_backend.core.config import settings
from admin_backend.core.rbac import Role
from admin_backend.core.security import hash_password
from admin_backend.models.admin_user import AdminUser

logger = logging.getLogger("admin_console.seed")


def seed_super_admin(db: Session) -> AdminUser:
    """Create the super-admin account if not already present."""
    existing = db.query(AdminUser).filter(AdminUser.email == settings.SUPER_ADMIN_EMAIL).first()
    if existing:
        logger.info("Super admin '%s' already exists, skipping.", settings.SUPER_ADMIN_EMAIL)
        return existing

    admin = AdminUser(
        email=settings.SUPER_ADMIN_EMAIL,
        hashed_password=hash_password(settings.SUPER_ADMIN_PASSWORD),
        full_name="Super Admin",
        role=Role.SUPER_ADMIN.value,
        is_active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info("Created super admin: %s", settings.SUPER_ADMIN_EMAIL)
    return admin
