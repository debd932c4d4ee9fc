"""Identity collaborator for step-up re-authentication."""

import asyncio
import logging
from typing import Callable, Optional, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from admin_backend.core.security import verify_password
from admin_backend.models.admin_user import AdminUser
from admin_backend.schemas.schemas import ReauthResult

logger = logging.getLogger("admin_console.identity")

REAUTH_REJECTED = "Re-authentication failed."


class IdentityVerifier(Protocol):
    async def reauthenticate(self, credential: str) -> ReauthResult:
        ...


class PasswordReauthenticator:
    """Checks a re-entered password against the admin's stored bcrypt hash.

    Unknown account, inactive account and wrong password all produce the
    same message.
    """

    def __init__(self, session_factory: Callable[[], Session], admin_id: Optional[str]):
        self._session_factory = session_factory
        self.admin_id = admin_id

    async def reauthenticate(self, credential: str) -> ReauthResult:
        if not credential or self.admin_id is None:
            return ReauthResult(success=False, error=REAUTH_REJECTED)
        try:
            ok = await asyncio.to_thread(self._check, credential)
        except SQLAlchemyError as e:
            logger.error("Re-authentication lookup failed for admin %s: %s", self.admin_id, e)
            return ReauthResult(success=False, error=REAUTH_REJECTED)
        if not ok:
            logger.info("Re-authentication rejected for admin %s", self.admin_id)
            return ReauthResult(success=False, error=REAUTH_REJECTED)
        return ReauthResult(success=True)

    def _check(self, credential: str) -> bool:
        db = self._session_factory()
        try:
            try:
                admin_pk = int(self.admin_id)
            except (TypeError, ValueError):
                return False
            admin = db.query(AdminUser).filter(AdminUser.id == admin_pk).first()
            if admin is None or not admin.is_active:
                return False
            return verify_password(credential, admin.hashed_password)
        finally:
            db.close()
