"""Password hashing, JWT handling and permission-based request guards."""

import bcrypt
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from admin_backend.core.config import settings
from admin_backend.core.exceptions import unauthorized
from admin_backend.core.rbac import Role, has_permission, is_admin_role, normalize_role

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash; malformed hashes never verify."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise unauthorized("Invalid or expired token")


@dataclass(frozen=True)
class Principal:
    """The authenticated admin behind a request."""

    admin_id: Optional[str]
    role: Role
    ip_address: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return is_admin_role(self.role)


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> Principal:
    """Build the principal from the bearer token; the role is normalized."""
    if credentials is None:
        raise unauthorized()
    payload = decode_token(credentials.credentials)
    if payload.get("type") != "access":
        raise unauthorized("Invalid token type")
    sub = payload.get("sub")
    return Principal(
        admin_id=str(sub) if sub is not None else None,
        role=normalize_role(payload.get("role")),
        ip_address=getattr(request.state, "client_ip", None),
    )


class RequirePermission:
    """Dependency that checks the caller's role against a permission."""

    def __init__(self, permission: str):
        self.permission = permission

    async def __call__(self, principal: Principal = Depends(get_current_principal)) -> Principal:
        if not has_permission(principal.role, self.permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{principal.role.value}' lacks permission '{self.permission}'.",
            )
        return principal


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    """Any administrative role; marketplace participants are rejected."""
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return principal


# Convenience dependency factories
require_audit_view = RequirePermission("audit:view")
require_audit_export = RequirePermission("audit:export")
