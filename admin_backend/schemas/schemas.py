"""Pydantic schemas for audit entries and API request/response serialization."""

import secrets
import time
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from pydantic import BaseModel, Field, field_validator


def utc(value: Optional[datetime]) -> Optional[datetime]:
    """Coerce a datetime to aware UTC; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def new_audit_id() -> str:
    """audit_<epoch ms>_<random suffix>; unique across writers without coordination."""
    return f"audit_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


# ---- Audit ----
class AuditEntryIn(BaseModel):
    action: str = Field(..., min_length=1, max_length=100)
    target_id: Optional[str] = None
    target_type: Optional[str] = None
    details: str = ""
    admin_id: Optional[str] = None
    admin_role: Optional[str] = None
    ip_address: Optional[str] = None

    @field_validator("target_id", "admin_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value):
        return None if value is None or value == "" else str(value)


class AuditEntry(AuditEntryIn):
    """Immutable audit record."""

    id: str
    timestamp: datetime

    class Config:
        frozen = True
        from_attributes = True

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, value: datetime) -> datetime:
        return utc(value)

    @classmethod
    def create(cls, entry: AuditEntryIn) -> "AuditEntry":
        return cls(
            id=new_audit_id(),
            timestamp=datetime.now(timezone.utc),
            **entry.model_dump(),
        )


class AuditFilters(BaseModel):
    action: Optional[str] = None
    admin_id: Optional[str] = None
    target_type: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @field_validator("start", "end")
    @classmethod
    def _aware_bounds(cls, value: Optional[datetime]) -> Optional[datetime]:
        return utc(value)

    @field_validator("admin_id", mode="before")
    @classmethod
    def _stringify_admin(cls, value):
        return None if value is None or value == "" else str(value)


class AuditPage(BaseModel):
    entries: List[AuditEntry]
    total: int
    page: int
    page_size: int
    source: str = "durable"


# ---- Identity ----
class ReauthRequest(BaseModel):
    password: str = Field(..., min_length=1)


class ReauthResult(BaseModel):
    success: bool
    error: Optional[str] = None


class PrincipalOut(BaseModel):
    admin_id: Optional[str] = None
    role: str
    is_admin: bool
    permissions: List[str] = []
    session_timeout_seconds: int


# ---- Actions ----
class ActionInvocation(BaseModel):
    target_id: Optional[str] = None
    reason: Optional[str] = None
    credential: Optional[str] = None
    payload: Dict[str, Any] = {}


class ConfirmationPromptOut(BaseModel):
    title: str
    message: str
    confirm_label: str
    risk: str
    critical: bool
    require_reason: bool
    require_credential: bool
    warning: Optional[str] = None

    class Config:
        from_attributes = True


class ActionResultOut(BaseModel):
    status: str
    result: Optional[Any] = None
    message: Optional[str] = None


# ---- Masking ----
class MaskRequest(BaseModel):
    record: Dict[str, Any]
