"""Shared dependencies for the admin routers."""

from fastapi import Depends

from admin_backend.core.security import Principal, get_current_principal
from admin_backend.db.session import SessionLocal
from admin_backend.services.action_registry import ActionRegistry, action_registry
from admin_backend.services.audit_service import AuditTrail, audit_trail
from admin_backend.services.identity_service import IdentityVerifier, PasswordReauthenticator


def get_audit_trail() -> AuditTrail:
    return audit_trail


def get_action_registry() -> ActionRegistry:
    return action_registry


def get_identity(principal: Principal = Depends(get_current_principal)) -> IdentityVerifier:
    """Identity collaborator bound to the calling admin."""
    return PasswordReauthenticator(SessionLocal, principal.admin_id)
