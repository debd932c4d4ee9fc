"""Admin API router: permissions, step-up, masking and action execution."""

from dataclasses import asdict

from fastapi import APIRouter, BackgroundTasks, Depends

from admin_backend.core.exceptions import ReauthFailed, forbidden
from admin_backend.core.rbac import has_permission, permissions_for_role, session_timeout_for
from admin_backend.core.security import Principal, get_current_principal, require_admin
from admin_backend.schemas.schemas import (
    ActionInvocation, ActionResultOut, ConfirmationPromptOut, MaskRequest,
    PrincipalOut, ReauthRequest, ReauthResult,
)
from admin_backend.services.action_pipeline import DENIED_MESSAGE, ActionPipeline, build_prompt
from admin_backend.services.action_registry import ActionRegistry
from admin_backend.services.audit_service import AuditTrail
from admin_backend.services.identity_service import IdentityVerifier
from admin_backend.services.masking_service import apply_masking, mask_level_for
from admin_backend.api.deps import get_action_registry, get_audit_trail, get_identity

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/me/permissions", response_model=PrincipalOut)
async def my_permissions(principal: Principal = Depends(get_current_principal)):
    """Role, admin flag and the concrete permission list for the caller."""
    return PrincipalOut(
        admin_id=principal.admin_id,
        role=principal.role.value,
        is_admin=principal.is_admin,
        permissions=sorted(permissions_for_role(principal.role)),
        session_timeout_seconds=session_timeout_for(principal.role),
    )


@router.post("/auth/reauth", response_model=ReauthResult)
async def reauthenticate(
    body: ReauthRequest,
    identity: IdentityVerifier = Depends(get_identity),
    principal: Principal = Depends(require_admin),
):
    """Step-up check for the calling admin."""
    result = await identity.reauthenticate(body.password)
    if not result.success:
        raise ReauthFailed(result.error)
    return result


@router.post("/mask")
async def mask_record(
    body: MaskRequest,
    principal: Principal = Depends(get_current_principal),
):
    """Apply PII masking to a record for the caller's role."""
    return {
        "level": mask_level_for(principal.role).value,
        "record": apply_masking(body.record, principal.role),
    }


@router.get("/actions")
async def list_actions(
    registry: ActionRegistry = Depends(get_action_registry),
    principal: Principal = Depends(require_admin),
):
    """Registered actions the caller may run."""
    return {
        "actions": [
            name for name in registry.names()
            if has_permission(principal.role, registry.get(name).permission)
        ]
    }


@router.get("/actions/{name}/prompt", response_model=ConfirmationPromptOut)
async def action_prompt(
    name: str,
    registry: ActionRegistry = Depends(get_action_registry),
    principal: Principal = Depends(get_current_principal),
):
    """Confirmation prompt to render before running ``name``."""
    request = registry.build_request(name, principal)
    if not has_permission(principal.role, request.permission):
        raise forbidden(DENIED_MESSAGE)
    return ConfirmationPromptOut(**asdict(build_prompt(request)))


@router.post("/actions/{name}", response_model=ActionResultOut)
async def run_action(
    name: str,
    body: ActionInvocation,
    background_tasks: BackgroundTasks,
    registry: ActionRegistry = Depends(get_action_registry),
    trail: AuditTrail = Depends(get_audit_trail),
    identity: IdentityVerifier = Depends(get_identity),
    principal: Principal = Depends(get_current_principal),
):
    """Run a registered action through the pipeline with the user's confirmation input."""
    request = registry.build_request(name, principal, body.target_id, body.payload)
    pipeline = ActionPipeline(trail, identity)
    # Audit writes finish after the response is sent.
    background_tasks.add_task(pipeline.drain)

    # PermissionDenied and ValidationError map to 403 and 400 via the app handler.
    pipeline.begin(request)
    outcome = await pipeline.confirm(body.reason, body.credential)
    if not outcome.ok:
        await pipeline.drain()
        outcome.raise_for_status()
    return ActionResultOut(status=outcome.status, result=outcome.result)
