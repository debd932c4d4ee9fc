"""Audit API router."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse

from admin_backend.core.security import Principal, require_admin, require_audit_export, require_audit_view
from admin_backend.schemas.schemas import AuditEntry, AuditEntryIn, AuditFilters, AuditPage
from admin_backend.services.audit_service import AuditTrail, to_csv
from admin_backend.api.deps import get_audit_trail

router = APIRouter(prefix="/admin/audit", tags=["audit"])


def audit_filters(
    action: Optional[str] = Query(None),
    admin_id: Optional[str] = Query(None),
    target_type: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
) -> AuditFilters:
    return AuditFilters(
        action=action, admin_id=admin_id, target_type=target_type, start=start, end=end,
    )


@router.get("", response_model=AuditPage)
async def query_audit(
    filters: AuditFilters = Depends(audit_filters),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    trail: AuditTrail = Depends(get_audit_trail),
    principal: Principal = Depends(require_audit_view),
):
    """Filtered, newest-first audit entries."""
    return await trail.query(filters, page, page_size)


@router.get("/export")
async def export_audit(
    filters: AuditFilters = Depends(audit_filters),
    format: str = Query("json", pattern="^(json|csv)$"),
    trail: AuditTrail = Depends(get_audit_trail),
    principal: Principal = Depends(require_audit_export),
):
    """Full filtered set for bulk download."""
    entries = await trail.export_all(filters)
    if format == "csv":
        return PlainTextResponse(
            to_csv(entries),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=audit_log.csv"},
        )
    return {"entries": [e.model_dump(mode="json") for e in entries], "total": len(entries)}


@router.post("", response_model=AuditEntry, status_code=201)
async def append_audit(
    body: AuditEntryIn,
    trail: AuditTrail = Depends(get_audit_trail),
    principal: Principal = Depends(require_admin),
):
    """Record a client-side admin action; identity fields come from the token."""
    entry = body.model_copy(update={
        "admin_id": principal.admin_id,
        "admin_role": principal.role.value,
        "ip_address": principal.ip_address,
    })
    return await trail.append(entry)
