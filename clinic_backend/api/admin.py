"""Admin / Audit API router."""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from clinic_backend.db.session import get_db
from clinic_backend.schemas.schemas import AuditLogOut
from clinic_backend.services.audit_service import audit_service
from clinic_backend.core.permissions import Permissions
from clinic_backend.core.security import Principal, RequirePermission

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/audit")
async def get_audit_logs(
    action: Optional[str] = Query(None),
    resource_type: Optional[str] = Query(None),
    actor_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.VIEW_AUDIT_LOGS)),
):
    """Query audit logs, newest first."""
    result = audit_service.query_logs(db, actor_id, action, resource_type, page, page_size)
    result["items"] = [AuditLogOut.model_validate(entry) for entry in result["items"]]
    return result
