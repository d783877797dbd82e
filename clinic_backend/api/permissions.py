"""Permission catalog API router."""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from clinic_backend.db.session import get_db
from clinic_backend.schemas.schemas import PermissionCreate, PermissionOut, MessageResponse
from clinic_backend.services.audit_service import audit_service
from clinic_backend.services.permission_service import permission_service
from clinic_backend.core.config import settings
from clinic_backend.core.permissions import Permissions
from clinic_backend.core.security import Principal, RequirePermission

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.get("/")
async def list_permissions(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.VIEW_PERMISSIONS)),
):
    """List permissions by name."""
    result = permission_service.list_permissions(db, page, size)
    result["items"] = [PermissionOut.model_validate(p) for p in result["items"]]
    return result


@router.get("/{permission_id}", response_model=PermissionOut)
async def get_permission(
    permission_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.VIEW_PERMISSIONS)),
):
    return permission_service.get_permission(db, permission_id)


@router.post("/", response_model=PermissionOut, status_code=201)
async def create_permission(
    body: PermissionCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.CREATE_PERMISSIONS)),
):
    permission = permission_service.create_permission(db, body.name)
    audit_service.log_from_request(
        db, request, principal, "permission.created", "permission", permission.id,
        {"name": body.name},
    )
    return permission


@router.put("/{permission_id}", response_model=PermissionOut)
async def update_permission(
    permission_id: int,
    body: PermissionCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.UPDATE_PERMISSIONS)),
):
    permission = permission_service.update_permission(db, permission_id, body.name)
    audit_service.log_from_request(
        db, request, principal, "permission.renamed", "permission", permission_id,
        {"name": body.name},
    )
    return permission


@router.delete("/{permission_id}", response_model=MessageResponse)
async def delete_permission(
    permission_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.DELETE_PERMISSIONS)),
):
    """Delete a permission no role references."""
    permission_service.delete_permission(db, permission_id)
    audit_service.log_from_request(
        db, request, principal, "permission.deleted", "permission", permission_id,
    )
    return MessageResponse(message="Permission deleted")
