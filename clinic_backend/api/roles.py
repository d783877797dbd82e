"""Roles API router."""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from clinic_backend.db.session import get_db
from clinic_backend.schemas.schemas import (
    RoleCreate, RoleUpdate, RoleOut, AssignPermissionsRequest, PermissionOut, MessageResponse,
)
from clinic_backend.services.audit_service import audit_service
from clinic_backend.services.permission_service import permission_service
from clinic_backend.core.config import settings
from clinic_backend.core.permissions import Permissions
from clinic_backend.core.security import Principal, RequirePermission

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("/")
async def list_roles(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.VIEW_ROLES)),
):
    """List roles with their permissions."""
    result = permission_service.list_roles(db, page, size)
    result["items"] = [RoleOut.model_validate(r) for r in result["items"]]
    return result


@router.get("/{role_id}", response_model=RoleOut)
async def get_role(
    role_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.VIEW_ROLES)),
):
    return permission_service.get_role(db, role_id)


@router.post("/", response_model=RoleOut, status_code=201)
async def create_role(
    body: RoleCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.CREATE_ROLES)),
):
    role = permission_service.create_role(db, body.name, body.permission_ids, body.description)
    audit_service.log_from_request(
        db, request, principal, "role.created", "role", role.id,
        {"name": body.name, "permission_ids": body.permission_ids},
    )
    return role


@router.put("/{role_id}", response_model=RoleOut)
async def update_role(
    role_id: int,
    body: RoleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.UPDATE_ROLES)),
):
    """Rename a role and replace its permissions."""
    role = permission_service.update_role(
        db, role_id, body.name, body.permission_ids, body.description,
    )
    audit_service.log_from_request(
        db, request, principal, "role.updated", "role", role_id,
        {"name": body.name, "permission_ids": body.permission_ids},
    )
    return role


@router.delete("/{role_id}", response_model=MessageResponse)
async def delete_role(
    role_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.DELETE_ROLES)),
):
    permission_service.delete_role(db, role_id)
    audit_service.log_from_request(db, request, principal, "role.deleted", "role", role_id)
    return MessageResponse(message="Role deleted")


@router.get("/{role_id}/permissions", response_model=list[PermissionOut])
async def get_role_permissions(
    role_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.VIEW_ROLES)),
):
    return permission_service.get_role_permissions(db, role_id)


@router.put("/{role_id}/permissions", response_model=RoleOut)
async def assign_permissions(
    role_id: int,
    body: AssignPermissionsRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.MANAGE_ROLE_PERMISSIONS)),
):
    """Replace the role's permission set."""
    role = permission_service.assign_permissions(db, role_id, body.permission_ids)
    audit_service.log_from_request(
        db, request, principal, "role.permissions_assigned", "role", role_id,
        {"permission_ids": body.permission_ids},
    )
    return role


@router.delete("/{role_id}/permissions/{permission_id}", response_model=MessageResponse)
async def remove_permission(
    role_id: int,
    permission_id: int,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.MANAGE_ROLE_PERMISSIONS)),
):
    permission_service.remove_permission_from_role(db, role_id, permission_id)
    audit_service.log_from_request(
        db, request, principal, "role.permission_removed", "role", role_id,
        {"permission_id": permission_id},
    )
    return MessageResponse(message="Permission removed from role")
