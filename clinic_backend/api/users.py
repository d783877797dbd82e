"""Users API router for role memberships and effective permissions."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from clinic_backend.db.session import get_db, transaction
from clinic_backend.schemas.schemas import UserRoleInfo, MessageResponse
from clinic_backend.services.audit_service import audit_service
from clinic_backend.services.identity_service import identity_service
from clinic_backend.services.permission_service import permission_service
from clinic_backend.core.permissions import Permissions
from clinic_backend.core.security import Principal, RequirePermission

router = APIRouter(prefix="/users", tags=["users"])

require_manage_users = RequirePermission(Permissions.MANAGE_USERS)


@router.get("/{user_id}/permissions", response_model=UserRoleInfo)
async def get_user_permissions(
    user_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_manage_users),
):
    """Roles held by a user and the permissions they resolve to."""
    return permission_service.get_user_role_info(db, user_id)


@router.post("/{user_id}/roles/{role_name}", response_model=MessageResponse)
async def add_user_to_role(
    user_id: int,
    role_name: str,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_manage_users),
):
    with transaction(db):
        identity_service.add_to_role(db, user_id, role_name)
    audit_service.log_from_request(
        db, request, principal, "user.role_added", "user", user_id, {"role": role_name},
    )
    return MessageResponse(message=f"User added to role {role_name}")


@router.delete("/{user_id}/roles/{role_name}", response_model=MessageResponse)
async def remove_user_from_role(
    user_id: int,
    role_name: str,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_manage_users),
):
    with transaction(db):
        identity_service.remove_from_role(db, user_id, role_name)
    audit_service.log_from_request(
        db, request, principal, "user.role_removed", "user", user_id, {"role": role_name},
    )
    return MessageResponse(message=f"User removed from role {role_name}")
