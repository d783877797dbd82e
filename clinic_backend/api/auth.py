"""Auth API router — login, register, me, admin password reset."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from clinic_backend.db.session import get_db
from clinic_backend.schemas.schemas import (
    LoginRequest, RegisterRequest, AdminResetPasswordRequest,
    TokenResponse, UserOut, MessageResponse,
)
from clinic_backend.services.auth_service import auth_service, user_summary
from clinic_backend.services.audit_service import audit_service
from clinic_backend.services.identity_service import identity_service
from clinic_backend.core.exceptions import ValidationError
from clinic_backend.core.permissions import Permissions
from clinic_backend.core.security import Principal, RequirePermission, get_current_principal

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, db: Session = Depends(get_db)):
    """Authenticate and return a bearer token."""
    return auth_service.authenticate(db, body.email, body.password)


@router.post("/register", response_model=UserOut)
async def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Register a bare account (no role, no profile)."""
    if body.password != body.confirm_password:
        raise ValidationError("Passwords do not match.")
    user = auth_service.register(db, body.email, body.password)
    return user_summary(user)


@router.get("/me", response_model=UserOut)
async def get_me(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    """Get current user profile."""
    return user_summary(identity_service.get_user(db, principal.user_id))


@router.post("/admin-reset-password", response_model=MessageResponse)
async def admin_reset_password(
    body: AdminResetPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.MANAGE_USERS)),
):
    """Set a new password for any account."""
    auth_service.reset_password(db, body.email, body.new_password)
    audit_service.log_from_request(
        db, request, principal, "user.password_reset", "user", body.email,
    )
    return MessageResponse(message="Password reset successfully.")
