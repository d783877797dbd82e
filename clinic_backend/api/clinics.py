"""Clinics API router."""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from clinic_backend.db.session import get_db
from clinic_backend.schemas.schemas import ClinicCreate, ClinicOut
from clinic_backend.services.audit_service import audit_service
from clinic_backend.services.clinic_service import clinic_service
from clinic_backend.core.config import settings
from clinic_backend.core.permissions import Permissions
from clinic_backend.core.security import Principal, RequirePermission

router = APIRouter(prefix="/clinics", tags=["clinics"])


@router.get("/")
async def list_clinics(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.VIEW_CLINICS)),
):
    return clinic_service.list_clinics(db, page, size)


@router.post("/", response_model=ClinicOut, status_code=201)
async def create_clinic(
    body: ClinicCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.CREATE_CLINICS)),
):
    result = clinic_service.create_clinic(
        db,
        body.name,
        body.phone_number,
        body.city,
        street=body.street,
        details=body.details,
        description=body.description,
        doctor_ids=body.doctor_ids,
    )
    audit_service.log_from_request(
        db, request, principal, "clinic.created", "clinic", result["id"],
        {"name": body.name},
    )
    return result
