"""Doctors API router."""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from clinic_backend.db.session import get_db
from clinic_backend.schemas.schemas import DoctorCreate, DoctorOut
from clinic_backend.services.audit_service import audit_service
from clinic_backend.services.doctor_service import doctor_service
from clinic_backend.core.config import settings
from clinic_backend.core.permissions import Permissions
from clinic_backend.core.security import Principal, RequirePermission

router = APIRouter(prefix="/doctors", tags=["doctors"])


@router.get("/")
async def list_doctors(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.VIEW_DOCTORS)),
):
    return doctor_service.list_doctors(db, page, size)


@router.post("/", response_model=DoctorOut, status_code=201)
async def create_doctor(
    body: DoctorCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.CREATE_DOCTORS)),
):
    """Create a doctor working at one clinic, with a doctor login."""
    result = doctor_service.create_doctor(
        db,
        body.first_name,
        body.father_name,
        body.last_name,
        body.national_number,
        body.clinic_id,
        body.email,
        body.password,
        phone_number=body.phone_number,
        birth_date=body.birth_date,
        address=body.address,
        description=body.description,
        image=body.image,
    )
    audit_service.log_from_request(
        db, request, principal, "doctor.created", "doctor", result["id"],
        {"clinic_id": body.clinic_id},
    )
    return result
