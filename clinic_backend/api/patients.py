"""Patients API router."""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from clinic_backend.db.session import get_db
from clinic_backend.schemas.schemas import PatientCreate, PatientOut
from clinic_backend.services.audit_service import audit_service
from clinic_backend.services.patient_service import patient_service
from clinic_backend.core.config import settings
from clinic_backend.core.permissions import Permissions
from clinic_backend.core.security import Principal, RequirePermission

router = APIRouter(prefix="/patients", tags=["patients"])


@router.get("/")
async def list_patients(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.VIEW_PATIENTS)),
):
    """Patients visible to the caller."""
    return patient_service.list_patients(db, principal, page, size)


@router.post("/", response_model=PatientOut, status_code=201)
async def register_patient(
    body: PatientCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.CREATE_PATIENTS)),
):
    """Register a patient and, when credentials are given, their login."""
    result = patient_service.register_patient(
        db,
        body.first_name,
        body.father_name,
        body.last_name,
        body.national_number,
        patient_code=body.patient_code,
        birth_date=body.birth_date,
        address=body.address,
        email=body.email,
        password=body.password,
        phone_number=body.phone_number,
    )
    audit_service.log_from_request(
        db, request, principal, "patient.registered", "patient", result["id"],
    )
    return result
