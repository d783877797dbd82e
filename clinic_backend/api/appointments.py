"""Appointments API router — scoped listing and the booking workflow."""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from clinic_backend.db.session import get_db
from clinic_backend.schemas.schemas import (
    AppointmentBook, AppointmentRequest, AppointmentAccept,
    AppointmentConfirm, AppointmentUpdate, AppointmentOut,
)
from clinic_backend.services.appointment_service import appointment_service
from clinic_backend.services.audit_service import audit_service
from clinic_backend.services.query_filters import list_appointments as scoped_appointments
from clinic_backend.core.config import settings
from clinic_backend.core.permissions import Permissions
from clinic_backend.core.security import Principal, RequirePermission

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.get("/")
async def list_appointments(
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.VIEW_APPOINTMENTS)),
):
    """Appointments visible to the caller, oldest first."""
    return scoped_appointments(db, principal, page, size)


@router.get("/{appointment_id}", response_model=AppointmentOut)
async def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.VIEW_APPOINTMENTS)),
):
    return appointment_service.get_appointment(db, principal, appointment_id)


@router.post("/", response_model=AppointmentOut, status_code=201)
async def book_appointment(
    body: AppointmentBook,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.CREATE_APPOINTMENTS)),
):
    """Staff books a scheduled appointment for a patient."""
    result = appointment_service.book_by_staff(
        db, principal, body.patient_id, body.doctor_clinic_id, body.date, body.reason,
    )
    audit_service.log_from_request(
        db, request, principal, "appointment.booked", "appointment", result["id"],
        {"patient_id": body.patient_id, "doctor_clinic_id": body.doctor_clinic_id},
    )
    return result


@router.post("/request", response_model=AppointmentOut, status_code=201)
async def request_appointment(
    body: AppointmentRequest,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.BOOK_APPOINTMENTS)),
):
    """Patient asks for an appointment without a date."""
    result = appointment_service.request_by_patient(
        db, principal, body.doctor_clinic_id, body.reason,
    )
    audit_service.log_from_request(
        db, request, principal, "appointment.requested", "appointment", result["id"],
    )
    return result


@router.post("/{appointment_id}/accept", response_model=AppointmentOut)
async def accept_appointment(
    appointment_id: int,
    body: AppointmentAccept,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.ACCEPT_APPOINTMENTS)),
):
    result = appointment_service.accept_by_staff(
        db, principal, appointment_id, body.proposed_date, body.version,
    )
    audit_service.log_from_request(
        db, request, principal, "appointment.accepted", "appointment", appointment_id,
        {"proposed_date": body.proposed_date.isoformat()},
    )
    return result


@router.post("/{appointment_id}/confirm", response_model=AppointmentOut)
async def confirm_appointment(
    appointment_id: int,
    body: AppointmentConfirm,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.CONFIRM_APPOINTMENTS)),
):
    """Patient accepts or declines the proposed date."""
    result = appointment_service.confirm_by_patient(
        db, principal, appointment_id, body.is_accepted, body.version,
    )
    action = "appointment.confirmed" if body.is_accepted else "appointment.declined"
    audit_service.log_from_request(db, request, principal, action, "appointment", appointment_id)
    return result


@router.put("/{appointment_id}", response_model=AppointmentOut)
async def update_appointment(
    appointment_id: int,
    body: AppointmentUpdate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.UPDATE_APPOINTMENTS)),
):
    result = appointment_service.update_details(
        db, principal, appointment_id, body.date, body.reason, body.status_id, body.version,
    )
    audit_service.log_from_request(
        db, request, principal, "appointment.updated", "appointment", appointment_id,
        {"status_id": result["status_id"]},
    )
    return result
