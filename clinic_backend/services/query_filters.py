"""Role-scoped filters for appointment and patient listings, plus paging.

A caller holding several roles gets the filter of the first role found in
``ROLE_PRECEDENCE``; filters are never layered. Callers with no recognised
role see nothing.
"""

import enum
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple, Dict, Any

from sqlalchemy import false, or_, select
from sqlalchemy.orm import Session, Query

from clinic_backend.core.exceptions import ValidationError
from clinic_backend.core.permissions import (
    ROLE_ADMIN, ROLE_CLINIC_STAFF, ROLE_DOCTOR, ROLE_PATIENT,
)
from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.models.clinic import ClinicEmployee, DoctorClinic
from clinic_backend.models.doctor import Doctor, Patient
from clinic_backend.models.user import User

ROLE_PRECEDENCE = (ROLE_PATIENT, ROLE_DOCTOR, ROLE_CLINIC_STAFF, ROLE_ADMIN)


class ScopeKind(str, enum.Enum):
    patient = "patient"
    doctor = "doctor"
    clinic_staff = "clinic-staff"
    admin = "admin"
    none = "none"


@dataclass(frozen=True)
class Scope:
    kind: ScopeKind
    patient_id: Optional[int] = None
    doctor_id: Optional[int] = None
    clinic_ids: Tuple[int, ...] = ()


NO_ACCESS = Scope(ScopeKind.none)


def active_clinic_ids(db: Session, person_id: int, on: Optional[date] = None) -> Tuple[int, ...]:
    """Clinics the person is assigned to on the given day (today by default)."""
    on = on or date.today()
    rows = (
        db.query(ClinicEmployee.clinic_id)
        .filter(
            ClinicEmployee.person_id == person_id,
            ClinicEmployee.from_date <= on,
            or_(ClinicEmployee.to_date.is_(None), ClinicEmployee.to_date >= on),
        )
        .distinct()
        .order_by(ClinicEmployee.clinic_id)
        .all()
    )
    return tuple(clinic_id for (clinic_id,) in rows)


def resolve_scope(db: Session, principal) -> Scope:
    """Pick the caller's filter from their role claims and linked profile."""
    if principal is None:
        return NO_ACCESS

    user = db.get(User, principal.user_id)
    party_id = user.party_id if user else None

    for role in ROLE_PRECEDENCE:
        if not principal.has_role(role):
            continue
        if role == ROLE_ADMIN:
            return Scope(ScopeKind.admin)
        if role == ROLE_PATIENT:
            patient = db.get(Patient, party_id) if party_id else None
            return Scope(ScopeKind.patient, patient_id=patient.person_id if patient else None)
        if role == ROLE_DOCTOR:
            doctor = db.get(Doctor, party_id) if party_id else None
            return Scope(ScopeKind.doctor, doctor_id=doctor.person_id if doctor else None)
        if role == ROLE_CLINIC_STAFF:
            clinic_ids = active_clinic_ids(db, party_id) if party_id else ()
            return Scope(ScopeKind.clinic_staff, clinic_ids=clinic_ids)
    return NO_ACCESS


def scope_appointments(query: Query, scope: Scope) -> Query:
    """Narrow a query over Appointment to what ``scope`` may see."""
    if scope.kind == ScopeKind.admin:
        return query
    if scope.kind == ScopeKind.patient and scope.patient_id is not None:
        return query.filter(Appointment.patient_id == scope.patient_id)
    if scope.kind == ScopeKind.doctor and scope.doctor_id is not None:
        links = select(DoctorClinic.id).where(DoctorClinic.doctor_id == scope.doctor_id)
        return query.filter(Appointment.doctor_clinic_id.in_(links))
    if scope.kind == ScopeKind.clinic_staff and scope.clinic_ids:
        links = select(DoctorClinic.id).where(DoctorClinic.clinic_id.in_(scope.clinic_ids))
        return query.filter(Appointment.doctor_clinic_id.in_(links))
    return query.filter(false())


def covers_doctor_clinic(scope: Scope, link: DoctorClinic) -> bool:
    """Whether appointments at ``link`` fall inside ``scope``.

    Patients never qualify; they reach a doctor through a request instead.
    """
    if scope.kind == ScopeKind.admin:
        return True
    if scope.kind == ScopeKind.doctor and scope.doctor_id is not None:
        return link.doctor_id == scope.doctor_id
    if scope.kind == ScopeKind.clinic_staff:
        return link.clinic_id in scope.clinic_ids
    return False


def scope_patients(query: Query, scope: Scope) -> Query:
    """Narrow a query over Patient to what ``scope`` may see."""
    if scope.kind == ScopeKind.admin:
        return query
    if scope.kind == ScopeKind.patient and scope.patient_id is not None:
        return query.filter(Patient.person_id == scope.patient_id)
    if scope.kind == ScopeKind.doctor and scope.doctor_id is not None:
        seen = (
            select(Appointment.patient_id)
            .join(DoctorClinic, DoctorClinic.id == Appointment.doctor_clinic_id)
            .where(DoctorClinic.doctor_id == scope.doctor_id)
        )
        return query.filter(Patient.person_id.in_(seen))
    if scope.kind == ScopeKind.clinic_staff and scope.clinic_ids:
        seen = (
            select(Appointment.patient_id)
            .join(DoctorClinic, DoctorClinic.id == Appointment.doctor_clinic_id)
            .where(DoctorClinic.clinic_id.in_(scope.clinic_ids))
        )
        return query.filter(Patient.person_id.in_(seen))
    return query.filter(false())


def paginate(query: Query, page: int, page_size: int) -> Dict[str, Any]:
    """Slice an ordered query into a 1-indexed page.

    Pages past the end come back with no items and the real total.
    """
    if page < 1 or page_size < 1:
        raise ValidationError("page and size must be positive integers")
    total = query.order_by(None).count()
    items = query.offset((page - 1) * page_size).limit(page_size).all()
    return {"items": items, "total_count": total, "page": page, "page_size": page_size}


# ---- Projections ----

def appointment_summary(appointment: Appointment) -> Dict[str, Any]:
    """Flatten an appointment with patient, clinic, doctor and status names."""
    link = appointment.doctor_clinic
    return {
        "id": appointment.id,
        "patient_id": appointment.patient_id,
        "patient_name": appointment.patient.person.full_name,
        "doctor_clinic_id": appointment.doctor_clinic_id,
        "clinic_name": link.clinic.name,
        "doctor_name": link.doctor.person.full_name,
        "date": appointment.date,
        "reason": appointment.reason,
        "status_id": appointment.status,
        "status": AppointmentStatus(appointment.status).label,
        "version": appointment.version,
        "created_at": appointment.created_at,
        "last_updated_at": appointment.last_updated_at,
    }


def patient_summary(patient: Patient) -> Dict[str, Any]:
    person = patient.person
    return {
        "id": patient.person_id,
        "first_name": person.first_name,
        "father_name": person.father_name,
        "last_name": person.last_name,
        "national_number": person.national_number,
        "birth_date": person.birth_date,
        "address": person.address,
        "patient_code": patient.patient_code,
    }


# ---- Listings ----

def list_appointments(db: Session, principal, page: int = 1, page_size: int = 10) -> Dict[str, Any]:
    """Appointments visible to the caller, oldest first."""
    scope = resolve_scope(db, principal)
    query = scope_appointments(db.query(Appointment), scope).order_by(
        Appointment.created_at.asc(), Appointment.id.asc(),
    )
    result = paginate(query, page, page_size)
    result["items"] = [appointment_summary(a) for a in result["items"]]
    return result


def list_patients(db: Session, principal, page: int = 1, page_size: int = 10) -> Dict[str, Any]:
    """Patients visible to the caller, by id."""
    scope = resolve_scope(db, principal)
    query = scope_patients(db.query(Patient), scope).order_by(Patient.person_id.asc())
    result = paginate(query, page, page_size)
    result["items"] = [patient_summary(p) for p in result["items"]]
    return result
