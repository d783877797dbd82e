"""Appointment lifecycle — booking, staff proposal and patient confirmation.

    (none) --request_by_patient--> PENDING
    (none) --book_by_staff-------> SCHEDULED
    PENDING --accept_by_staff----> WAITING_FOR_PATIENT_CONFIRMATION
    WAITING --confirm(accept)----> SCHEDULED
    WAITING --confirm(decline)---> PENDING (date cleared)
    PENDING/SCHEDULED --update_details--> status kept unless one is supplied

Each transition is one read-modify-write of the appointment row inside a
transaction. The row's ``version`` column makes a writer holding a stale
copy fail with ResourceConflictError instead of overwriting.

Rows are loaded through the caller's listing scope, so an appointment the
caller cannot read is reported as not found. The one exception is a patient
confirming someone else's appointment, which is forbidden. Dates are stored
as naive UTC like the audit columns.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from clinic_backend.core.exceptions import (
    AuthorizationError, ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from clinic_backend.db.session import transaction
from clinic_backend.models.appointment import Appointment, AppointmentStatus, DATED_STATUSES
from clinic_backend.models.clinic import DoctorClinic
from clinic_backend.models.doctor import Patient
from clinic_backend.services.query_filters import (
    Scope, ScopeKind, appointment_summary, covers_doctor_clinic, resolve_scope,
    scope_appointments,
)

logger = logging.getLogger("clinic_backend")

EDITABLE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.SCHEDULED})


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an offset-aware datetime to naive UTC; naive values are taken as UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class AppointmentService:
    """Drives appointments through their states."""

    # ---- Helpers ----

    @staticmethod
    def _get(db: Session, appointment_id: int) -> Appointment:
        appointment = db.get(Appointment, appointment_id)
        if not appointment:
            raise ResourceNotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    @staticmethod
    def _get_scoped(db: Session, scope: Scope, appointment_id: int) -> Appointment:
        appointment = (
            scope_appointments(db.query(Appointment), scope)
            .filter(Appointment.id == appointment_id)
            .first()
        )
        if not appointment:
            raise ResourceNotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    @staticmethod
    def _check_version(appointment: Appointment, expected_version: Optional[int]) -> None:
        if expected_version is not None and appointment.version != expected_version:
            raise ResourceConflictError(
                f"Appointment {appointment.id} was modified (version {appointment.version}, "
                f"expected {expected_version}); reload and retry"
            )

    @staticmethod
    def _require_status(appointment: Appointment, *allowed: AppointmentStatus) -> None:
        current = appointment.status_enum
        if current not in allowed:
            raise ResourceConflictError(
                f"Appointment {appointment.id} is {current.label}; "
                f"expected {' or '.join(s.label for s in allowed)}"
            )

    @staticmethod
    def _transition(
        appointment: Appointment,
        status: AppointmentStatus,
        date: Optional[datetime],
    ) -> None:
        previous = appointment.status_enum
        appointment.status = status.value
        appointment.date = as_naive_utc(date)
        appointment.last_updated_at = _now()
        logger.info(
            "Appointment %s: %s -> %s", appointment.id, previous.label, status.label,
        )

    @staticmethod
    def _ensure_references(db: Session, patient_id: int, doctor_clinic_id: int) -> None:
        if db.get(Patient, patient_id) is None:
            raise ResourceNotFoundError(f"Patient {patient_id} not found")
        if db.get(DoctorClinic, doctor_clinic_id) is None:
            raise ResourceNotFoundError(f"Doctor-clinic association {doctor_clinic_id} not found")

    @staticmethod
    def _create(
        db: Session,
        patient_id: int,
        doctor_clinic_id: int,
        reason: str,
        status: AppointmentStatus,
        date: Optional[datetime],
    ) -> Dict[str, Any]:
        AppointmentService._ensure_references(db, patient_id, doctor_clinic_id)
        now = _now()
        with transaction(db):
            appointment = Appointment(
                patient_id=patient_id,
                doctor_clinic_id=doctor_clinic_id,
                reason=reason,
                status=status.value,
                date=as_naive_utc(date),
                created_at=now,
                last_updated_at=now,
            )
            db.add(appointment)
        db.refresh(appointment)
        logger.info("Appointment %s created as %s", appointment.id, status.label)
        return appointment_summary(appointment)

    # ---- Creation ----

    @staticmethod
    def request_by_patient(
        db: Session,
        principal,
        doctor_clinic_id: int,
        reason: str,
    ) -> Dict[str, Any]:
        """Patient asks for an appointment; staff will propose a date."""
        scope = resolve_scope(db, principal)
        if scope.kind != ScopeKind.patient or scope.patient_id is None:
            raise ResourceNotFoundError("No patient profile is linked to this account")
        return AppointmentService._create(
            db, scope.patient_id, doctor_clinic_id, reason, AppointmentStatus.PENDING, None,
        )

    @staticmethod
    def book_by_staff(
        db: Session,
        principal,
        patient_id: int,
        doctor_clinic_id: int,
        date: datetime,
        reason: str,
    ) -> Dict[str, Any]:
        """Staff books a confirmed slot directly at a doctor-clinic they cover."""
        if date is None:
            raise ValidationError("A date is required to book an appointment")
        link = db.get(DoctorClinic, doctor_clinic_id)
        if link is None or not covers_doctor_clinic(resolve_scope(db, principal), link):
            raise ResourceNotFoundError(f"Doctor-clinic association {doctor_clinic_id} not found")
        return AppointmentService._create(
            db, patient_id, doctor_clinic_id, reason, AppointmentStatus.SCHEDULED, date,
        )

    # ---- Transitions ----

    @staticmethod
    def accept_by_staff(
        db: Session,
        principal,
        appointment_id: int,
        proposed_date: datetime,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Staff accepts a pending request and proposes a date to the patient."""
        if proposed_date is None:
            raise ValidationError("A proposed date is required")
        scope = resolve_scope(db, principal)
        with transaction(db):
            appointment = AppointmentService._get_scoped(db, scope, appointment_id)
            AppointmentService._check_version(appointment, expected_version)
            AppointmentService._require_status(appointment, AppointmentStatus.PENDING)
            AppointmentService._transition(
                appointment, AppointmentStatus.WAITING_FOR_PATIENT_CONFIRMATION, proposed_date,
            )
        return AppointmentService.detail(db, appointment_id)

    @staticmethod
    def confirm_by_patient(
        db: Session,
        principal,
        appointment_id: int,
        accept: bool,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Patient accepts the proposed date, or declines it back to pending."""
        scope = resolve_scope(db, principal)
        with transaction(db):
            if scope.kind == ScopeKind.patient:
                appointment = AppointmentService._get(db, appointment_id)
                if appointment.patient_id != scope.patient_id:
                    raise AuthorizationError()
            else:
                appointment = AppointmentService._get_scoped(db, scope, appointment_id)
            AppointmentService._check_version(appointment, expected_version)
            AppointmentService._require_status(
                appointment, AppointmentStatus.WAITING_FOR_PATIENT_CONFIRMATION,
            )
            if accept:
                AppointmentService._transition(
                    appointment, AppointmentStatus.SCHEDULED, appointment.date,
                )
            else:
                AppointmentService._transition(appointment, AppointmentStatus.PENDING, None)
        return AppointmentService.detail(db, appointment_id)

    @staticmethod
    def update_details(
        db: Session,
        principal,
        appointment_id: int,
        date: Optional[datetime],
        reason: str,
        status_id: Optional[int] = None,
        expected_version: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Overwrite date, reason and optionally status of an open appointment.

        Moving to Pending clears the date; Scheduled and Completed need one.
        Waiting-for-confirmation is only reachable through accept_by_staff.
        """
        if status_id is not None:
            try:
                target = AppointmentStatus(status_id)
            except ValueError:
                raise ValidationError(f"Unknown appointment status {status_id}")
            if target == AppointmentStatus.WAITING_FOR_PATIENT_CONFIRMATION:
                raise ValidationError("Propose a date through the accept operation instead")
        else:
            target = None

        scope = resolve_scope(db, principal)
        with transaction(db):
            appointment = AppointmentService._get_scoped(db, scope, appointment_id)
            AppointmentService._check_version(appointment, expected_version)
            AppointmentService._require_status(appointment, *sorted(EDITABLE_STATUSES))
            status = target or appointment.status_enum
            if status == AppointmentStatus.PENDING:
                date = None
            elif status in DATED_STATUSES and date is None:
                raise ValidationError(f"A date is required for a {status.label} appointment")
            appointment.reason = reason
            AppointmentService._transition(appointment, status, date)
        return AppointmentService.detail(db, appointment_id)

    # ---- Reads ----

    @staticmethod
    def detail(db: Session, appointment_id: int) -> Dict[str, Any]:
        """Re-read the appointment with its joined names."""
        appointment = AppointmentService._get(db, appointment_id)
        db.refresh(appointment)
        return appointment_summary(appointment)

    @staticmethod
    def get_appointment(db: Session, principal, appointment_id: int) -> Dict[str, Any]:
        """Fetch one appointment if the caller's scope covers it."""
        scope = resolve_scope(db, principal)
        appointment = AppointmentService._get_scoped(db, scope, appointment_id)
        return appointment_summary(appointment)


appointment_service = AppointmentService()
