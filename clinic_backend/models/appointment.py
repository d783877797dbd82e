"""Appointment model and its status enumeration."""

import enum

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from clinic_backend.db.base import Base


class AppointmentStatus(enum.IntEnum):
    PENDING = 1
    SCHEDULED = 2
    COMPLETED = 3
    CANCELLED = 4
    WAITING_FOR_PATIENT_CONFIRMATION = 5

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS = {
    AppointmentStatus.PENDING: "Pending",
    AppointmentStatus.SCHEDULED: "Scheduled",
    AppointmentStatus.COMPLETED: "Completed",
    AppointmentStatus.CANCELLED: "Cancelled",
    AppointmentStatus.WAITING_FOR_PATIENT_CONFIRMATION: "Waiting for patient confirmation",
}

# Statuses that require a concrete date.
DATED_STATUSES = frozenset({
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.WAITING_FOR_PATIENT_CONFIRMATION,
    AppointmentStatus.COMPLETED,
})


class Appointment(Base):
    """A patient's visit to a doctor at a clinic.

    ``date`` is null exactly while the appointment is pending. ``version``
    is bumped on every flush and checked in the UPDATE's WHERE clause, so
    a writer holding a stale row fails instead of overwriting.
    """
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    patient_id = Column(Integer, ForeignKey("patients.person_id"), nullable=False, index=True)
    doctor_clinic_id = Column(Integer, ForeignKey("doctor_clinics.id"), nullable=False, index=True)
    date = Column(DateTime, nullable=True)
    reason = Column(String(500), nullable=False)
    status = Column(Integer, nullable=False, default=AppointmentStatus.PENDING.value)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, index=True)
    last_updated_at = Column(DateTime, nullable=False)

    patient = relationship("Patient", lazy="joined")
    doctor_clinic = relationship("DoctorClinic", lazy="joined")

    __mapper_args__ = {"version_id_col": version}

    @property
    def status_enum(self) -> AppointmentStatus:
        return AppointmentStatus(self.status)
