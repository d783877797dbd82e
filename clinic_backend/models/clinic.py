"""Clinic, its address, doctor and employee assignments."""

from sqlalchemy import Column, Integer, String, Text, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from clinic_backend.db.base import Base


class Clinic(Base):
    __tablename__ = "clinics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, index=True)
    phone_number = Column(String(30), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    addresses = relationship("Address", back_populates="clinic", lazy="selectin")


class Address(Base):
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id", ondelete="CASCADE"), nullable=False)
    city = Column(String(100), nullable=False)
    street = Column(String(255), nullable=True)
    details = Column(String(255), nullable=True)

    clinic = relationship("Clinic", back_populates="addresses")


class DoctorClinic(Base):
    """A doctor practising at a clinic from one date to another (or ongoing)."""
    __tablename__ = "doctor_clinics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    doctor_id = Column(Integer, ForeignKey("doctors.person_id"), nullable=False, index=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False, index=True)
    from_date = Column(Date, nullable=False)
    to_date = Column(Date, nullable=True)

    clinic = relationship("Clinic", lazy="joined")
    doctor = relationship("Doctor", back_populates="clinic_links", lazy="joined")


class ClinicEmployee(Base):
    """A staff member's assignment to a clinic; open while ``to_date`` is null."""
    __tablename__ = "clinic_employees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    clinic_id = Column(Integer, ForeignKey("clinics.id"), nullable=False, index=True)
    person_id = Column(Integer, ForeignKey("people.party_id"), nullable=False, index=True)
    from_date = Column(Date, nullable=False)
    to_date = Column(Date, nullable=True)

    clinic = relationship("Clinic", lazy="joined")
    person = relationship("Person", lazy="joined")
