"""Doctor and Patient profiles attached to a Person."""

from sqlalchemy import Column, Integer, String, Text, ForeignKey
from sqlalchemy.orm import relationship
from clinic_backend.db.base import Base


class Doctor(Base):
    __tablename__ = "doctors"

    person_id = Column(Integer, ForeignKey("people.party_id"), primary_key=True)
    description = Column(Text, nullable=True)
    image = Column(String(500), nullable=True)

    person = relationship("Person", lazy="joined")
    clinic_links = relationship("DoctorClinic", back_populates="doctor", lazy="selectin")


class Patient(Base):
    __tablename__ = "patients"

    person_id = Column(Integer, ForeignKey("people.party_id"), primary_key=True)
    patient_code = Column(String(50), nullable=True)

    person = relationship("Person", lazy="joined")
