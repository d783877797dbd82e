"""Party and Person: the identity record shared by patients, doctors and staff."""

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from clinic_backend.db.base import Base


class Party(Base):
    __tablename__ = "parties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    display_name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    person = relationship("Person", back_populates="party", uselist=False)


class Person(Base):
    """Personal details; the national number identifies a person uniquely."""
    __tablename__ = "people"

    party_id = Column(Integer, ForeignKey("parties.id"), primary_key=True)
    first_name = Column(String(100), nullable=False)
    father_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    mother_name = Column(String(100), nullable=True)
    birth_date = Column(Date, nullable=True)
    address = Column(String(255), nullable=True)
    national_number = Column(String(11), unique=True, nullable=False, index=True)

    party = relationship("Party", back_populates="person")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
