"""Clinic creation with its address and doctor links, atomically."""

import logging
from datetime import date
from typing import Optional, Dict, Any, Iterable

from sqlalchemy.orm import Session

from clinic_backend.core.exceptions import ResourceNotFoundError
from clinic_backend.db.session import transaction
from clinic_backend.models.clinic import Clinic, Address, DoctorClinic
from clinic_backend.models.doctor import Doctor
from clinic_backend.services.query_filters import paginate

logger = logging.getLogger("clinic_backend")


def clinic_summary(clinic: Clinic) -> Dict[str, Any]:
    return {
        "id": clinic.id,
        "name": clinic.name,
        "phone_number": clinic.phone_number,
        "description": clinic.description,
        "addresses": [
            {"city": a.city, "street": a.street, "details": a.details}
            for a in clinic.addresses
        ],
    }


class ClinicService:

    @staticmethod
    def create_clinic(
        db: Session,
        name: str,
        phone_number: str,
        city: str,
        street: Optional[str] = None,
        details: Optional[str] = None,
        description: Optional[str] = None,
        doctor_ids: Iterable[int] = (),
    ) -> Dict[str, Any]:
        """Create a clinic, its address and a link from today for each doctor.

        Raises:
            ResourceNotFoundError: If a doctor id is unknown; nothing is kept.
        """
        today = date.today()
        with transaction(db):
            clinic = Clinic(name=name, phone_number=phone_number, description=description)
            db.add(clinic)
            db.flush()
            db.add(Address(clinic_id=clinic.id, city=city, street=street, details=details))
            for doctor_id in dict.fromkeys(doctor_ids):
                if db.get(Doctor, doctor_id) is None:
                    raise ResourceNotFoundError(f"Doctor {doctor_id} not found")
                db.add(DoctorClinic(doctor_id=doctor_id, clinic_id=clinic.id, from_date=today))
            clinic_id = clinic.id

        logger.info("Clinic %s created", clinic_id)
        return clinic_summary(db.get(Clinic, clinic_id))

    @staticmethod
    def list_clinics(db: Session, page: int = 1, page_size: int = 10) -> Dict[str, Any]:
        result = paginate(db.query(Clinic).order_by(Clinic.name, Clinic.id), page, page_size)
        result["items"] = [clinic_summary(c) for c in result["items"]]
        return result


clinic_service = ClinicService()
