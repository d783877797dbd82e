"""Doctor onboarding. Profile, clinic link and login are committed together."""

import logging
from datetime import date
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from clinic_backend.core.exceptions import ResourceConflictError, ResourceNotFoundError
from clinic_backend.core.permissions import ROLE_DOCTOR
from clinic_backend.db.session import transaction
from clinic_backend.models.clinic import Clinic, DoctorClinic
from clinic_backend.models.doctor import Doctor
from clinic_backend.services.party_service import (
    ensure_account_in_role, find_or_create_person, validate_national_number,
)
from clinic_backend.services.query_filters import paginate

logger = logging.getLogger("clinic_backend")


def doctor_summary(doctor: Doctor) -> Dict[str, Any]:
    person = doctor.person
    return {
        "id": doctor.person_id,
        "first_name": person.first_name,
        "father_name": person.father_name,
        "last_name": person.last_name,
        "national_number": person.national_number,
        "description": doctor.description,
        "image": doctor.image,
        "clinics": [
            {
                "doctor_clinic_id": link.id,
                "clinic_id": link.clinic_id,
                "clinic_name": link.clinic.name,
                "from_date": link.from_date,
                "to_date": link.to_date,
            }
            for link in doctor.clinic_links
        ],
    }


class DoctorService:

    @staticmethod
    def create_doctor(
        db: Session,
        first_name: str,
        father_name: str,
        last_name: str,
        national_number: str,
        clinic_id: int,
        email: str,
        password: str,
        phone_number: Optional[str] = None,
        birth_date: Optional[date] = None,
        address: Optional[str] = None,
        description: Optional[str] = None,
        image: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create the doctor profile, link it to a clinic from today and give it a login.

        Any failure (unknown clinic, duplicate doctor, taken email) rolls
        back every row written so far.
        """
        validate_national_number(national_number)

        with transaction(db):
            if db.get(Clinic, clinic_id) is None:
                raise ResourceNotFoundError(f"Clinic {clinic_id} not found")
            person, created = find_or_create_person(
                db, national_number, first_name, father_name, last_name,
                birth_date=birth_date, address=address,
            )
            if not created and db.get(Doctor, person.party_id) is not None:
                raise ResourceConflictError(
                    f"A doctor with national number '{national_number}' already exists."
                )
            db.add(Doctor(person_id=person.party_id, description=description, image=image))
            db.flush()
            db.add(DoctorClinic(
                doctor_id=person.party_id,
                clinic_id=clinic_id,
                from_date=date.today(),
            ))
            user = ensure_account_in_role(
                db, person, ROLE_DOCTOR, email, password, phone_number=phone_number,
            )
            doctor_id, user_id = person.party_id, user.id

        logger.info("Doctor %s created at clinic %s", doctor_id, clinic_id)
        result = doctor_summary(db.get(Doctor, doctor_id))
        result["user_id"] = user_id
        return result

    @staticmethod
    def list_doctors(db: Session, page: int = 1, page_size: int = 10) -> Dict[str, Any]:
        result = paginate(db.query(Doctor).order_by(Doctor.person_id), page, page_size)
        result["items"] = [doctor_summary(d) for d in result["items"]]
        return result


doctor_service = DoctorService()
