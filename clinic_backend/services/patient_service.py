"""Patient registration: party, person, patient row and optional login in one transaction."""

import logging
from datetime import date
from typing import Optional, Dict, Any

from sqlalchemy.orm import Session

from clinic_backend.core.exceptions import ResourceConflictError
from clinic_backend.core.permissions import ROLE_PATIENT
from clinic_backend.db.session import transaction
from clinic_backend.models.doctor import Patient
from clinic_backend.services.party_service import (
    ensure_account_in_role, find_or_create_person, validate_national_number,
)
from clinic_backend.services import query_filters
from clinic_backend.services.query_filters import patient_summary

logger = logging.getLogger("clinic_backend")


class PatientService:
    """Registers patients and lists them by the caller's scope."""

    @staticmethod
    def register_patient(
        db: Session,
        first_name: str,
        father_name: str,
        last_name: str,
        national_number: str,
        patient_code: Optional[str] = None,
        birth_date: Optional[date] = None,
        address: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
        phone_number: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Register a patient, reusing the person if the national number is known.

        When ``email`` and ``password`` are given a login in the ``patient``
        role is created as part of the same transaction.

        Raises:
            ValidationError: If the national number is not 11 digits.
            ResourceConflictError: If a patient already exists for the number
                or the email is taken.
        """
        validate_national_number(national_number)

        with transaction(db):
            person, created = find_or_create_person(
                db, national_number, first_name, father_name, last_name,
                birth_date=birth_date, address=address,
            )
            if not created and db.get(Patient, person.party_id) is not None:
                raise ResourceConflictError(
                    f"A patient with national number '{national_number}' already exists."
                )
            patient = Patient(person_id=person.party_id, patient_code=patient_code)
            db.add(patient)
            db.flush()

            user_id = None
            if email and password:
                user = ensure_account_in_role(
                    db, person, ROLE_PATIENT, email, password, phone_number=phone_number,
                )
                user_id = user.id
            patient_id = patient.person_id

        logger.info("Patient %s registered", patient_id)
        result = patient_summary(db.get(Patient, patient_id))
        result["user_id"] = user_id
        return result

    @staticmethod
    def list_patients(db: Session, principal, page: int = 1, page_size: int = 10) -> Dict[str, Any]:
        return query_filters.list_patients(db, principal, page, page_size)


patient_service = PatientService()
