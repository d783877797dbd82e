"""Clinic staff assignments and their clinic-staff logins."""

import logging
from datetime import date
from typing import Optional, Dict, Any

from sqlalchemy import or_
from sqlalchemy.orm import Session

from clinic_backend.core.exceptions import (
    ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from clinic_backend.core.permissions import ROLE_CLINIC_STAFF
from clinic_backend.db.session import transaction
from clinic_backend.models.clinic import Clinic, ClinicEmployee
from clinic_backend.services.party_service import (
    ensure_account_in_role, find_or_create_person, validate_national_number,
)
from clinic_backend.services.query_filters import paginate

logger = logging.getLogger("clinic_backend")


def employee_summary(employee: ClinicEmployee) -> Dict[str, Any]:
    person = employee.person
    return {
        "id": employee.id,
        "person_id": employee.person_id,
        "first_name": person.first_name,
        "last_name": person.last_name,
        "national_number": person.national_number,
        "clinic_id": employee.clinic_id,
        "clinic_name": employee.clinic.name,
        "from_date": employee.from_date,
        "to_date": employee.to_date,
    }


class EmployeeService:

    @staticmethod
    def create_employee(
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
    ) -> Dict[str, Any]:
        """Assign a person to a clinic from today and give them a clinic-staff login."""
        validate_national_number(national_number)
        today = date.today()

        with transaction(db):
            if db.get(Clinic, clinic_id) is None:
                raise ResourceNotFoundError(f"Clinic {clinic_id} not found")
            person, created = find_or_create_person(
                db, national_number, first_name, father_name, last_name,
                birth_date=birth_date, address=address,
            )
            if not created:
                open_assignment = (
                    db.query(ClinicEmployee)
                    .filter(
                        ClinicEmployee.person_id == person.party_id,
                        ClinicEmployee.clinic_id == clinic_id,
                        or_(ClinicEmployee.to_date.is_(None), ClinicEmployee.to_date >= today),
                    )
                    .first()
                )
                if open_assignment:
                    raise ResourceConflictError(
                        f"An employee with national number '{national_number}' "
                        f"is already assigned to clinic {clinic_id}."
                    )
            employee = ClinicEmployee(
                clinic_id=clinic_id, person_id=person.party_id, from_date=today,
            )
            db.add(employee)
            db.flush()
            user = ensure_account_in_role(
                db, person, ROLE_CLINIC_STAFF, email, password, phone_number=phone_number,
            )
            employee_id, user_id = employee.id, user.id

        logger.info("Employee %s assigned to clinic %s", employee_id, clinic_id)
        result = employee_summary(db.get(ClinicEmployee, employee_id))
        result["user_id"] = user_id
        return result

    @staticmethod
    def end_assignment(db: Session, employee_id: int, to_date: date) -> Dict[str, Any]:
        """Close a staff assignment; from the next day the clinic drops out of their scope."""
        employee = db.get(ClinicEmployee, employee_id)
        if not employee:
            raise ResourceNotFoundError(f"Employee {employee_id} not found")
        if to_date < employee.from_date:
            raise ValidationError("Assignment cannot end before it starts")
        with transaction(db):
            employee.to_date = to_date
        return employee_summary(db.get(ClinicEmployee, employee_id))

    @staticmethod
    def list_employees(
        db: Session,
        clinic_id: Optional[int] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> Dict[str, Any]:
        query = db.query(ClinicEmployee)
        if clinic_id:
            query = query.filter(ClinicEmployee.clinic_id == clinic_id)
        result = paginate(query.order_by(ClinicEmployee.id), page, page_size)
        result["items"] = [employee_summary(e) for e in result["items"]]
        return result


employee_service = EmployeeService()
