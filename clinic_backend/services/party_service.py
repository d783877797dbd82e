"""Shared Party/Person handling for patient, doctor and staff registration."""

import re
from datetime import date
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from clinic_backend.core.exceptions import ValidationError
from clinic_backend.models.party import Party, Person
from clinic_backend.models.user import User
from clinic_backend.services.identity_service import identity_service

NATIONAL_NUMBER_RE = re.compile(r"^\d{11}$")


def validate_national_number(national_number: str) -> None:
    if not NATIONAL_NUMBER_RE.match(national_number or ""):
        raise ValidationError("National number must be exactly 11 digits.")


def find_person(db: Session, national_number: str) -> Optional[Person]:
    return db.query(Person).filter(Person.national_number == national_number).first()


def find_or_create_person(
    db: Session,
    national_number: str,
    first_name: str,
    father_name: str,
    last_name: str,
    birth_date: Optional[date] = None,
    address: Optional[str] = None,
    mother_name: Optional[str] = None,
) -> Tuple[Person, bool]:
    """Reuse the person registered under ``national_number`` or create one.

    Returns the person and whether it was created. Only flushes.
    """
    validate_national_number(national_number)
    person = find_person(db, national_number)
    if person is not None:
        return person, False

    party = Party(display_name=f"{first_name} {father_name} {last_name}", is_active=True)
    db.add(party)
    db.flush()

    person = Person(
        party_id=party.id,
        first_name=first_name,
        father_name=father_name,
        last_name=last_name,
        mother_name=mother_name,
        birth_date=birth_date,
        address=address,
        national_number=national_number,
    )
    db.add(person)
    db.flush()
    return person, True


def ensure_account_in_role(
    db: Session,
    person: Person,
    role_name: str,
    email: str,
    password: str,
    phone_number: Optional[str] = None,
) -> User:
    """Give the person a login in ``role_name``.

    A person who already has an account (say a patient hired as staff)
    keeps it and gains the role; otherwise a new account is created.
    Only flushes.
    """
    user = db.query(User).filter(User.party_id == person.party_id).first()
    if user is None:
        user = identity_service.create_account(
            db, email, password, phone_number=phone_number, party_id=person.party_id,
        )
    identity_service.add_to_role(db, user.id, role_name)
    return user
