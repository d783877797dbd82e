from datetime import timedelta

import pytest

from clinic_backend.core.exceptions import (
    ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from clinic_backend.models.clinic import Clinic, ClinicEmployee, DoctorClinic
from clinic_backend.models.doctor import Doctor, Patient
from clinic_backend.models.party import Person
from clinic_backend.models.user import User
from clinic_backend.services.clinic_service import clinic_service
from clinic_backend.services.doctor_service import doctor_service
from clinic_backend.services.employee_service import employee_service
from clinic_backend.services.identity_service import identity_service
from clinic_backend.services.patient_service import patient_service


def register(db, national_number="12345678901", email="lina@clinic.test", **extra):
    return patient_service.register_patient(
        db, "Lina", "Omar", "Khoury", national_number,
        email=email, password="secret123", **extra,
    )


@pytest.mark.parametrize("number", ["1234567890", "123456789012", "1234567890a", ""])
def test_national_number_must_be_eleven_digits(db, number):
    with pytest.raises(ValidationError):
        register(db, national_number=number)
    assert db.query(Person).count() == 0


def test_register_patient_creates_person_profile_and_login(db):
    result = register(db, patient_code="P-001")

    assert result["national_number"] == "12345678901"
    assert result["patient_code"] == "P-001"
    assert identity_service.get_roles_of(db, result["user_id"]) == ["patient"]
    user = db.get(User, result["user_id"])
    assert user.party_id == result["id"]


def test_register_patient_without_credentials_has_no_login(db):
    result = patient_service.register_patient(db, "Lina", "Omar", "Khoury", "12345678901")
    assert result["user_id"] is None
    assert db.query(User).count() == 0


def test_duplicate_patient_is_a_conflict(db):
    register(db)
    with pytest.raises(ResourceConflictError, match="12345678901"):
        register(db, email="other@clinic.test")
    assert db.query(Patient).count() == 1


def test_taken_email_rolls_back_the_whole_registration(db):
    identity_service.create_account(db, "lina@clinic.test", "secret123")
    db.commit()

    with pytest.raises(ResourceConflictError):
        register(db)

    assert db.query(Person).count() == 0
    assert db.query(Patient).count() == 0
    assert db.query(User).count() == 1


def test_doctor_registration_links_clinic_and_login(db, factory):
    clinic = factory.clinic()
    doctor = factory.doctor(clinic["id"])

    assert [c["clinic_id"] for c in doctor["clinics"]] == [clinic["id"]]
    assert identity_service.get_roles_of(db, doctor["user_id"]) == ["doctor"]


def test_doctor_at_unknown_clinic_leaves_nothing_behind(db):
    with pytest.raises(ResourceNotFoundError):
        doctor_service.create_doctor(
            db, "Sami", "Adel", "Haddad", "22345678901", 424242,
            "sami@clinic.test", "secret123",
        )
    assert db.query(Person).count() == 0
    assert db.query(Doctor).count() == 0


def test_patient_hired_as_staff_keeps_one_login(db, factory):
    clinic = factory.clinic()
    patient = register(db)

    employee = employee_service.create_employee(
        db, "Lina", "Omar", "Khoury", "12345678901", clinic["id"],
        "ignored@clinic.test", "secret123",
    )

    assert employee["person_id"] == patient["id"]
    assert employee["user_id"] == patient["user_id"]
    assert identity_service.get_roles_of(db, patient["user_id"]) == ["clinic-staff", "patient"]


def test_second_open_assignment_at_the_same_clinic_is_a_conflict(db, factory):
    clinic = factory.clinic()
    staff = factory.staff(clinic["id"])

    with pytest.raises(ResourceConflictError):
        employee_service.create_employee(
            db, "Rana", "Nabil", "Saleh", staff["national_number"], clinic["id"],
            "again@clinic.test", "secret123",
        )
    assert db.query(ClinicEmployee).count() == 1


def test_end_assignment_before_start_is_invalid(db, factory):
    clinic = factory.clinic()
    staff = factory.staff(clinic["id"])
    with pytest.raises(ValidationError):
        employee_service.end_assignment(db, staff["id"], staff["from_date"] - timedelta(days=1))


def test_clinic_with_unknown_doctor_is_rolled_back(db):
    with pytest.raises(ResourceNotFoundError):
        clinic_service.create_clinic(db, "East Clinic", "0110000000", "Homs", doctor_ids=[424242])
    assert db.query(Clinic).count() == 0
    assert db.query(DoctorClinic).count() == 0


def test_clinic_with_existing_doctor_links_them(db, factory):
    first = factory.clinic()
    doctor = factory.doctor(first["id"])

    second = clinic_service.create_clinic(
        db, "East Clinic", "0110000000", "Homs", doctor_ids=[doctor["id"]],
    )

    assert second["addresses"] == [{"city": "Homs", "street": None, "details": None}]
    clinic_ids = {
        link.clinic_id
        for link in db.query(DoctorClinic).filter(DoctorClinic.doctor_id == doctor["id"])
    }
    assert clinic_ids == {first["id"], second["id"]}
