from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from clinic_backend.core.exceptions import (
    AuthorizationError, ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from clinic_backend.db.base import Base
from clinic_backend.db.seeds.seed_roles import seed_permissions_and_roles
from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.services.appointment_service import appointment_service, as_naive_utc
from conftest import ClinicFactory, principal_for, tomorrow_at


@pytest.fixture()
def setting(db, factory):
    clinic = factory.clinic()
    doctor = factory.doctor(clinic["id"])
    patient = factory.patient()
    staff = factory.staff(clinic["id"])
    return {
        "clinic": clinic,
        "doctor": doctor,
        "doctor_clinic_id": doctor["clinics"][0]["doctor_clinic_id"],
        "patient": patient,
        "patient_principal": principal_for(db, patient["user_id"]),
        "staff": principal_for(db, staff["user_id"]),
    }


@pytest.fixture()
def elsewhere(db, factory):
    """A second clinic with its own staff member."""
    clinic = factory.clinic("South Clinic")
    staff = factory.staff(clinic["id"], first_name="Dana")
    return {"clinic": clinic, "staff": principal_for(db, staff["user_id"])}


def request(db, setting, reason="checkup"):
    return appointment_service.request_by_patient(
        db, setting["patient_principal"], setting["doctor_clinic_id"], reason,
    )


def book(db, setting, when, reason="follow-up"):
    return appointment_service.book_by_staff(
        db, setting["staff"], setting["patient"]["id"], setting["doctor_clinic_id"], when, reason,
    )


def accept(db, setting, appointment_id, when, **kwargs):
    return appointment_service.accept_by_staff(db, setting["staff"], appointment_id, when, **kwargs)


def update(db, setting, appointment_id, when, reason, **kwargs):
    return appointment_service.update_details(
        db, setting["staff"], appointment_id, when, reason, **kwargs,
    )


def test_request_by_patient_creates_a_pending_undated_appointment(db, setting):
    result = request(db, setting)

    assert result["status_id"] == AppointmentStatus.PENDING
    assert result["status"] == "Pending"
    assert result["date"] is None
    assert result["patient_id"] == setting["patient"]["id"]
    assert result["version"] == 1


def test_request_needs_a_patient_profile(db, setting, factory):
    admin = factory.admin()
    with pytest.raises(ResourceNotFoundError):
        appointment_service.request_by_patient(
            db, principal_for(db, admin.id), setting["doctor_clinic_id"], "checkup",
        )


def test_request_for_unknown_doctor_clinic_is_not_found(db, setting):
    with pytest.raises(ResourceNotFoundError):
        appointment_service.request_by_patient(
            db, setting["patient_principal"], 424242, "checkup",
        )
    assert db.query(Appointment).count() == 0


def test_book_by_staff_creates_a_scheduled_appointment(db, setting):
    when = tomorrow_at(9)
    result = book(db, setting, when)
    assert result["status_id"] == AppointmentStatus.SCHEDULED
    assert result["date"] == when


def test_book_by_staff_needs_a_date(db, setting):
    with pytest.raises(ValidationError):
        book(db, setting, None)


def test_decline_and_reaccept_round_trip(db, setting):
    first_date = datetime(2025, 1, 10, 9, 0)
    created = request(db, setting)

    waiting = accept(db, setting, created["id"], first_date)
    assert waiting["status_id"] == AppointmentStatus.WAITING_FOR_PATIENT_CONFIRMATION
    assert waiting["date"] == first_date

    declined = appointment_service.confirm_by_patient(
        db, setting["patient_principal"], created["id"], False,
    )
    assert declined["status_id"] == AppointmentStatus.PENDING
    assert declined["date"] is None

    second_date = datetime(2025, 1, 12, 11, 30)
    again = accept(db, setting, created["id"], second_date)
    assert again["status_id"] == AppointmentStatus.WAITING_FOR_PATIENT_CONFIRMATION
    assert again["date"] == second_date

    scheduled = appointment_service.confirm_by_patient(
        db, setting["patient_principal"], created["id"], True,
    )
    assert scheduled["status_id"] == AppointmentStatus.SCHEDULED
    assert scheduled["date"] == second_date
    assert scheduled["version"] == 5


def test_accept_requires_a_pending_appointment(db, setting):
    created = request(db, setting)
    accept(db, setting, created["id"], tomorrow_at())

    with pytest.raises(ResourceConflictError):
        accept(db, setting, created["id"], tomorrow_at(11))


def test_accept_needs_a_date(db, setting):
    created = request(db, setting)
    with pytest.raises(ValidationError):
        accept(db, setting, created["id"], None)


def test_confirm_requires_a_waiting_appointment(db, setting):
    created = request(db, setting)
    with pytest.raises(ResourceConflictError):
        appointment_service.confirm_by_patient(
            db, setting["patient_principal"], created["id"], True,
        )
    assert db.get(Appointment, created["id"]).status == AppointmentStatus.PENDING


def test_patient_cannot_confirm_someone_elses_appointment(db, setting, factory):
    created = request(db, setting)
    accept(db, setting, created["id"], tomorrow_at())
    other = factory.patient(first_name="Maya")

    with pytest.raises(AuthorizationError):
        appointment_service.confirm_by_patient(
            db, principal_for(db, other["user_id"]), created["id"], True,
        )


def test_unknown_appointment_is_not_found(db, setting):
    with pytest.raises(ResourceNotFoundError):
        accept(db, setting, 424242, tomorrow_at())


def test_stale_expected_version_is_a_conflict(db, setting):
    created = request(db, setting)
    accept(db, setting, created["id"], tomorrow_at(), expected_version=1)

    with pytest.raises(ResourceConflictError):
        appointment_service.confirm_by_patient(
            db, setting["patient_principal"], created["id"], True, expected_version=1,
        )
    assert db.get(Appointment, created["id"]).status == (
        AppointmentStatus.WAITING_FOR_PATIENT_CONFIRMATION
    )


def test_concurrent_accepts_only_one_wins(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'clinic.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    setup = Session()
    seed_permissions_and_roles(setup)
    factory = ClinicFactory(setup)
    clinic = factory.clinic()
    doctor = factory.doctor(clinic["id"])
    patient = factory.patient()
    staff = principal_for(setup, factory.staff(clinic["id"])["user_id"])
    created = appointment_service.request_by_patient(
        setup, principal_for(setup, patient["user_id"]),
        doctor["clinics"][0]["doctor_clinic_id"], "checkup",
    )
    setup.close()

    first, second = Session(), Session()
    try:
        # Both sessions hold version 1 before either writes.
        assert first.get(Appointment, created["id"]).version == 1
        assert second.get(Appointment, created["id"]).version == 1

        appointment_service.accept_by_staff(second, staff, created["id"], tomorrow_at(9))
        with pytest.raises(ResourceConflictError):
            appointment_service.accept_by_staff(first, staff, created["id"], tomorrow_at(15))

        check = Session()
        stored = check.get(Appointment, created["id"])
        assert stored.date == tomorrow_at(9)
        assert stored.version == 2
        check.close()
    finally:
        first.close()
        second.close()
        engine.dispose()


# ---- Time zones ----

def test_as_naive_utc():
    plus_two = timezone(timedelta(hours=2))
    assert as_naive_utc(datetime(2025, 1, 10, 9, 0, tzinfo=plus_two)) == datetime(2025, 1, 10, 7, 0)
    assert as_naive_utc(datetime(2025, 1, 10, 9, 0)) == datetime(2025, 1, 10, 9, 0)
    assert as_naive_utc(None) is None


def test_offset_dates_are_stored_as_utc(db, setting):
    plus_two = timezone(timedelta(hours=2))
    created = request(db, setting)

    waiting = accept(db, setting, created["id"], datetime(2025, 1, 10, 9, 0, tzinfo=plus_two))
    assert waiting["date"] == datetime(2025, 1, 10, 7, 0)

    booked = book(db, setting, datetime(2025, 1, 11, 1, 30, tzinfo=plus_two))
    assert booked["date"] == datetime(2025, 1, 10, 23, 30)
    assert db.get(Appointment, booked["id"]).date.tzinfo is None


# ---- Scope of staff operations ----

def test_staff_cannot_accept_at_another_clinic(db, setting, elsewhere):
    created = request(db, setting)

    with pytest.raises(ResourceNotFoundError):
        appointment_service.accept_by_staff(db, elsewhere["staff"], created["id"], tomorrow_at())
    assert db.get(Appointment, created["id"]).status == AppointmentStatus.PENDING


def test_staff_cannot_update_at_another_clinic(db, setting, elsewhere):
    booked = book(db, setting, tomorrow_at(9))

    with pytest.raises(ResourceNotFoundError):
        appointment_service.update_details(
            db, elsewhere["staff"], booked["id"], tomorrow_at(14), "moved",
        )
    assert db.get(Appointment, booked["id"]).reason == "follow-up"


def test_staff_cannot_book_at_another_clinic(db, setting, elsewhere):
    with pytest.raises(ResourceNotFoundError):
        appointment_service.book_by_staff(
            db, elsewhere["staff"], setting["patient"]["id"], setting["doctor_clinic_id"],
            tomorrow_at(), "checkup",
        )
    assert db.query(Appointment).count() == 0


def test_doctor_updates_only_their_own_appointments(db, setting, factory):
    booked = book(db, setting, tomorrow_at(9))
    own = principal_for(db, setting["doctor"]["user_id"])
    other = factory.doctor(setting["clinic"]["id"], first_name="Yara")

    updated = appointment_service.update_details(db, own, booked["id"], tomorrow_at(11), "x-ray")
    assert updated["reason"] == "x-ray"
    with pytest.raises(ResourceNotFoundError):
        appointment_service.update_details(
            db, principal_for(db, other["user_id"]), booked["id"], tomorrow_at(12), "again",
        )


# ---- update_details ----

def test_update_keeps_status_and_overwrites_details(db, setting):
    booked = book(db, setting, tomorrow_at(9))
    updated = update(db, setting, booked["id"], tomorrow_at(14), "blood test")

    assert updated["status_id"] == AppointmentStatus.SCHEDULED
    assert updated["date"] == tomorrow_at(14)
    assert updated["reason"] == "blood test"
    assert updated["last_updated_at"] >= booked["last_updated_at"]


def test_update_to_pending_clears_the_date(db, setting):
    booked = book(db, setting, tomorrow_at(9))
    updated = update(
        db, setting, booked["id"], tomorrow_at(9), "follow-up", status_id=AppointmentStatus.PENDING,
    )
    assert updated["status_id"] == AppointmentStatus.PENDING
    assert updated["date"] is None


def test_update_to_completed_needs_a_date(db, setting):
    created = request(db, setting)
    with pytest.raises(ValidationError):
        update(db, setting, created["id"], None, "checkup", status_id=AppointmentStatus.COMPLETED)

    done = update(
        db, setting, created["id"], tomorrow_at(), "checkup", status_id=AppointmentStatus.COMPLETED,
    )
    assert done["status"] == "Completed"


def test_update_cannot_jump_to_waiting(db, setting):
    created = request(db, setting)
    with pytest.raises(ValidationError):
        update(
            db, setting, created["id"], tomorrow_at(), "checkup",
            status_id=AppointmentStatus.WAITING_FOR_PATIENT_CONFIRMATION,
        )


def test_update_rejects_unknown_status(db, setting):
    created = request(db, setting)
    with pytest.raises(ValidationError):
        update(db, setting, created["id"], tomorrow_at(), "checkup", status_id=9)


def test_closed_appointments_are_not_editable(db, setting):
    created = request(db, setting)
    update(db, setting, created["id"], None, "checkup", status_id=AppointmentStatus.CANCELLED)
    with pytest.raises(ResourceConflictError):
        update(db, setting, created["id"], tomorrow_at(), "again")


def test_get_appointment_hides_other_patients(db, setting, factory):
    created = request(db, setting)
    other = factory.patient(first_name="Maya")

    assert appointment_service.get_appointment(
        db, setting["patient_principal"], created["id"],
    )["id"] == created["id"]
    with pytest.raises(ResourceNotFoundError):
        appointment_service.get_appointment(db, principal_for(db, other["user_id"]), created["id"])
