"""Shared fixtures: in-memory SQLite, seeded roles, and factories for clinic data."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["PERMISSION_CACHE_ENABLED"] = "false"
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import clinic_backend.models  # noqa: F401
from clinic_backend.core.security import Principal, create_access_token
from clinic_backend.db.base import Base
from clinic_backend.db.seeds.seed_roles import seed_permissions_and_roles
from clinic_backend.db.session import get_db
from clinic_backend.main import app
from clinic_backend.services.clinic_service import clinic_service
from clinic_backend.services.doctor_service import doctor_service
from clinic_backend.services.employee_service import employee_service
from clinic_backend.services.identity_service import identity_service
from clinic_backend.services.patient_service import patient_service

PASSWORD = "secret123"


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    seed_permissions_and_roles(session)
    yield session
    session.close()


@pytest.fixture()
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def principal_for(db, user_id):
    user = identity_service.get_user(db, user_id)
    return Principal(
        user_id=user.id,
        email=user.email,
        roles=identity_service.get_roles_of(db, user.id),
    )


def auth_headers(db, user_id):
    principal = principal_for(db, user_id)
    token = create_access_token(principal.user_id, principal.email, principal.roles)
    return {"Authorization": f"Bearer {token}"}


def tomorrow_at(hour=10):
    day = datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0) + timedelta(days=1)
    return day.replace(hour=hour, minute=0, second=0)


class ClinicFactory:
    """Builds clinics, doctors, patients and staff through the services."""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _next_number(self):
        self._seq += 1
        return f"{self._seq:011d}"

    def clinic(self, name="Central Clinic"):
        return clinic_service.create_clinic(self.db, name, "0110000000", "Damascus")

    def doctor(self, clinic_id, first_name="Sami"):
        number = self._next_number()
        return doctor_service.create_doctor(
            self.db, first_name, "Adel", "Haddad", number, clinic_id,
            f"doctor{number}@clinic.test", PASSWORD,
        )

    def patient(self, first_name="Lina"):
        number = self._next_number()
        return patient_service.register_patient(
            self.db, first_name, "Omar", "Khoury", number,
            email=f"patient{number}@clinic.test", password=PASSWORD,
        )

    def staff(self, clinic_id, first_name="Rana"):
        number = self._next_number()
        return employee_service.create_employee(
            self.db, first_name, "Nabil", "Saleh", number, clinic_id,
            f"staff{number}@clinic.test", PASSWORD,
        )

    def admin(self):
        user = identity_service.create_account(self.db, "root@clinic.test", PASSWORD)
        identity_service.add_to_role(self.db, user.id, "admin")
        self.db.commit()
        return user


@pytest.fixture()
def factory(db):
    return ClinicFactory(db)
