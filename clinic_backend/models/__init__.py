"""Models package: import all models so metadata.create_all can discover them."""

from clinic_backend.models.role import Role, Permission, RolePermission
from clinic_backend.models.user import User, UserRole
from clinic_backend.models.party import Party, Person
from clinic_backend.models.clinic import Clinic, Address, DoctorClinic, ClinicEmployee
from clinic_backend.models.doctor import Doctor, Patient
from clinic_backend.models.appointment import Appointment, AppointmentStatus
from clinic_backend.models.audit_log import AuditLog

__all__ = [
    "Role", "Permission", "RolePermission", "User", "UserRole",
    "Party", "Person", "Clinic", "Address", "DoctorClinic", "ClinicEmployee",
    "Doctor", "Patient", "Appointment", "AppointmentStatus", "AuditLog",
]
