"""Permission catalog and the predefined roles.

The catalog is a plain, statically declared list; seeding iterates it.
"""

import re


class Permissions:
    """Permission names, namespaced by resource."""

    # Patients
    VIEW_PATIENTS = "view_patients"
    CREATE_PATIENTS = "create_patients"
    UPDATE_PATIENTS = "update_patients"
    DELETE_PATIENTS = "delete_patients"

    # Doctors
    VIEW_DOCTORS = "view_doctors"
    CREATE_DOCTORS = "create_doctors"
    UPDATE_DOCTORS = "update_doctors"
    DELETE_DOCTORS = "delete_doctors"

    # Clinics
    VIEW_CLINICS = "view_clinics"
    CREATE_CLINICS = "create_clinics"
    UPDATE_CLINICS = "update_clinics"
    DELETE_CLINICS = "delete_clinics"

    # Clinic employees
    VIEW_CLINIC_EMPLOYEES = "view_clinic_employees"
    CREATE_CLINIC_EMPLOYEES = "create_clinic_employees"
    UPDATE_CLINIC_EMPLOYEES = "update_clinic_employees"
    DELETE_CLINIC_EMPLOYEES = "delete_clinic_employees"

    # Appointments
    VIEW_APPOINTMENTS = "view_appointments"
    CREATE_APPOINTMENTS = "create_appointments"
    UPDATE_APPOINTMENTS = "update_appointments"
    DELETE_APPOINTMENTS = "delete_appointments"
    BOOK_APPOINTMENTS = "book_appointments"
    ACCEPT_APPOINTMENTS = "accept_appointments"
    CONFIRM_APPOINTMENTS = "confirm_appointments"

    # Roles and permissions
    VIEW_ROLES = "view_roles"
    CREATE_ROLES = "create_roles"
    UPDATE_ROLES = "update_roles"
    DELETE_ROLES = "delete_roles"
    VIEW_PERMISSIONS = "view_permissions"
    CREATE_PERMISSIONS = "create_permissions"
    UPDATE_PERMISSIONS = "update_permissions"
    DELETE_PERMISSIONS = "delete_permissions"
    MANAGE_ROLE_PERMISSIONS = "manage_role_permissions"

    # System administration
    VIEW_SYSTEM_SETTINGS = "view_system_settings"
    UPDATE_SYSTEM_SETTINGS = "update_system_settings"
    VIEW_AUDIT_LOGS = "view_audit_logs"
    MANAGE_USERS = "manage_users"

    # Lookups
    VIEW_CITIES = "view_cities"
    VIEW_SPECIALTIES = "view_specialties"
    MANAGE_CITIES = "manage_cities"
    MANAGE_SPECIALTIES = "manage_specialties"


ALL_PERMISSIONS = (
    Permissions.VIEW_PATIENTS,
    Permissions.CREATE_PATIENTS,
    Permissions.UPDATE_PATIENTS,
    Permissions.DELETE_PATIENTS,
    Permissions.VIEW_DOCTORS,
    Permissions.CREATE_DOCTORS,
    Permissions.UPDATE_DOCTORS,
    Permissions.DELETE_DOCTORS,
    Permissions.VIEW_CLINICS,
    Permissions.CREATE_CLINICS,
    Permissions.UPDATE_CLINICS,
    Permissions.DELETE_CLINICS,
    Permissions.VIEW_CLINIC_EMPLOYEES,
    Permissions.CREATE_CLINIC_EMPLOYEES,
    Permissions.UPDATE_CLINIC_EMPLOYEES,
    Permissions.DELETE_CLINIC_EMPLOYEES,
    Permissions.VIEW_APPOINTMENTS,
    Permissions.CREATE_APPOINTMENTS,
    Permissions.UPDATE_APPOINTMENTS,
    Permissions.DELETE_APPOINTMENTS,
    Permissions.BOOK_APPOINTMENTS,
    Permissions.ACCEPT_APPOINTMENTS,
    Permissions.CONFIRM_APPOINTMENTS,
    Permissions.VIEW_ROLES,
    Permissions.CREATE_ROLES,
    Permissions.UPDATE_ROLES,
    Permissions.DELETE_ROLES,
    Permissions.VIEW_PERMISSIONS,
    Permissions.CREATE_PERMISSIONS,
    Permissions.UPDATE_PERMISSIONS,
    Permissions.DELETE_PERMISSIONS,
    Permissions.MANAGE_ROLE_PERMISSIONS,
    Permissions.VIEW_SYSTEM_SETTINGS,
    Permissions.UPDATE_SYSTEM_SETTINGS,
    Permissions.VIEW_AUDIT_LOGS,
    Permissions.MANAGE_USERS,
    Permissions.VIEW_CITIES,
    Permissions.VIEW_SPECIALTIES,
    Permissions.MANAGE_CITIES,
    Permissions.MANAGE_SPECIALTIES,
)


# Predefined role names
ROLE_ADMIN = "admin"
ROLE_DOCTOR = "doctor"
ROLE_CLINIC_STAFF = "clinic-staff"
ROLE_PATIENT = "patient"

PREDEFINED_ROLES = (ROLE_ADMIN, ROLE_DOCTOR, ROLE_CLINIC_STAFF, ROLE_PATIENT)

# Grants applied at bootstrap to a predefined role that has none yet.
# Admin is always topped up with the whole catalog.
DEFAULT_ROLE_GRANTS = {
    ROLE_DOCTOR: (
        Permissions.VIEW_APPOINTMENTS,
        Permissions.VIEW_PATIENTS,
        Permissions.VIEW_DOCTORS,
        Permissions.VIEW_CLINICS,
    ),
    ROLE_CLINIC_STAFF: (
        Permissions.VIEW_APPOINTMENTS,
        Permissions.CREATE_APPOINTMENTS,
        Permissions.ACCEPT_APPOINTMENTS,
        Permissions.UPDATE_APPOINTMENTS,
        Permissions.VIEW_PATIENTS,
        Permissions.CREATE_PATIENTS,
        Permissions.VIEW_DOCTORS,
        Permissions.VIEW_CLINICS,
    ),
    ROLE_PATIENT: (
        Permissions.VIEW_APPOINTMENTS,
        Permissions.BOOK_APPOINTMENTS,
        Permissions.CONFIRM_APPOINTMENTS,
        Permissions.VIEW_DOCTORS,
        Permissions.VIEW_CLINICS,
    ),
}

PERMISSION_NAME_RE = re.compile(r"^[a-z][a-z0-9]*(_[a-z0-9]+)+$")


def is_valid_permission_name(name: str) -> bool:
    """Permission names are snake_case with at least one underscore."""
    return bool(PERMISSION_NAME_RE.match(name or ""))
