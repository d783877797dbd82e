"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Any
from datetime import date, datetime


# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=4)

class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=6)
    confirm_password: str

class AdminResetPasswordRequest(BaseModel):
    email: str = Field(..., min_length=4)
    new_password: str = Field(..., min_length=6)


# ---- User ----
class UserOut(BaseModel):
    id: int
    email: str
    phone_number: Optional[str] = None
    is_active: bool = True
    roles: List[str] = []
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    national_number: Optional[str] = None

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut

class UserRoleInfo(BaseModel):
    user_id: int
    email: str
    roles: List[str]
    permissions: List[str]


# ---- Permissions & roles ----
class PermissionCreate(BaseModel):
    name: str = Field(..., min_length=3, max_length=100)

class PermissionOut(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True

class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    permission_ids: List[int] = []

class RoleUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    permission_ids: List[int] = []

class AssignPermissionsRequest(BaseModel):
    permission_ids: List[int]

class RoleOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    permissions: List[PermissionOut] = []

    class Config:
        from_attributes = True


# ---- Appointments ----
class AppointmentBook(BaseModel):
    patient_id: int
    doctor_clinic_id: int
    date: datetime
    reason: str = Field(..., min_length=1, max_length=500)

class AppointmentRequest(BaseModel):
    doctor_clinic_id: int
    reason: str = Field(..., min_length=1, max_length=500)

class AppointmentAccept(BaseModel):
    proposed_date: datetime
    version: Optional[int] = None

class AppointmentConfirm(BaseModel):
    is_accepted: bool
    version: Optional[int] = None

class AppointmentUpdate(BaseModel):
    date: Optional[datetime] = None
    reason: str = Field(..., min_length=1, max_length=500)
    status_id: Optional[int] = None
    version: Optional[int] = None

class AppointmentOut(BaseModel):
    id: int
    patient_id: int
    patient_name: str
    doctor_clinic_id: int
    clinic_name: str
    doctor_name: str
    date: Optional[datetime] = None
    reason: str
    status_id: int
    status: str
    version: int
    created_at: datetime
    last_updated_at: datetime


# ---- People ----
class PersonFields(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    father_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    national_number: str
    birth_date: Optional[date] = None
    address: Optional[str] = None

class PatientCreate(PersonFields):
    patient_code: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)
    phone_number: Optional[str] = None

class PatientOut(BaseModel):
    id: int
    first_name: str
    father_name: str
    last_name: str
    national_number: str
    birth_date: Optional[date] = None
    address: Optional[str] = None
    patient_code: Optional[str] = None
    user_id: Optional[int] = None

class DoctorCreate(PersonFields):
    clinic_id: int
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=6)
    phone_number: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None

class DoctorClinicOut(BaseModel):
    doctor_clinic_id: int
    clinic_id: int
    clinic_name: str
    from_date: date
    to_date: Optional[date] = None

class DoctorOut(BaseModel):
    id: int
    first_name: str
    father_name: str
    last_name: str
    national_number: str
    description: Optional[str] = None
    image: Optional[str] = None
    clinics: List[DoctorClinicOut] = []
    user_id: Optional[int] = None

class EmployeeCreate(PersonFields):
    clinic_id: int
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=6)
    phone_number: Optional[str] = None

class EmployeeEnd(BaseModel):
    to_date: date

class EmployeeOut(BaseModel):
    id: int
    person_id: int
    first_name: str
    last_name: str
    national_number: str
    clinic_id: int
    clinic_name: str
    from_date: date
    to_date: Optional[date] = None
    user_id: Optional[int] = None


# ---- Clinics ----
class ClinicCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone_number: str = Field(..., min_length=3, max_length=30)
    description: Optional[str] = None
    city: str = Field(..., min_length=1)
    street: Optional[str] = None
    details: Optional[str] = None
    doctor_ids: List[int] = []

class AddressOut(BaseModel):
    city: str
    street: Optional[str] = None
    details: Optional[str] = None

class ClinicOut(BaseModel):
    id: int
    name: str
    phone_number: str
    description: Optional[str] = None
    addresses: List[AddressOut] = []


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    actor_email: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Generic ----
class MessageResponse(BaseModel):
    message: str
    detail: Optional[Any] = None
