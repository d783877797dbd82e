"""Clinic employees API router."""

from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from clinic_backend.db.session import get_db
from clinic_backend.schemas.schemas import EmployeeCreate, EmployeeEnd, EmployeeOut
from clinic_backend.services.audit_service import audit_service
from clinic_backend.services.employee_service import employee_service
from clinic_backend.core.config import settings
from clinic_backend.core.permissions import Permissions
from clinic_backend.core.security import Principal, RequirePermission

router = APIRouter(prefix="/employees", tags=["employees"])


@router.get("/")
async def list_employees(
    clinic_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.VIEW_CLINIC_EMPLOYEES)),
):
    return employee_service.list_employees(db, clinic_id, page, size)


@router.post("/", response_model=EmployeeOut, status_code=201)
async def create_employee(
    body: EmployeeCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.CREATE_CLINIC_EMPLOYEES)),
):
    """Assign a person to a clinic with a clinic-staff login."""
    result = employee_service.create_employee(
        db,
        body.first_name,
        body.father_name,
        body.last_name,
        body.national_number,
        body.clinic_id,
        body.email,
        body.password,
        phone_number=body.phone_number,
        birth_date=body.birth_date,
        address=body.address,
    )
    audit_service.log_from_request(
        db, request, principal, "employee.assigned", "clinic_employee", result["id"],
        {"clinic_id": body.clinic_id},
    )
    return result


@router.post("/{employee_id}/end", response_model=EmployeeOut)
async def end_assignment(
    employee_id: int,
    body: EmployeeEnd,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(RequirePermission(Permissions.UPDATE_CLINIC_EMPLOYEES)),
):
    result = employee_service.end_assignment(db, employee_id, body.to_date)
    audit_service.log_from_request(
        db, request, principal, "employee.ended", "clinic_employee", employee_id,
        {"to_date": body.to_date.isoformat()},
    )
    return result
