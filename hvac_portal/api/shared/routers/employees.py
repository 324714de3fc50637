"""
Employee Administration Endpoints

Listing is open to roles that may read employees (route rule enforced by the
authorization middleware); creating and updating require EMPLOYEES_WRITE.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Query, Request
from pydantic import AliasChoices, BaseModel, Field, field_validator

from ....core.auth import (
    DuplicateEmployeeError,
    Employee,
    EmployeeNotFoundError,
    Permission,
    is_valid_role,
    normalize_email,
)
from ..exceptions import ConflictError, NotFoundError
from ..error_codes import ErrorCode
from ..middleware.auth import require_employee, require_permission
from .auth import get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin/employees", tags=["employees"])


def _check_role(value: str) -> str:
    if not is_valid_role(value):
        raise ValueError(f"Unknown role '{value}'")
    return value


class CreateEmployeeRequest(BaseModel):
    """Body for creating an employee."""
    email: str = Field(min_length=3, max_length=320)
    full_name: str = Field(min_length=1, validation_alias=AliasChoices("full_name", "fullName"))
    role: str
    department: Optional[str] = None
    phone: Optional[str] = None
    password: str = Field(min_length=8)

    @field_validator("email")
    @classmethod
    def email_shape(cls, value: str) -> str:
        value = normalize_email(value)
        if "@" not in value:
            raise ValueError("Invalid email address")
        return value

    @field_validator("role")
    @classmethod
    def known_role(cls, value: str) -> str:
        return _check_role(value)


class UpdateEmployeeRequest(BaseModel):
    """Body for updating an employee."""
    full_name: str = Field(min_length=1, validation_alias=AliasChoices("full_name", "fullName"))
    role: str
    department: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "isActive"))

    @field_validator("role")
    @classmethod
    def known_role(cls, value: str) -> str:
        return _check_role(value)


class EmployeeResponse(BaseModel):
    """Employee record as returned by the admin API."""
    id: str
    email: str
    name: str
    role: str
    department: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_login_at: Optional[str] = None

    @classmethod
    def from_employee(cls, employee: Employee) -> "EmployeeResponse":
        return cls(**employee.to_dict())


class EmployeeListResponse(BaseModel):
    success: bool
    employees: List[EmployeeResponse]


class EmployeeEnvelope(BaseModel):
    success: bool
    employee: EmployeeResponse


@router.get("", response_model=EmployeeListResponse)
async def list_employees(
    request: Request,
    include_inactive: bool = Query(True),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    """
    List employees, newest first.
    """
    require_employee(request)
    services = get_services(request)

    employees = await services.employees.list_employees(
        include_inactive=include_inactive,
        limit=limit,
        offset=offset
    )
    return EmployeeListResponse(
        success=True,
        employees=[EmployeeResponse.from_employee(e) for e in employees]
    )


@router.post("", response_model=EmployeeEnvelope, status_code=201)
@require_permission(Permission.EMPLOYEES_WRITE)
async def create_employee(request: Request, body: CreateEmployeeRequest):
    """
    Create an employee with an initial password.
    """
    services = get_services(request)

    try:
        employee = await services.employees.create_employee(
            email=body.email,
            password=body.password,
            name=body.full_name,
            role=body.role,
            department=body.department or None,
            phone=body.phone or None
        )
    except DuplicateEmployeeError:
        raise ConflictError(
            "Employee with this email already exists",
            code=ErrorCode.EMPLOYEE_EXISTS
        )

    logger.info(
        f"Employee {employee.id} created by {request.state.employee.id}",
        extra={"employee_id": str(employee.id), "role": employee.role}
    )
    return EmployeeEnvelope(success=True, employee=EmployeeResponse.from_employee(employee))


@router.put("/{employee_id}", response_model=EmployeeEnvelope)
@require_permission(Permission.EMPLOYEES_WRITE)
async def update_employee(request: Request, employee_id: UUID, body: UpdateEmployeeRequest):
    """
    Update an employee. Deactivation revokes all of the employee's sessions.
    """
    services = get_services(request)

    try:
        employee = await services.employees.update_employee(
            employee_id,
            full_name=body.full_name,
            role=body.role,
            department=body.department or None,
            phone=body.phone or None,
            is_active=body.is_active
        )
    except EmployeeNotFoundError:
        raise NotFoundError("Employee", str(employee_id))

    if not employee.is_active:
        await services.sessions.revoke_all_sessions(employee.id)

    logger.info(
        f"Employee {employee.id} updated by {request.state.employee.id}",
        extra={"employee_id": str(employee.id), "role": employee.role, "is_active": employee.is_active}
    )
    return EmployeeEnvelope(success=True, employee=EmployeeResponse.from_employee(employee))
