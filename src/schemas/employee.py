"""Employee schema definitions."""

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


class EmployeeRoleOut(BaseModel):
    employee_role_id: int
    role_id: int
    role_name: str
    is_active: bool
    assigned_by: Optional[int] = None
    created_at: str
    updated_at: str


class EmployeeOut(BaseModel):
    employee_id: int
    user_id: int
    first_name: str
    last_name: str
    user_email: str
    department: Optional[str] = None
    position: Optional[str] = None
    hire_date: Optional[str] = None
    is_active: bool
    created_at: str
    updated_at: str
    roles: List[EmployeeRoleOut] = Field(
        default_factory=list,
        description="Active role assignments only.",
    )


class EmployeeListResponse(BaseModel):
    count: int
    employees: List[EmployeeOut]


class CreateEmployeeRequest(BaseModel):
    user_id: int = Field(ge=1)
    department: Optional[str] = Field(default=None, max_length=100)
    position: Optional[str] = Field(default=None, max_length=100)
    hire_date: Optional[date] = None


class UpdateEmployeeRequest(BaseModel):
    department: Optional[str] = Field(default=None, max_length=100)
    position: Optional[str] = Field(default=None, max_length=100)
    hire_date: Optional[date] = None
    is_active: Optional[bool] = None


class AssignEmployeeRoleRequest(BaseModel):
    role_id: int = Field(ge=1)
