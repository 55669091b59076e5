"""Employee routes."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from api.errors import http_error
from api.routes.auth import get_actor, require_permissions
from core.dependencies import EmployeeManagerDep
from core.exceptions import EmployDexError
from schemas.common import MessageResponse
from schemas.employee import (
    AssignEmployeeRoleRequest,
    CreateEmployeeRequest,
    EmployeeListResponse,
    EmployeeOut,
    EmployeeRoleOut,
    UpdateEmployeeRequest,
)
from schemas.user import CurrentUser
from utils.activity_logger import ActorContext

router = APIRouter(prefix="/api/employees", tags=["Employees"])


def _build_role_out(assignment) -> EmployeeRoleOut:
    return EmployeeRoleOut(
        employee_role_id=assignment.employee_role_id,
        role_id=assignment.role_id,
        role_name=assignment.role.role_name,
        is_active=assignment.is_active,
        assigned_by=assignment.assigned_by,
        created_at=assignment.created_at,
        updated_at=assignment.updated_at,
    )


def _build_employee_out(employee) -> EmployeeOut:
    return EmployeeOut(
        employee_id=employee.employee_id,
        user_id=employee.user_id,
        first_name=employee.user.first_name,
        last_name=employee.user.last_name,
        user_email=employee.user.user_email,
        department=employee.department,
        position=employee.position,
        hire_date=employee.hire_date,
        is_active=employee.is_active,
        created_at=employee.created_at,
        updated_at=employee.updated_at,
        roles=[_build_role_out(a) for a in employee.role_assignments if a.is_active],
    )


@router.get("", response_model=EmployeeListResponse, summary="List employees")
def list_employees(
    employee_manager: EmployeeManagerDep,
    department: Optional[str] = Query(default=None),
    isActive: Optional[bool] = Query(default=None),
    current_user: CurrentUser = Depends(require_permissions("employee_view")),
) -> EmployeeListResponse:
    employees = [
        _build_employee_out(e)
        for e in employee_manager.list_employees(department=department, is_active=isActive)
    ]
    return EmployeeListResponse(count=len(employees), employees=employees)


@router.post(
    "",
    response_model=EmployeeOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create an employee",
)
def create_employee(
    req: CreateEmployeeRequest,
    employee_manager: EmployeeManagerDep,
    current_user: CurrentUser = Depends(require_permissions("employee_create")),
    actor: ActorContext = Depends(get_actor),
) -> EmployeeOut:
    try:
        employee = employee_manager.create_employee(
            user_id=req.user_id,
            department=req.department,
            position=req.position,
            hire_date=req.hire_date,
            actor=actor,
        )
    except EmployDexError as e:
        raise http_error(e)
    return _build_employee_out(employee)


@router.get("/{employee_id}", response_model=EmployeeOut, summary="Get an employee")
def get_employee(
    employee_id: int,
    employee_manager: EmployeeManagerDep,
    current_user: CurrentUser = Depends(require_permissions("employee_view")),
) -> EmployeeOut:
    try:
        return _build_employee_out(employee_manager.get_employee(employee_id))
    except EmployDexError as e:
        raise http_error(e)


@router.put("/{employee_id}", response_model=EmployeeOut, summary="Update an employee")
def update_employee(
    employee_id: int,
    req: UpdateEmployeeRequest,
    employee_manager: EmployeeManagerDep,
    current_user: CurrentUser = Depends(require_permissions("employee_edit")),
    actor: ActorContext = Depends(get_actor),
) -> EmployeeOut:
    try:
        employee = employee_manager.update_employee(
            employee_id, req.model_dump(exclude_unset=True), actor=actor
        )
    except EmployDexError as e:
        raise http_error(e)
    return _build_employee_out(employee)


@router.delete("/{employee_id}", response_model=MessageResponse, summary="Deactivate an employee")
def delete_employee(
    employee_id: int,
    employee_manager: EmployeeManagerDep,
    current_user: CurrentUser = Depends(require_permissions("employee_delete")),
    actor: ActorContext = Depends(get_actor),
) -> MessageResponse:
    try:
        employee_manager.deactivate_employee(employee_id, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return MessageResponse(message="Employee deactivated successfully")


@router.get("/{employee_id}/roles", response_model=List[EmployeeRoleOut], summary="List employee roles")
def list_employee_roles(
    employee_id: int,
    employee_manager: EmployeeManagerDep,
    current_user: CurrentUser = Depends(require_permissions("employee_view")),
) -> List[EmployeeRoleOut]:
    try:
        employee = employee_manager.get_employee(employee_id)
    except EmployDexError as e:
        raise http_error(e)
    return [_build_role_out(a) for a in employee_manager.active_roles(employee)]


@router.post(
    "/{employee_id}/roles",
    response_model=EmployeeRoleOut,
    status_code=status.HTTP_201_CREATED,
    summary="Assign a role to an employee",
)
def assign_employee_role(
    employee_id: int,
    req: AssignEmployeeRoleRequest,
    employee_manager: EmployeeManagerDep,
    current_user: CurrentUser = Depends(require_permissions("employee_edit")),
    actor: ActorContext = Depends(get_actor),
) -> EmployeeRoleOut:
    """Assign a role; an earlier, deactivated assignment is reactivated."""
    try:
        assignment = employee_manager.assign_role(employee_id, req.role_id, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return _build_role_out(assignment)


@router.delete(
    "/{employee_id}/roles/{role_id}",
    response_model=MessageResponse,
    summary="Remove a role from an employee",
)
def remove_employee_role(
    employee_id: int,
    role_id: int,
    employee_manager: EmployeeManagerDep,
    current_user: CurrentUser = Depends(require_permissions("employee_edit")),
    actor: ActorContext = Depends(get_actor),
) -> MessageResponse:
    try:
        employee_manager.remove_role(employee_id, role_id, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return MessageResponse(message="Role removed from employee")
