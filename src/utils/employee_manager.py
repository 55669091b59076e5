"""Employee management utilities."""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError, ValidationError
from models.employee import EmployeeModel, EmployeeRoleModel
from models.role import RoleModel
from models.user import UserModel
from utils.activity_logger import ActivityLogger, ActorContext

logger = logging.getLogger(__name__)


class EmployeeManager:
    """Manages employees and their role assignments using SQLAlchemy."""

    def __init__(self, db: Session):
        self.db = db
        self.activity = ActivityLogger(db)

    def get_employee(self, employee_id: int) -> EmployeeModel:
        employee = (
            self.db.query(EmployeeModel).filter(EmployeeModel.employee_id == employee_id).first()
        )
        if employee is None:
            raise NotFoundError("Employee", employee_id)
        return employee

    def list_employees(
        self, department: Optional[str] = None, is_active: Optional[bool] = None
    ) -> List[EmployeeModel]:
        query = self.db.query(EmployeeModel)
        if department:
            query = query.filter(EmployeeModel.department == department)
        if is_active is not None:
            query = query.filter(EmployeeModel.is_active == is_active)
        return query.order_by(EmployeeModel.employee_id).all()

    def active_roles(self, employee: EmployeeModel) -> List[EmployeeRoleModel]:
        return [a for a in employee.role_assignments if a.is_active]

    def create_employee(
        self,
        user_id: int,
        department: Optional[str] = None,
        position: Optional[str] = None,
        hire_date: Optional[date] = None,
        actor: Optional[ActorContext] = None,
    ) -> EmployeeModel:
        """Create an employee record for an existing user.

        Raises:
            ValidationError: If the user does not exist.
            ConflictError: If the user is already an employee.
        """
        if self.db.query(UserModel.user_id).filter(UserModel.user_id == user_id).first() is None:
            raise ValidationError(
                f"User {user_id} does not exist",
                errors=[{"field": "user_id", "message": "User does not exist"}],
            )
        if self.db.query(EmployeeModel).filter(EmployeeModel.user_id == user_id).first():
            raise ConflictError(f"User {user_id} is already an employee")

        employee = EmployeeModel(
            user_id=user_id,
            department=department,
            position=position,
            hire_date=hire_date.isoformat() if hire_date else None,
        )
        self.db.add(employee)
        self.db.flush()
        self.activity.record(
            actor,
            "EMPLOYEE_CREATED",
            entity_type="employee",
            entity_id=employee.employee_id,
            details={"user_id": user_id},
        )
        self.db.commit()
        self.db.refresh(employee)
        logger.info("Created employee %s for user %s", employee.employee_id, user_id)
        return employee

    def update_employee(
        self,
        employee_id: int,
        changes: Dict[str, Any],
        actor: Optional[ActorContext] = None,
    ) -> EmployeeModel:
        employee = self.get_employee(employee_id)
        for field in ("department", "position", "is_active"):
            if changes.get(field) is not None:
                setattr(employee, field, changes[field])
        if changes.get("hire_date") is not None:
            employee.hire_date = changes["hire_date"].isoformat()

        self.activity.record(
            actor,
            "EMPLOYEE_UPDATED",
            entity_type="employee",
            entity_id=employee_id,
            details={"fields": sorted(k for k, v in changes.items() if v is not None)},
        )
        self.db.commit()
        self.db.refresh(employee)
        return employee

    def deactivate_employee(self, employee_id: int, actor: Optional[ActorContext] = None) -> None:
        """Soft delete: the record is kept with is_active False."""
        employee = self.get_employee(employee_id)
        employee.is_active = False
        self.activity.record(
            actor, "EMPLOYEE_DEACTIVATED", entity_type="employee", entity_id=employee_id
        )
        self.db.commit()
        logger.info("Deactivated employee %s", employee_id)

    def assign_role(
        self, employee_id: int, role_id: int, actor: Optional[ActorContext] = None
    ) -> EmployeeRoleModel:
        """Assign a role to an employee, reactivating a previous assignment.

        Raises:
            NotFoundError: If the employee or role does not exist.
        """
        employee = self.get_employee(employee_id)
        if self.db.query(RoleModel.role_id).filter(RoleModel.role_id == role_id).first() is None:
            raise NotFoundError("Role", role_id)

        assignment = (
            self.db.query(EmployeeRoleModel)
            .filter(
                EmployeeRoleModel.employee_id == employee.employee_id,
                EmployeeRoleModel.role_id == role_id,
            )
            .first()
        )
        if assignment is None:
            assignment = EmployeeRoleModel(employee_id=employee.employee_id, role_id=role_id)
            self.db.add(assignment)
        assignment.is_active = True
        assignment.assigned_by = actor.user_id if actor else None
        self.db.flush()

        self.activity.record(
            actor,
            "EMPLOYEE_ROLE_ASSIGNED",
            entity_type="employee",
            entity_id=employee_id,
            details={"role_id": role_id},
        )
        self.db.commit()
        self.db.refresh(assignment)
        return assignment

    def remove_role(
        self, employee_id: int, role_id: int, actor: Optional[ActorContext] = None
    ) -> None:
        """Deactivate an employee's role assignment.

        Raises:
            NotFoundError: If the employee does not exist or holds no active assignment.
        """
        self.get_employee(employee_id)
        assignment = (
            self.db.query(EmployeeRoleModel)
            .filter(
                EmployeeRoleModel.employee_id == employee_id,
                EmployeeRoleModel.role_id == role_id,
                EmployeeRoleModel.is_active.is_(True),
            )
            .first()
        )
        if assignment is None:
            raise NotFoundError("Role assignment", role_id)
        assignment.is_active = False
        self.activity.record(
            actor,
            "EMPLOYEE_ROLE_REMOVED",
            entity_type="employee",
            entity_id=employee_id,
            details={"role_id": role_id},
        )
        self.db.commit()
