"""Employee and employee role assignment models."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, now_iso


class EmployeeModel(Base):
    __tablename__ = "employees"

    employee_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.user_id", ondelete="CASCADE"), unique=True, index=True, nullable=False
    )
    department = Column(String, nullable=True)
    position = Column(String, nullable=True)
    hire_date = Column(String, nullable=True)  # YYYY-MM-DD
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)

    user = relationship("UserModel", lazy="joined")
    role_assignments = relationship(
        "EmployeeRoleModel",
        back_populates="employee",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class EmployeeRoleModel(Base):
    """One row per (employee, role); re-assigning reactivates the row."""

    __tablename__ = "employee_roles"
    __table_args__ = (
        UniqueConstraint("employee_id", "role_id", name="uq_employee_role"),
    )

    employee_role_id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(
        Integer, ForeignKey("employees.employee_id", ondelete="CASCADE"), index=True, nullable=False
    )
    role_id = Column(Integer, ForeignKey("roles.role_id", ondelete="CASCADE"), index=True, nullable=False)
    assigned_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)

    employee = relationship("EmployeeModel", back_populates="role_assignments")
    role = relationship("RoleModel", lazy="joined")
