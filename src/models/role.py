"""Role, permission and junction table models."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, now_iso


class RoleModel(Base):
    __tablename__ = "roles"

    role_id = Column(Integer, primary_key=True, index=True)
    role_name = Column(String, unique=True, index=True, nullable=False)
    role_description = Column(String, nullable=False, default="")
    is_system = Column(Boolean, nullable=False, default=False)  # Admin / User cannot be deleted
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)

    permissions = relationship(
        "PermissionModel",
        secondary="role_permission_link",
        viewonly=True,
        lazy="selectin",
        order_by="PermissionModel.permission_name",
    )


class PermissionModel(Base):
    __tablename__ = "permissions"

    permission_id = Column(Integer, primary_key=True, index=True)
    permission_name = Column(String, unique=True, index=True, nullable=False)  # e.g. "user_view"
    permission_description = Column(String, nullable=False)
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)


class RolePermissionLinkModel(Base):
    __tablename__ = "role_permission_link"
    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
    )

    id = Column(Integer, primary_key=True)
    role_id = Column(Integer, ForeignKey("roles.role_id", ondelete="CASCADE"), index=True, nullable=False)
    permission_id = Column(
        Integer, ForeignKey("permissions.permission_id", ondelete="CASCADE"), index=True, nullable=False
    )
    created_at = Column(String, nullable=False, default=now_iso)


class RoleUserLinkModel(Base):
    __tablename__ = "role_user_link"
    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_role_user"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False)
    # No cascade: a role with linked users must not be deleted
    role_id = Column(Integer, ForeignKey("roles.role_id"), index=True, nullable=False)
    created_at = Column(String, nullable=False, default=now_iso)
