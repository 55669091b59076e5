"""Role management utilities.

This module provides role CRUD, role/permission linkage, the per-user role and
permission lookups used by authorization, and bulk role import from CSV.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import ADMIN_ROLE_NAME
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from models.role import PermissionModel, RoleModel, RolePermissionLinkModel, RoleUserLinkModel
from models.user import UserModel
from schemas.common import BulkImportResult, BulkImportRowError
from utils.activity_logger import ActivityLogger, ActorContext
from utils.csv_import import iter_csv_rows, split_list

logger = logging.getLogger(__name__)

ROLE_USERS_LIMIT = 100


def is_admin_role(role: RoleModel) -> bool:
    return role.role_name.lower() == ADMIN_ROLE_NAME.lower()


class RoleManager:
    """Manages roles and their permission sets using SQLAlchemy."""

    def __init__(self, db: Session):
        """Initialize RoleManager.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db
        self.activity = ActivityLogger(db)

    # --- Lookups ---

    def get_role(self, role_id: int) -> RoleModel:
        role = self.db.query(RoleModel).filter(RoleModel.role_id == role_id).first()
        if role is None:
            raise NotFoundError("Role", role_id)
        return role

    def get_role_by_name(self, role_name: str) -> Optional[RoleModel]:
        return (
            self.db.query(RoleModel)
            .filter(func.lower(RoleModel.role_name) == role_name.strip().lower())
            .first()
        )

    def user_count(self, role_id: int) -> int:
        return (
            self.db.query(func.count(RoleUserLinkModel.id))
            .filter(RoleUserLinkModel.role_id == role_id)
            .scalar()
        )

    def list_roles(self) -> List[Tuple[RoleModel, int]]:
        """List all roles with the number of users linked to each.

        Returns:
            List of (RoleModel, user_count) tuples ordered by role name.
        """
        counts = dict(
            self.db.query(RoleUserLinkModel.role_id, func.count(RoleUserLinkModel.id))
            .group_by(RoleUserLinkModel.role_id)
            .all()
        )
        roles = self.db.query(RoleModel).order_by(RoleModel.role_name).all()
        return [(role, counts.get(role.role_id, 0)) for role in roles]

    def get_role_users(self, role_id: int, limit: int = ROLE_USERS_LIMIT) -> List[UserModel]:
        return (
            self.db.query(UserModel)
            .join(RoleUserLinkModel, RoleUserLinkModel.user_id == UserModel.user_id)
            .filter(RoleUserLinkModel.role_id == role_id)
            .order_by(UserModel.user_id)
            .limit(limit)
            .all()
        )

    def roles_for_user(self, user_id: int) -> List[RoleModel]:
        return (
            self.db.query(RoleModel)
            .join(RoleUserLinkModel, RoleUserLinkModel.role_id == RoleModel.role_id)
            .filter(RoleUserLinkModel.user_id == user_id)
            .order_by(RoleModel.role_name)
            .all()
        )

    def permissions_for_user(self, user_id: int) -> List[str]:
        """Union of the permission names of every role linked to the user."""
        rows = (
            self.db.query(PermissionModel.permission_name)
            .join(
                RolePermissionLinkModel,
                RolePermissionLinkModel.permission_id == PermissionModel.permission_id,
            )
            .join(RoleUserLinkModel, RoleUserLinkModel.role_id == RolePermissionLinkModel.role_id)
            .filter(RoleUserLinkModel.user_id == user_id)
            .distinct()
            .order_by(PermissionModel.permission_name)
            .all()
        )
        return [name for (name,) in rows]

    def permission_ids_for_role(self, role_id: int) -> List[int]:
        rows = (
            self.db.query(RolePermissionLinkModel.permission_id)
            .filter(RolePermissionLinkModel.role_id == role_id)
            .all()
        )
        return [permission_id for (permission_id,) in rows]

    # --- Mutations ---

    def _resolve_permissions(self, permission_ids: Iterable[int]) -> List[PermissionModel]:
        wanted = set(permission_ids)
        if not wanted:
            return []
        found = (
            self.db.query(PermissionModel)
            .filter(PermissionModel.permission_id.in_(wanted))
            .all()
        )
        missing = wanted - {p.permission_id for p in found}
        if missing:
            raise ValidationError(
                f"Invalid permission id(s): {', '.join(str(i) for i in sorted(missing))}",
                errors=[{"field": "permissions", "message": "One or more permissions do not exist"}],
            )
        return found

    def replace_role_permissions(self, role: RoleModel, permission_ids: Iterable[int]) -> None:
        """Replace the role's permission set (no commit).

        Raises:
            ValidationError: If a permission id does not exist.
            ForbiddenError: If the change would remove a permission from Admin.
        """
        permissions = self._resolve_permissions(permission_ids)
        new_ids = {p.permission_id for p in permissions}
        current_ids = set(self.permission_ids_for_role(role.role_id))

        if is_admin_role(role) and current_ids - new_ids:
            raise ForbiddenError("Cannot remove permissions from the Admin role")

        removed = current_ids - new_ids
        if removed:
            (
                self.db.query(RolePermissionLinkModel)
                .filter(
                    RolePermissionLinkModel.role_id == role.role_id,
                    RolePermissionLinkModel.permission_id.in_(removed),
                )
                .delete(synchronize_session=False)
            )
        for permission_id in sorted(new_ids - current_ids):
            self.db.add(RolePermissionLinkModel(role_id=role.role_id, permission_id=permission_id))
        self.db.flush()
        self.db.expire(role, ["permissions"])

    def create_role(
        self,
        role_name: str,
        role_description: str = "",
        permission_ids: Optional[List[int]] = None,
        actor: Optional[ActorContext] = None,
    ) -> RoleModel:
        """Create a new role.

        Raises:
            ConflictError: If a role with the same name exists.
            ValidationError: If a permission id does not exist.
        """
        role_name = role_name.strip()
        if self.get_role_by_name(role_name) is not None:
            raise ConflictError(f"Role '{role_name}' already exists")

        role = RoleModel(role_name=role_name, role_description=role_description or "")
        self.db.add(role)
        self.db.flush()
        if permission_ids:
            self.replace_role_permissions(role, permission_ids)

        self.activity.record(
            actor,
            "ROLE_CREATED",
            entity_type="role",
            entity_id=role.role_id,
            details={"role_name": role_name},
        )
        self.db.commit()
        self.db.refresh(role)
        logger.info("Created role: %s", role_name)
        return role

    def update_role(
        self,
        role_id: int,
        changes: Dict[str, Any],
        actor: Optional[ActorContext] = None,
    ) -> RoleModel:
        """Partially update a role.

        Args:
            role_id: Role to update.
            changes: Any of role_name, role_description, permissions (ids).
            actor: Acting user.

        Raises:
            NotFoundError: If the role does not exist.
            ConflictError: If the new name is taken.
            ForbiddenError: If a system role would be renamed or Admin would lose permissions.
        """
        role = self.get_role(role_id)

        new_name = changes.get("role_name")
        if new_name is not None:
            new_name = new_name.strip()
            if new_name != role.role_name:
                if role.is_system:
                    raise ForbiddenError("System roles cannot be renamed")
                existing = self.get_role_by_name(new_name)
                if existing is not None and existing.role_id != role.role_id:
                    raise ConflictError(f"Role '{new_name}' already exists")
                role.role_name = new_name

        if changes.get("role_description") is not None:
            role.role_description = changes["role_description"]

        if changes.get("permissions") is not None:
            self.replace_role_permissions(role, changes["permissions"])

        self.activity.record(
            actor,
            "ROLE_UPDATED",
            entity_type="role",
            entity_id=role.role_id,
            details={"fields": sorted(k for k, v in changes.items() if v is not None)},
        )
        self.db.commit()
        self.db.refresh(role)
        logger.info("Updated role: %s", role.role_name)
        return role

    def delete_role(self, role_id: int, actor: Optional[ActorContext] = None) -> None:
        """Delete a role.

        Raises:
            NotFoundError: If the role does not exist.
            ForbiddenError: If the role is a system role.
            ConflictError: If users are still linked to the role.
        """
        role = self.get_role(role_id)
        if role.is_system:
            raise ForbiddenError("System roles cannot be deleted")
        linked = self.user_count(role_id)
        if linked:
            raise ConflictError(f"Cannot delete role: {linked} user(s) are assigned to it")

        role_name = role.role_name
        self.db.query(RolePermissionLinkModel).filter(
            RolePermissionLinkModel.role_id == role_id
        ).delete(synchronize_session=False)
        self.db.delete(role)
        self.activity.record(
            actor,
            "ROLE_DELETED",
            entity_type="role",
            entity_id=role_id,
            details={"role_name": role_name},
        )
        self.db.commit()
        logger.info("Deleted role: %s", role_name)

    def import_roles_csv(
        self, file_bytes: bytes, actor: Optional[ActorContext] = None
    ) -> BulkImportResult:
        """Create roles from an uploaded CSV file, one commit per row.

        The ``permissions`` column holds ``;``-separated permission names;
        unknown names are skipped.
        """
        result = BulkImportResult()
        permission_ids = {
            name: permission_id
            for permission_id, name in self.db.query(
                PermissionModel.permission_id, PermissionModel.permission_name
            ).all()
        }

        for row in iter_csv_rows(file_bytes, required_headers=["role_name"]):
            try:
                role_name = row.get("role_name")
                if not role_name:
                    raise ValidationError("role_name is required")
                wanted = [
                    permission_ids[name]
                    for name in split_list(row.get("permissions"), ";")
                    if name in permission_ids
                ]
                self.create_role(
                    role_name=role_name,
                    role_description=row.get("role_description"),
                    permission_ids=wanted,
                    actor=actor,
                )
                result.successful += 1
            except (ConflictError, ValidationError, ForbiddenError) as e:
                self.db.rollback()
                result.failed += 1
                result.errors.append(
                    BulkImportRowError(row=row.row_number, line=row.line_number, error=str(e))
                )

        self.activity.record(
            actor,
            "ROLES_BULK_IMPORTED",
            entity_type="role",
            details={"successful": result.successful, "failed": result.failed},
        )
        self.db.commit()
        logger.info(
            "Bulk role import: %d successful, %d failed", result.successful, result.failed
        )
        return result
