"""Permission management utilities."""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError
from models.role import PermissionModel, RoleModel, RolePermissionLinkModel
from utils.activity_logger import ActivityLogger, ActorContext
from utils.role_manager import RoleManager, is_admin_role

logger = logging.getLogger(__name__)


class PermissionManager:
    """Manages permissions and the role/permission matrix."""

    def __init__(self, db: Session):
        self.db = db
        self.activity = ActivityLogger(db)
        self.roles = RoleManager(db)

    def get_permission(self, permission_id: int) -> PermissionModel:
        permission = (
            self.db.query(PermissionModel)
            .filter(PermissionModel.permission_id == permission_id)
            .first()
        )
        if permission is None:
            raise NotFoundError("Permission", permission_id)
        return permission

    def get_permission_by_name(self, permission_name: str) -> Optional[PermissionModel]:
        return (
            self.db.query(PermissionModel)
            .filter(PermissionModel.permission_name == permission_name)
            .first()
        )

    def list_permissions(self) -> List[Tuple[PermissionModel, int]]:
        """List permissions with the number of roles holding each."""
        counts = dict(
            self.db.query(
                RolePermissionLinkModel.permission_id, func.count(RolePermissionLinkModel.id)
            )
            .group_by(RolePermissionLinkModel.permission_id)
            .all()
        )
        permissions = self.db.query(PermissionModel).order_by(PermissionModel.permission_name).all()
        return [(p, counts.get(p.permission_id, 0)) for p in permissions]

    def roles_with_permission(self, permission_id: int) -> List[RoleModel]:
        return (
            self.db.query(RoleModel)
            .join(RolePermissionLinkModel, RolePermissionLinkModel.role_id == RoleModel.role_id)
            .filter(RolePermissionLinkModel.permission_id == permission_id)
            .order_by(RoleModel.role_name)
            .all()
        )

    def create_permission(
        self,
        permission_name: str,
        permission_description: str,
        actor: Optional[ActorContext] = None,
    ) -> PermissionModel:
        """Create a permission and grant it to every Admin role.

        Raises:
            ConflictError: If the name is already taken.
        """
        if self.get_permission_by_name(permission_name) is not None:
            raise ConflictError(f"Permission '{permission_name}' already exists")

        permission = PermissionModel(
            permission_name=permission_name,
            permission_description=permission_description,
        )
        self.db.add(permission)
        self.db.flush()

        # Admin always holds every permission
        for role in self.db.query(RoleModel).all():
            if is_admin_role(role):
                self.db.add(
                    RolePermissionLinkModel(
                        role_id=role.role_id, permission_id=permission.permission_id
                    )
                )

        self.activity.record(
            actor,
            "PERMISSION_CREATED",
            entity_type="permission",
            entity_id=permission.permission_id,
            details={"permission_name": permission_name},
        )
        self.db.commit()
        self.db.refresh(permission)
        logger.info("Created permission: %s", permission_name)
        return permission

    def update_permission(
        self,
        permission_id: int,
        changes: Dict[str, Any],
        actor: Optional[ActorContext] = None,
    ) -> PermissionModel:
        permission = self.get_permission(permission_id)

        new_name = changes.get("permission_name")
        if new_name is not None and new_name != permission.permission_name:
            if self.get_permission_by_name(new_name) is not None:
                raise ConflictError(f"Permission '{new_name}' already exists")
            permission.permission_name = new_name
        if changes.get("permission_description") is not None:
            permission.permission_description = changes["permission_description"]

        self.activity.record(
            actor,
            "PERMISSION_UPDATED",
            entity_type="permission",
            entity_id=permission_id,
            details={"permission_name": permission.permission_name},
        )
        self.db.commit()
        self.db.refresh(permission)
        return permission

    def role_permission_matrix(self) -> List[Tuple[RoleModel, List[int]]]:
        """Every role with the ids of the permissions it holds."""
        links: Dict[int, List[int]] = {}
        for role_id, permission_id in self.db.query(
            RolePermissionLinkModel.role_id, RolePermissionLinkModel.permission_id
        ).all():
            links.setdefault(role_id, []).append(permission_id)
        roles = self.db.query(RoleModel).order_by(RoleModel.role_name).all()
        return [(role, sorted(links.get(role.role_id, []))) for role in roles]

    def assign_permissions(
        self,
        role_id: int,
        permission_ids: List[int],
        actor: Optional[ActorContext] = None,
    ) -> RoleModel:
        """Replace a role's permission set.

        Raises:
            NotFoundError: If the role does not exist.
            ForbiddenError: If permissions would be removed from Admin.
            ValidationError: If a permission id does not exist.
        """
        role = self.roles.get_role(role_id)
        self.roles.replace_role_permissions(role, permission_ids)
        self.activity.record(
            actor,
            "PERMISSIONS_ASSIGNED",
            entity_type="role",
            entity_id=role_id,
            details={"permission_ids": sorted(set(permission_ids))},
        )
        self.db.commit()
        self.db.refresh(role)
        logger.info("Assigned %d permission(s) to role %s", len(set(permission_ids)), role.role_name)
        return role
