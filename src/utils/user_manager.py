"""User management utilities.

This module provides user storage, role assignment, account status changes
and bulk user import from CSV.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import DEFAULT_ROLE_NAME, MIN_PASSWORD_LENGTH, PRIMARY_ADMIN_USER_ID
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.security import hash_password
from models.base import now_iso
from models.refresh_token import RefreshTokenModel
from models.role import RoleModel, RoleUserLinkModel
from models.user import UserModel
from schemas.common import BulkImportResult, BulkImportRowError
from schemas.user import normalize_email, normalize_mobile
from utils.activity_logger import ActivityLogger, ActorContext
from utils.csv_import import USER_TEMPLATE_HEADERS, iter_csv_rows, split_list
from utils.vote_manager import VoteManager

logger = logging.getLogger(__name__)


class UserManager:
    """Manages user data persistence and operations using SQLAlchemy."""

    def __init__(self, db: Session):
        """Initialize UserManager.

        Args:
            db: SQLAlchemy Session.
        """
        self.db = db
        self.activity = ActivityLogger(db)

    def get_user(self, user_id: int) -> UserModel:
        """Get a user by id.

        Raises:
            NotFoundError: If the user does not exist.
        """
        user = self.db.query(UserModel).filter(UserModel.user_id == user_id).first()
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def get_user_by_login(self, username: str) -> Optional[UserModel]:
        """Find a user by email address or mobile number.

        Args:
            username: Email (case-insensitive) or mobile number.

        Returns:
            UserModel if found, None otherwise.
        """
        username = username.strip()
        return (
            self.db.query(UserModel)
            .filter(
                or_(
                    UserModel.user_email == username.lower(),
                    UserModel.mobile_number == username,
                )
            )
            .first()
        )

    def list_users(
        self,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        role_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[UserModel], int]:
        """List users with filters and pagination.

        Args:
            is_active: Filter on account status.
            search: Substring matched against first name, last name and email.
            role_id: Only users linked to this role.
            page: 1-based page number.
            limit: Page size.

        Returns:
            Tuple of (users on the page, total matching users).
        """
        query = self.db.query(UserModel)
        if is_active is not None:
            query = query.filter(UserModel.is_active == is_active)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    UserModel.first_name.ilike(pattern),
                    UserModel.last_name.ilike(pattern),
                    UserModel.user_email.ilike(pattern),
                )
            )
        if role_id is not None:
            query = query.filter(
                UserModel.user_id.in_(
                    self.db.query(RoleUserLinkModel.user_id).filter(
                        RoleUserLinkModel.role_id == role_id
                    )
                )
            )

        total = query.count()
        users = (
            query.order_by(UserModel.user_id)
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return users, total

    def _ensure_unique(
        self,
        user_email: Optional[str],
        mobile_number: Optional[str],
        exclude_user_id: Optional[int] = None,
    ) -> None:
        if user_email:
            query = self.db.query(UserModel.user_id).filter(UserModel.user_email == user_email)
            if exclude_user_id is not None:
                query = query.filter(UserModel.user_id != exclude_user_id)
            if query.first():
                raise ConflictError(f"A user with email '{user_email}' already exists")
        if mobile_number:
            query = self.db.query(UserModel.user_id).filter(
                UserModel.mobile_number == mobile_number
            )
            if exclude_user_id is not None:
                query = query.filter(UserModel.user_id != exclude_user_id)
            if query.first():
                raise ConflictError(f"A user with mobile number '{mobile_number}' already exists")

    def _default_role(self) -> RoleModel:
        role = (
            self.db.query(RoleModel)
            .filter(func.lower(RoleModel.role_name) == DEFAULT_ROLE_NAME.lower())
            .first()
        )
        if role is None:
            raise ValidationError(f"Default role '{DEFAULT_ROLE_NAME}' is not configured")
        return role

    def _resolve_roles(self, role_ids: Iterable[int]) -> List[RoleModel]:
        wanted = set(role_ids)
        roles = self.db.query(RoleModel).filter(RoleModel.role_id.in_(wanted)).all()
        missing = wanted - {r.role_id for r in roles}
        if missing:
            raise ValidationError(
                f"Invalid role id(s): {', '.join(str(i) for i in sorted(missing))}",
                errors=[{"field": "roles", "message": "One or more roles do not exist"}],
            )
        return roles

    def _replace_roles(self, user: UserModel, roles: List[RoleModel]) -> None:
        self.db.query(RoleUserLinkModel).filter(
            RoleUserLinkModel.user_id == user.user_id
        ).delete(synchronize_session=False)
        for role in roles:
            self.db.add(RoleUserLinkModel(user_id=user.user_id, role_id=role.role_id))
        self.db.flush()
        self.db.expire(user, ["roles"])

    def create_user(
        self,
        user_email: str,
        password: str,
        first_name: str,
        last_name: str,
        mobile_number: Optional[str] = None,
        role_ids: Optional[List[int]] = None,
        is_active: bool = True,
        actor: Optional[ActorContext] = None,
        action: str = "USER_CREATED",
        roles: Optional[List[RoleModel]] = None,
    ) -> UserModel:
        """Create a new user.

        Args:
            user_email: Normalized email address.
            password: Plain text password.
            first_name: First name.
            last_name: Last name.
            mobile_number: Optional mobile number.
            role_ids: Role ids to link; empty assigns the default role.
            is_active: Initial account status.
            actor: Acting user; None for self-registration.
            action: Activity action name to record.
            roles: Already resolved roles (takes precedence over role_ids).

        Returns:
            Created UserModel.

        Raises:
            ConflictError: If the email or mobile number already exists.
            ValidationError: If a role id does not exist.
        """
        self._ensure_unique(user_email, mobile_number)
        if roles is None:
            roles = self._resolve_roles(role_ids) if role_ids else []
        if not roles:
            roles = [self._default_role()]

        user = UserModel(
            user_email=user_email,
            mobile_number=mobile_number,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            password_hash=hash_password(password),
            is_active=is_active,
        )
        # Handle potential race condition: the unique constraint is the final check
        try:
            self.db.add(user)
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError("A user with this email or mobile number already exists") from e

        self._replace_roles(user, roles)
        if actor is None or actor.user_id is None:
            # Self-registration: the new user is the actor
            actor = ActorContext(
                user_id=user.user_id,
                ip_address=actor.ip_address if actor else None,
                user_agent=actor.user_agent if actor else None,
            )
        self.activity.record(
            actor,
            action,
            entity_type="user",
            entity_id=user.user_id,
            details={"user_email": user_email, "roles": [r.role_name for r in roles]},
        )
        self.db.commit()
        self.db.refresh(user)
        logger.info("Created user: %s", user_email)
        return user

    def update_user(
        self,
        user_id: int,
        changes: Dict[str, Any],
        actor: Optional[ActorContext] = None,
    ) -> UserModel:
        """Partially update a user.

        Args:
            user_id: User to update.
            changes: Any of user_email, mobile_number, first_name, last_name,
                password, is_active, roles (list of role ids).
            actor: Acting user.

        Raises:
            NotFoundError: If the user does not exist.
            ConflictError: If the new email or mobile number is taken.
            ValidationError: If a role id does not exist.
        """
        user = self.get_user(user_id)
        self._ensure_unique(
            changes.get("user_email"), changes.get("mobile_number"), exclude_user_id=user_id
        )

        for field in ("user_email", "mobile_number", "first_name", "last_name", "is_active"):
            if changes.get(field) is not None:
                setattr(user, field, changes[field])
        if changes.get("password"):
            user.password_hash = hash_password(changes["password"])
        if changes.get("roles") is not None:
            roles = self._resolve_roles(changes["roles"]) if changes["roles"] else []
            self._replace_roles(user, roles or [self._default_role()])

        self.activity.record(
            actor,
            "USER_UPDATED",
            entity_type="user",
            entity_id=user_id,
            details={"fields": sorted(k for k, v in changes.items() if v is not None)},
        )
        self.db.commit()
        self.db.refresh(user)
        logger.info("Updated user: %s", user.user_email)
        return user

    def set_user_status(
        self, user_id: int, is_active: bool, actor: Optional[ActorContext] = None
    ) -> UserModel:
        user = self.get_user(user_id)
        user.is_active = is_active
        if not is_active:
            self.revoke_refresh_tokens(user_id)
        self.activity.record(
            actor,
            "USER_ACTIVATED" if is_active else "USER_DEACTIVATED",
            entity_type="user",
            entity_id=user_id,
        )
        self.db.commit()
        self.db.refresh(user)
        return user

    def delete_user(self, user_id: int, actor: Optional[ActorContext] = None) -> None:
        """Delete a user.

        Raises:
            ForbiddenError: If the user is the primary administrator.
            NotFoundError: If the user does not exist.
        """
        if user_id == PRIMARY_ADMIN_USER_ID:
            raise ForbiddenError("The primary administrator account cannot be deleted")
        user = self.get_user(user_id)
        user_email = user.user_email

        withdrawn = VoteManager(self.db).withdraw_user_votes(user_id)
        self.db.query(RoleUserLinkModel).filter(RoleUserLinkModel.user_id == user_id).delete(
            synchronize_session=False
        )
        self.db.query(RefreshTokenModel).filter(RefreshTokenModel.user_id == user_id).delete(
            synchronize_session=False
        )
        self.db.delete(user)
        self.activity.record(
            actor,
            "USER_DELETED",
            entity_type="user",
            entity_id=user_id,
            details={"user_email": user_email, "votes_withdrawn": withdrawn},
        )
        self.db.commit()
        logger.info("Deleted user: %s", user_email)

    def revoke_refresh_tokens(self, user_id: int) -> int:
        """Mark every outstanding refresh token of the user as revoked (no commit)."""
        return (
            self.db.query(RefreshTokenModel)
            .filter(
                RefreshTokenModel.user_id == user_id,
                RefreshTokenModel.revoked_at.is_(None),
            )
            .update({RefreshTokenModel.revoked_at: now_iso()}, synchronize_session=False)
        )

    def import_users_csv(
        self, file_bytes: bytes, actor: Optional[ActorContext] = None
    ) -> BulkImportResult:
        """Create users from an uploaded CSV file, one commit per row.

        The ``roles`` column holds comma-separated role names. Unknown names
        are skipped; a row with no known role gets the default role.
        """
        result = BulkImportResult()
        roles_by_name = {
            role.role_name.lower(): role for role in self.db.query(RoleModel).all()
        }
        required = [h for h in USER_TEMPLATE_HEADERS if h not in ("mobile_number", "roles")]

        for row in iter_csv_rows(file_bytes, required_headers=required):
            try:
                missing = [name for name in required if not row.get(name)]
                if missing:
                    raise ValidationError(f"Missing required fields: {', '.join(missing)}")
                if len(row.get("password")) < MIN_PASSWORD_LENGTH:
                    raise ValidationError(
                        f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
                    )
                try:
                    user_email = normalize_email(row.get("user_email"))
                    mobile_number = normalize_mobile(row.get("mobile_number"))
                except ValueError as e:
                    raise ValidationError(str(e)) from e

                roles = [
                    roles_by_name[name.lower()]
                    for name in split_list(row.get("roles"), ",")
                    if name.lower() in roles_by_name
                ]
                self.create_user(
                    user_email=user_email,
                    password=row.get("password"),
                    first_name=row.get("first_name"),
                    last_name=row.get("last_name"),
                    mobile_number=mobile_number,
                    roles=roles,
                    actor=actor,
                )
                result.successful += 1
            except (ConflictError, ValidationError) as e:
                self.db.rollback()
                result.failed += 1
                result.errors.append(
                    BulkImportRowError(row=row.row_number, line=row.line_number, error=str(e))
                )

        self.activity.record(
            actor,
            "USERS_BULK_IMPORTED",
            entity_type="user",
            details={"successful": result.successful, "failed": result.failed},
        )
        self.db.commit()
        logger.info(
            "Bulk user import: %d successful, %d failed", result.successful, result.failed
        )
        return result
