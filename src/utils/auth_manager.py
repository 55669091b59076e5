"""Authentication utilities.

Login, token issue/rotation/revocation and password changes. Refresh tokens
are persisted by jti so that rotation and logout can revoke them.
"""

import logging
from datetime import datetime
from typing import Optional, Tuple

import pytz
from sqlalchemy.orm import Session

from core.exceptions import AuthenticationError, ForbiddenError, ValidationError
from core.security import (
    ACCESS_TOKEN_TYPE,
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)
from models.base import now_iso
from models.refresh_token import RefreshTokenModel
from models.user import UserModel
from schemas.user import CurrentUser
from utils.activity_logger import ActivityLogger, ActorContext
from utils.role_manager import RoleManager
from utils.user_manager import UserManager

logger = logging.getLogger(__name__)


class AuthManager:
    """Issues and validates credentials for users."""

    def __init__(self, db: Session):
        self.db = db
        self.users = UserManager(db)
        self.roles = RoleManager(db)
        self.activity = ActivityLogger(db)

    def build_current_user(self, user: UserModel) -> CurrentUser:
        """Resolve the user's roles and the union of their permissions."""
        return CurrentUser(
            user_id=user.user_id,
            user_email=user.user_email,
            first_name=user.first_name,
            last_name=user.last_name,
            is_active=user.is_active,
            roles=[role.role_name for role in self.roles.roles_for_user(user.user_id)],
            permissions=self.roles.permissions_for_user(user.user_id),
        )

    def current_user_from_token(self, token: str) -> CurrentUser:
        """Validate an access token and load its user.

        Raises:
            AuthenticationError: If the token is invalid or the user is missing or disabled.
        """
        payload = decode_token(token, ACCESS_TOKEN_TYPE)
        user = self.db.query(UserModel).filter(UserModel.user_id == int(payload["sub"])).first()
        if user is None:
            raise AuthenticationError("User not found")
        if not user.is_active:
            raise AuthenticationError("Account is disabled")
        return self.build_current_user(user)

    def _issue_tokens(self, user: UserModel) -> Tuple[str, str, CurrentUser]:
        current = self.build_current_user(user)
        access_token = create_access_token(user.user_id, current.roles, current.permissions)
        refresh_token, jti, expires_at = create_refresh_token(user.user_id)
        self.db.add(
            RefreshTokenModel(jti=jti, user_id=user.user_id, expires_at=expires_at.isoformat())
        )
        return access_token, refresh_token, current

    def login(
        self, username: str, password: str, actor: Optional[ActorContext] = None
    ) -> Tuple[str, str, UserModel, CurrentUser]:
        """Authenticate by email or mobile number and issue a token pair.

        Returns:
            Tuple of (access token, refresh token, user, resolved current user).

        Raises:
            AuthenticationError: If the credentials are invalid.
            ForbiddenError: If the account is disabled.
        """
        user = self.users.get_user_by_login(username)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Failed login attempt for %s", username)
            raise AuthenticationError("Invalid credentials")
        if not user.is_active:
            raise ForbiddenError("Account is disabled")

        access_token, refresh_token, current = self._issue_tokens(user)
        self.activity.record(
            ActorContext(
                user_id=user.user_id,
                ip_address=actor.ip_address if actor else None,
                user_agent=actor.user_agent if actor else None,
            ),
            "LOGIN",
            entity_type="user",
            entity_id=user.user_id,
        )
        self.db.commit()
        self.db.refresh(user)
        logger.info("User logged in: %s", user.user_email)
        return access_token, refresh_token, user, current

    def _load_refresh_token(self, refresh_token: str) -> Tuple[RefreshTokenModel, UserModel]:
        payload = decode_token(refresh_token, REFRESH_TOKEN_TYPE)
        jti = payload.get("jti")
        if not jti:
            raise AuthenticationError("Invalid refresh token")
        stored = self.db.query(RefreshTokenModel).filter(RefreshTokenModel.jti == jti).first()
        if stored is None or stored.revoked_at is not None:
            raise AuthenticationError("Refresh token has been revoked")
        if datetime.fromisoformat(stored.expires_at) <= datetime.now(pytz.utc):
            raise AuthenticationError("Refresh token has expired")
        if stored.user_id != int(payload["sub"]):
            raise AuthenticationError("Invalid refresh token")
        user = self.db.query(UserModel).filter(UserModel.user_id == stored.user_id).first()
        if user is None or not user.is_active:
            raise AuthenticationError("User not found or disabled")
        return stored, user

    def refresh(
        self, refresh_token: str, actor: Optional[ActorContext] = None
    ) -> Tuple[str, str]:
        """Rotate a refresh token: revoke it and issue a new pair.

        Raises:
            AuthenticationError: On any validation failure.
        """
        stored, user = self._load_refresh_token(refresh_token)
        stored.revoked_at = now_iso()
        access_token, new_refresh_token, _ = self._issue_tokens(user)
        self.activity.record(
            ActorContext(
                user_id=user.user_id,
                ip_address=actor.ip_address if actor else None,
                user_agent=actor.user_agent if actor else None,
            ),
            "TOKEN_REFRESHED",
            entity_type="user",
            entity_id=user.user_id,
        )
        self.db.commit()
        return access_token, new_refresh_token

    def logout(self, refresh_token: str, actor: Optional[ActorContext] = None) -> None:
        """Revoke a refresh token. Unknown or already revoked tokens are ignored."""
        try:
            stored, user = self._load_refresh_token(refresh_token)
        except AuthenticationError as e:
            logger.info("Logout with unusable refresh token: %s", e)
            return
        stored.revoked_at = now_iso()
        self.activity.record(
            ActorContext(
                user_id=user.user_id,
                ip_address=actor.ip_address if actor else None,
                user_agent=actor.user_agent if actor else None,
            ),
            "LOGOUT",
            entity_type="user",
            entity_id=user.user_id,
        )
        self.db.commit()
        logger.info("User logged out: %s", user.user_email)

    def change_password(
        self,
        user_id: int,
        current_password: str,
        new_password: str,
        actor: Optional[ActorContext] = None,
    ) -> None:
        """Change a user's password and revoke all of their refresh tokens.

        Raises:
            ValidationError: If the current password is wrong.
        """
        user = self.users.get_user(user_id)
        if not verify_password(current_password, user.password_hash):
            raise ValidationError(
                "Current password is incorrect",
                errors=[{"field": "current_password", "message": "Current password is incorrect"}],
            )
        user.password_hash = hash_password(new_password)
        revoked = self.users.revoke_refresh_tokens(user_id)
        self.activity.record(actor, "PASSWORD_CHANGED", entity_type="user", entity_id=user_id)
        self.db.commit()
        logger.info("Password changed for user %s (%d refresh token(s) revoked)", user_id, revoked)
