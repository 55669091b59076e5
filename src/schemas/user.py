"""User and authentication schema definitions."""

import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from config import ADMIN_ROLE_NAME, MIN_PASSWORD_LENGTH

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MOBILE_PATTERN = re.compile(r"^\+?[0-9]{7,15}$")


def normalize_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please provide a valid email address")
    return value


def normalize_mobile(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if not MOBILE_PATTERN.match(value):
        raise ValueError("Please provide a valid mobile number")
    return value


class RoleBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role_id: int
    role_name: str


class UserOut(BaseModel):
    """User as returned by the API (never includes the password hash)."""

    model_config = ConfigDict(from_attributes=True)

    user_id: int
    user_email: str
    mobile_number: Optional[str] = None
    first_name: str
    last_name: str
    is_active: bool
    created_at: str
    updated_at: str
    roles: List[RoleBrief] = Field(default_factory=list)


class CurrentUser(BaseModel):
    """Authenticated caller with the union of its roles' permissions."""

    user_id: int
    user_email: str
    first_name: str
    last_name: str
    is_active: bool
    roles: List[str] = Field(default_factory=list)
    permissions: List[str] = Field(default_factory=list)

    def has_role(self, *role_names: str) -> bool:
        wanted = {name.lower() for name in role_names}
        return any(role.lower() in wanted for role in self.roles)

    @property
    def is_admin(self) -> bool:
        return self.has_role(ADMIN_ROLE_NAME)

    def has_permission(self, permission_name: str) -> bool:
        """Admin holders pass every permission check."""
        return self.is_admin or permission_name in self.permissions


class MeResponse(UserOut):
    permissions: List[str] = Field(default_factory=list)


class UserListResponse(BaseModel):
    users: List[UserOut]
    total: int
    page: int
    limit: int
    pages: int


class CreateUserRequest(BaseModel):
    user_email: str
    mobile_number: Optional[str] = None
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    roles: List[int] = Field(
        default_factory=list,
        description="Role ids; an empty list assigns the default role.",
    )
    is_active: bool = True

    @field_validator("user_email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("mobile_number")
    @classmethod
    def check_mobile(cls, value: Optional[str]) -> Optional[str]:
        return normalize_mobile(value)


class UpdateUserRequest(BaseModel):
    user_email: Optional[str] = None
    mobile_number: Optional[str] = None
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    password: Optional[str] = Field(default=None, min_length=MIN_PASSWORD_LENGTH)
    is_active: Optional[bool] = None
    roles: Optional[List[int]] = Field(
        default=None,
        description="When present, replaces the user's role set.",
    )

    @field_validator("user_email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value) if value is not None else None

    @field_validator("mobile_number")
    @classmethod
    def check_mobile(cls, value: Optional[str]) -> Optional[str]:
        return normalize_mobile(value)


class UpdateUserStatusRequest(BaseModel):
    is_active: bool


class RegisterRequest(BaseModel):
    user_email: str
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    mobile_number: Optional[str] = None

    @field_validator("user_email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("mobile_number")
    @classmethod
    def check_mobile(cls, value: Optional[str]) -> Optional[str]:
        return normalize_mobile(value)


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, description="Email address or mobile number.")
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: MeResponse


class TokenPairResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshTokenRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=MIN_PASSWORD_LENGTH)
