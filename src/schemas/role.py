"""Role and permission schema definitions."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PermissionBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    permission_id: int
    permission_name: str
    permission_description: str


class RoleUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: int
    user_email: str
    first_name: str
    last_name: str


class RoleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role_id: int
    role_name: str
    role_description: str
    is_system: bool
    created_at: str
    updated_at: str
    permissions: List[PermissionBrief] = Field(default_factory=list)
    user_count: int = 0


class RoleDetail(RoleOut):
    users: List[RoleUser] = Field(
        default_factory=list,
        description="Linked users, capped at 100.",
    )


class RoleListResponse(BaseModel):
    count: int
    roles: List[RoleOut]


class CreateRoleRequest(BaseModel):
    role_name: str = Field(min_length=1, max_length=50)
    role_description: str = Field(default="", max_length=255)
    permissions: List[int] = Field(default_factory=list, description="Permission ids.")


class UpdateRoleRequest(BaseModel):
    role_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    role_description: Optional[str] = Field(default=None, max_length=255)
    permissions: Optional[List[int]] = Field(
        default=None,
        description="When present, replaces the role's permission set.",
    )


class RoleBriefOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role_id: int
    role_name: str


class PermissionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    permission_id: int
    permission_name: str
    permission_description: str
    created_at: str
    updated_at: str
    role_count: int = 0


class PermissionDetail(PermissionOut):
    roles: List[RoleBriefOut] = Field(default_factory=list)


class PermissionListResponse(BaseModel):
    count: int
    permissions: List[PermissionOut]


class CreatePermissionRequest(BaseModel):
    permission_name: str = Field(min_length=2, max_length=50, pattern=r"^[a-z_]+$")
    permission_description: str = Field(min_length=1, max_length=255)


class UpdatePermissionRequest(BaseModel):
    permission_name: Optional[str] = Field(
        default=None, min_length=2, max_length=50, pattern=r"^[a-z_]+$"
    )
    permission_description: Optional[str] = Field(default=None, min_length=1, max_length=255)


class RolePermissionEntry(BaseModel):
    role_id: int
    role_name: str
    is_system: bool
    permission_ids: List[int]


class RolePermissionMatrix(BaseModel):
    roles: List[RolePermissionEntry]
    permissions: List[PermissionBrief]


class AssignPermissionsRequest(BaseModel):
    role_id: int
    permission_ids: List[int]
