"""Permission management routes."""

from fastapi import APIRouter, Depends, status

from api.errors import http_error
from api.routes.auth import get_actor, require_permissions
from core.dependencies import PermissionManagerDep
from core.exceptions import EmployDexError
from schemas.role import (
    AssignPermissionsRequest,
    CreatePermissionRequest,
    PermissionBrief,
    PermissionDetail,
    PermissionListResponse,
    PermissionOut,
    RoleBriefOut,
    RoleOut,
    RolePermissionEntry,
    RolePermissionMatrix,
    UpdatePermissionRequest,
)
from schemas.user import CurrentUser
from utils.activity_logger import ActorContext

router = APIRouter(prefix="/api/permission_management", tags=["Permission Management"])


@router.get("/permissions", response_model=PermissionListResponse, summary="List permissions")
def list_permissions(
    permission_manager: PermissionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("permission_view")),
) -> PermissionListResponse:
    permissions = []
    for permission, role_count in permission_manager.list_permissions():
        out = PermissionOut.model_validate(permission)
        out.role_count = role_count
        permissions.append(out)
    return PermissionListResponse(count=len(permissions), permissions=permissions)


@router.get("/permissions/{permission_id}", response_model=PermissionDetail, summary="Get a permission")
def get_permission(
    permission_id: int,
    permission_manager: PermissionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("permission_view")),
) -> PermissionDetail:
    try:
        permission = permission_manager.get_permission(permission_id)
    except EmployDexError as e:
        raise http_error(e)
    roles = permission_manager.roles_with_permission(permission_id)
    detail = PermissionDetail.model_validate(permission)
    detail.roles = [RoleBriefOut.model_validate(r) for r in roles]
    detail.role_count = len(roles)
    return detail


@router.post(
    "/permissions",
    response_model=PermissionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a permission",
)
def create_permission(
    req: CreatePermissionRequest,
    permission_manager: PermissionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("permission_assign")),
    actor: ActorContext = Depends(get_actor),
) -> PermissionOut:
    """Create a permission; it is granted to the Admin role immediately."""
    try:
        permission = permission_manager.create_permission(
            req.permission_name, req.permission_description, actor=actor
        )
    except EmployDexError as e:
        raise http_error(e)
    out = PermissionOut.model_validate(permission)
    out.role_count = len(permission_manager.roles_with_permission(permission.permission_id))
    return out


@router.put("/permissions/{permission_id}", response_model=PermissionOut, summary="Update a permission")
def update_permission(
    permission_id: int,
    req: UpdatePermissionRequest,
    permission_manager: PermissionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("permission_assign")),
    actor: ActorContext = Depends(get_actor),
) -> PermissionOut:
    try:
        permission = permission_manager.update_permission(
            permission_id, req.model_dump(exclude_unset=True), actor=actor
        )
    except EmployDexError as e:
        raise http_error(e)
    out = PermissionOut.model_validate(permission)
    out.role_count = len(permission_manager.roles_with_permission(permission_id))
    return out


@router.get("/roles-permissions", response_model=RolePermissionMatrix, summary="Role/permission matrix")
def role_permission_matrix(
    permission_manager: PermissionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("permission_view")),
) -> RolePermissionMatrix:
    entries = [
        RolePermissionEntry(
            role_id=role.role_id,
            role_name=role.role_name,
            is_system=role.is_system,
            permission_ids=permission_ids,
        )
        for role, permission_ids in permission_manager.role_permission_matrix()
    ]
    permissions = [
        PermissionBrief.model_validate(p) for p, _ in permission_manager.list_permissions()
    ]
    return RolePermissionMatrix(roles=entries, permissions=permissions)


@router.post("/assign", response_model=RoleOut, summary="Replace a role's permissions")
def assign_permissions(
    req: AssignPermissionsRequest,
    permission_manager: PermissionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("permission_assign")),
    actor: ActorContext = Depends(get_actor),
) -> RoleOut:
    """Replace the permission set of a role.

    Raises:
        HTTPException: 404 for an unknown role, 403 if Admin would lose a permission.
    """
    try:
        role = permission_manager.assign_permissions(req.role_id, req.permission_ids, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    out = RoleOut.model_validate(role)
    out.user_count = permission_manager.roles.user_count(role.role_id)
    return out
