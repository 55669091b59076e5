"""Role management routes."""

from fastapi import APIRouter, Depends, File, Response, UploadFile, status

from api.errors import http_error
from api.routes.auth import get_actor, require_permissions
from api.routes.user_management import csv_attachment, read_csv_upload
from core.dependencies import RoleManagerDep
from core.exceptions import EmployDexError
from schemas.common import BulkImportResult, MessageResponse
from schemas.role import (
    CreateRoleRequest,
    RoleDetail,
    RoleListResponse,
    RoleOut,
    RoleUser,
    UpdateRoleRequest,
)
from schemas.user import CurrentUser
from utils.activity_logger import ActorContext
from utils.csv_import import ROLE_TEMPLATE_HEADERS, template_csv

router = APIRouter(prefix="/api/role_management", tags=["Role Management"])


def _build_role_out(role, user_count: int) -> RoleOut:
    role_out = RoleOut.model_validate(role)
    role_out.user_count = user_count
    return role_out


@router.get("/roles", response_model=RoleListResponse, summary="List roles")
def list_roles(
    role_manager: RoleManagerDep,
    current_user: CurrentUser = Depends(require_permissions("role_view")),
) -> RoleListResponse:
    roles = [_build_role_out(role, count) for role, count in role_manager.list_roles()]
    return RoleListResponse(count=len(roles), roles=roles)


@router.get("/roles/template", summary="Download the role CSV template")
def role_template(
    current_user: CurrentUser = Depends(require_permissions("role_create")),
) -> Response:
    return csv_attachment(template_csv(ROLE_TEMPLATE_HEADERS), "role_template.csv")


@router.post("/roles/bulk", response_model=BulkImportResult, summary="Bulk import roles from CSV")
async def bulk_import_roles(
    role_manager: RoleManagerDep,
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(require_permissions("role_create")),
    actor: ActorContext = Depends(get_actor),
) -> BulkImportResult:
    content = await read_csv_upload(file)
    try:
        return role_manager.import_roles_csv(content, actor=actor)
    except EmployDexError as e:
        raise http_error(e)


@router.get("/roles/{role_id}", response_model=RoleDetail, summary="Get a role")
def get_role(
    role_id: int,
    role_manager: RoleManagerDep,
    current_user: CurrentUser = Depends(require_permissions("role_view")),
) -> RoleDetail:
    """Get a role with its permissions and up to 100 linked users."""
    try:
        role = role_manager.get_role(role_id)
    except EmployDexError as e:
        raise http_error(e)
    detail = RoleDetail.model_validate(role)
    detail.user_count = role_manager.user_count(role_id)
    detail.users = [RoleUser.model_validate(u) for u in role_manager.get_role_users(role_id)]
    return detail


@router.post(
    "/roles",
    response_model=RoleOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a role",
)
def create_role(
    req: CreateRoleRequest,
    role_manager: RoleManagerDep,
    current_user: CurrentUser = Depends(require_permissions("role_create")),
    actor: ActorContext = Depends(get_actor),
) -> RoleOut:
    try:
        role = role_manager.create_role(
            role_name=req.role_name,
            role_description=req.role_description,
            permission_ids=req.permissions,
            actor=actor,
        )
    except EmployDexError as e:
        raise http_error(e)
    return _build_role_out(role, 0)


@router.put("/roles/{role_id}", response_model=RoleOut, summary="Update a role")
def update_role(
    role_id: int,
    req: UpdateRoleRequest,
    role_manager: RoleManagerDep,
    current_user: CurrentUser = Depends(require_permissions("role_edit")),
    actor: ActorContext = Depends(get_actor),
) -> RoleOut:
    try:
        role = role_manager.update_role(role_id, req.model_dump(exclude_unset=True), actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return _build_role_out(role, role_manager.user_count(role_id))


@router.delete("/roles/{role_id}", response_model=MessageResponse, summary="Delete a role")
def delete_role(
    role_id: int,
    role_manager: RoleManagerDep,
    current_user: CurrentUser = Depends(require_permissions("role_delete")),
    actor: ActorContext = Depends(get_actor),
) -> MessageResponse:
    """Delete a role.

    Raises:
        HTTPException: 404 if missing, 403 for system roles, 409 while users are linked.
    """
    try:
        role_manager.delete_role(role_id, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return MessageResponse(message="Role deleted successfully")
