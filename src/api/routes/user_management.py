"""User management routes."""

from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status

from api.errors import http_error
from api.routes.auth import get_actor, require_permissions
from config import DEFAULT_PAGE_SIZE, MAX_CSV_UPLOAD_BYTES, MAX_PAGE_SIZE
from core.dependencies import UserManagerDep
from core.exceptions import EmployDexError
from schemas.common import BulkImportResult, MessageResponse, total_pages
from schemas.user import (
    CreateUserRequest,
    CurrentUser,
    UpdateUserRequest,
    UpdateUserStatusRequest,
    UserListResponse,
    UserOut,
)
from utils.activity_logger import ActorContext
from utils.csv_import import USER_TEMPLATE_HEADERS, template_csv

router = APIRouter(prefix="/api/user_management", tags=["User Management"])


async def read_csv_upload(file: UploadFile) -> bytes:
    """Read an uploaded CSV file, enforcing extension and size limit.

    Raises:
        HTTPException: 400 for a non-CSV file, 413 if larger than MAX_CSV_UPLOAD_BYTES.
    """
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed",
        )
    content = await file.read(MAX_CSV_UPLOAD_BYTES + 1)
    if len(content) > MAX_CSV_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {MAX_CSV_UPLOAD_BYTES // (1024 * 1024)}MB limit",
        )
    return content


def csv_attachment(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@router.get("/users", response_model=UserListResponse, summary="List users")
def list_users(
    user_manager: UserManagerDep,
    isActive: Optional[bool] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=255),
    role: Optional[int] = Query(default=None, description="Role id"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: CurrentUser = Depends(require_permissions("user_view")),
) -> UserListResponse:
    users, total = user_manager.list_users(
        is_active=isActive, search=search, role_id=role, page=page, limit=limit
    )
    return UserListResponse(
        users=[UserOut.model_validate(u) for u in users],
        total=total,
        page=page,
        limit=limit,
        pages=total_pages(total, limit),
    )


@router.get("/users/template", summary="Download the user CSV template")
def user_template(
    current_user: CurrentUser = Depends(require_permissions("user_create")),
) -> Response:
    return csv_attachment(template_csv(USER_TEMPLATE_HEADERS), "user_template.csv")


@router.post("/users/bulk", response_model=BulkImportResult, summary="Bulk import users from CSV")
async def bulk_import_users(
    user_manager: UserManagerDep,
    file: UploadFile = File(...),
    current_user: CurrentUser = Depends(require_permissions("user_create")),
    actor: ActorContext = Depends(get_actor),
) -> BulkImportResult:
    """Create users from a CSV file; rows are processed one by one.

    Returns:
        Count of created and rejected rows, with the reason for each rejection.
    """
    content = await read_csv_upload(file)
    try:
        return user_manager.import_users_csv(content, actor=actor)
    except EmployDexError as e:
        raise http_error(e)


@router.post(
    "/users",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
)
def create_user(
    req: CreateUserRequest,
    user_manager: UserManagerDep,
    current_user: CurrentUser = Depends(require_permissions("user_create")),
    actor: ActorContext = Depends(get_actor),
) -> UserOut:
    try:
        user = user_manager.create_user(
            user_email=req.user_email,
            password=req.password,
            first_name=req.first_name,
            last_name=req.last_name,
            mobile_number=req.mobile_number,
            role_ids=req.roles,
            is_active=req.is_active,
            actor=actor,
        )
    except EmployDexError as e:
        raise http_error(e)
    return UserOut.model_validate(user)


@router.get("/users/{user_id}", response_model=UserOut, summary="Get a user")
def get_user(
    user_id: int,
    user_manager: UserManagerDep,
    current_user: CurrentUser = Depends(require_permissions("user_view")),
) -> UserOut:
    try:
        return UserOut.model_validate(user_manager.get_user(user_id))
    except EmployDexError as e:
        raise http_error(e)


@router.put("/users/{user_id}", response_model=UserOut, summary="Update a user")
def update_user(
    user_id: int,
    req: UpdateUserRequest,
    user_manager: UserManagerDep,
    current_user: CurrentUser = Depends(require_permissions("user_edit")),
    actor: ActorContext = Depends(get_actor),
) -> UserOut:
    try:
        user = user_manager.update_user(user_id, req.model_dump(exclude_unset=True), actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return UserOut.model_validate(user)


@router.patch("/users/{user_id}/status", response_model=UserOut, summary="Activate or deactivate a user")
def update_user_status(
    user_id: int,
    req: UpdateUserStatusRequest,
    user_manager: UserManagerDep,
    current_user: CurrentUser = Depends(require_permissions("user_edit")),
    actor: ActorContext = Depends(get_actor),
) -> UserOut:
    try:
        user = user_manager.set_user_status(user_id, req.is_active, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return UserOut.model_validate(user)


@router.delete("/users/{user_id}", response_model=MessageResponse, summary="Delete a user")
def delete_user(
    user_id: int,
    user_manager: UserManagerDep,
    current_user: CurrentUser = Depends(require_permissions("user_delete")),
    actor: ActorContext = Depends(get_actor),
) -> MessageResponse:
    try:
        user_manager.delete_user(user_id, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return MessageResponse(message="User deleted successfully")
