"""Authentication routes.

This module handles HTTP endpoints for registration, login, token refresh and
logout, and provides the ``get_current_user``, ``require_permissions`` and
``require_roles`` dependencies used by every protected route.
"""

import logging
from typing import Callable, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import TRUST_PROXY_HEADERS
from api.errors import http_error
from core.dependencies import AuthManagerDep, UserManagerDep
from core.exceptions import AuthenticationError, EmployDexError
from schemas.common import MessageResponse
from schemas.user import (
    ChangePasswordRequest,
    CurrentUser,
    LoginRequest,
    LoginResponse,
    MeResponse,
    RefreshTokenRequest,
    RegisterRequest,
    TokenPairResponse,
    UserOut,
)
from utils.activity_logger import ActorContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/authentication", tags=["Authentication"])

# HTTP Bearer token security; missing credentials are turned into 401 below
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for") if TRUST_PROXY_HEADERS else None
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def request_context(request: Request) -> ActorContext:
    """Request origin for unauthenticated endpoints."""
    return ActorContext(
        user_id=None,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_manager: AuthManagerDep = None,
) -> CurrentUser:
    """Get current authenticated user from the Bearer access token.

    Args:
        credentials: HTTP Bearer token credentials.
        auth_manager: Injected AuthManager instance.

    Returns:
        CurrentUser with roles and permissions.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired, or the
            user no longer exists or is disabled.
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Authentication required")
    try:
        return auth_manager.current_user_from_token(credentials.credentials)
    except AuthenticationError as e:
        raise _unauthorized(str(e))


def get_actor(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
) -> ActorContext:
    """Acting user plus request origin, for activity logging."""
    return ActorContext(
        user_id=current_user.user_id,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


def require_permissions(
    *permission_names: str, require_all: bool = False
) -> Callable[..., CurrentUser]:
    """Build a dependency that checks the caller's permissions.

    Holders of the Admin role pass every check.

    Args:
        permission_names: Permission names to check.
        require_all: If True every permission is needed, otherwise any one.

    Returns:
        Dependency returning the CurrentUser.
    """

    def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.is_admin:
            return current_user
        held = [name for name in permission_names if name in current_user.permissions]
        allowed = len(held) == len(permission_names) if require_all else bool(held)
        if not allowed:
            logger.info(
                "User %s lacks permission(s) %s", current_user.user_id, ", ".join(permission_names)
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "message": "Insufficient permissions",
                    "required_permissions": list(permission_names),
                },
            )
        return current_user

    return dependency


def require_roles(*role_names: str) -> Callable[..., CurrentUser]:
    """Build a dependency that requires one of the given roles (case-insensitive)."""

    def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not current_user.has_role(*role_names):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"message": "Insufficient role", "required_roles": list(role_names)},
            )
        return current_user

    return dependency


def _me_response(user, current: CurrentUser) -> MeResponse:
    return MeResponse(
        **UserOut.model_validate(user).model_dump(),
        permissions=current.permissions,
    )


@router.post(
    "/register",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
def register(
    req: RegisterRequest,
    request: Request,
    user_manager: UserManagerDep = None,
) -> UserOut:
    """Register a new user with the default role.

    Raises:
        HTTPException: 409 if the email or mobile number is taken.
    """
    try:
        user = user_manager.create_user(
            user_email=req.user_email,
            password=req.password,
            first_name=req.first_name,
            last_name=req.last_name,
            mobile_number=req.mobile_number,
            actor=request_context(request),
            action="USER_REGISTERED",
        )
    except EmployDexError as e:
        raise http_error(e)
    return UserOut.model_validate(user)


@router.post("/login", response_model=LoginResponse, summary="Log in")
def login(
    req: LoginRequest,
    request: Request,
    auth_manager: AuthManagerDep = None,
) -> LoginResponse:
    """Login with email or mobile number and password.

    Args:
        req: Login request with username and password.
        request: Incoming request (for IP and user agent).
        auth_manager: Injected AuthManager instance.

    Returns:
        Access token, refresh token and the user profile.

    Raises:
        HTTPException: 401 for invalid credentials, 403 for a disabled account.
    """
    try:
        access_token, refresh_token, user, current = auth_manager.login(
            req.username, req.password, actor=request_context(request)
        )
    except EmployDexError as e:
        raise http_error(e)
    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        user=_me_response(user, current),
    )


@router.post("/refresh-token", response_model=TokenPairResponse, summary="Refresh tokens")
def refresh_token(
    req: RefreshTokenRequest,
    request: Request,
    auth_manager: AuthManagerDep = None,
) -> TokenPairResponse:
    """Exchange a refresh token for a new token pair; the old one is revoked."""
    try:
        access_token, new_refresh_token = auth_manager.refresh(
            req.refresh_token, actor=request_context(request)
        )
    except EmployDexError as e:
        # Any refresh failure means the client must log in again
        raise _unauthorized(str(e))
    return TokenPairResponse(access_token=access_token, refresh_token=new_refresh_token)


@router.post("/logout", response_model=MessageResponse, summary="Log out")
def logout(
    req: RefreshTokenRequest,
    request: Request,
    auth_manager: AuthManagerDep = None,
) -> MessageResponse:
    auth_manager.logout(req.refresh_token, actor=request_context(request))
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=MeResponse, summary="Current user profile")
def get_me(
    current_user: CurrentUser = Depends(get_current_user),
    user_manager: UserManagerDep = None,
) -> MeResponse:
    try:
        user = user_manager.get_user(current_user.user_id)
    except EmployDexError as e:
        raise http_error(e)
    return _me_response(user, current_user)


@router.put("/me/password", response_model=MessageResponse, summary="Change password")
def change_password(
    req: ChangePasswordRequest,
    actor: ActorContext = Depends(get_actor),
    auth_manager: AuthManagerDep = None,
) -> MessageResponse:
    """Change the caller's password; all refresh tokens are revoked."""
    try:
        auth_manager.change_password(
            actor.user_id, req.current_password, req.new_password, actor=actor
        )
    except EmployDexError as e:
        raise http_error(e)
    return MessageResponse(message="Password changed successfully")
