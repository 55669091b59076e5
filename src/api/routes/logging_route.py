"""Activity log routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.errors import http_error
from api.routes.auth import require_permissions
from core.dependencies import ActivityLogManagerDep
from core.exceptions import EmployDexError
from schemas.activity_log import (
    ActionTypesResponse,
    ActivityLogOut,
    ActivityLogPage,
    ActivityStats,
    EntityTypesResponse,
)
from schemas.common import Pagination, total_pages
from schemas.user import CurrentUser

router = APIRouter(prefix="/api/logging", tags=["Logging"])


def _build_log_out(log) -> ActivityLogOut:
    return ActivityLogOut(
        log_id=log.log_id,
        user_id=log.user_id,
        first_name=log.user.first_name if log.user else None,
        last_name=log.user.last_name if log.user else None,
        user_email=log.user.user_email if log.user else None,
        user_action=log.user_action,
        entity_type=log.entity_type,
        entity_id=log.entity_id,
        activity_details=log.activity_details,
        user_ip_address=log.user_ip_address,
        user_agent=log.user_agent,
        created_at=log.created_at,
    )


@router.get("/activity", response_model=ActivityLogPage, summary="List activity")
def list_activity(
    activity_log_manager: ActivityLogManagerDep,
    user_action: Optional[str] = Query(default=None),
    user_id: Optional[int] = Query(default=None),
    entity_type: Optional[str] = Query(default=None),
    start_date: Optional[str] = Query(default=None),
    end_date: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=100),
    current_user: CurrentUser = Depends(require_permissions("activity_view")),
) -> ActivityLogPage:
    try:
        logs, total = activity_log_manager.list_logs(
            user_action=user_action,
            user_id=user_id,
            entity_type=entity_type,
            start_date=start_date,
            end_date=end_date,
            page=page,
            limit=limit,
        )
    except EmployDexError as e:
        raise http_error(e)
    return ActivityLogPage(
        logs=[_build_log_out(log) for log in logs],
        pagination=Pagination(
            page=page, limit=limit, total=total, total_pages=total_pages(total, limit)
        ),
    )


@router.get("/actions", response_model=ActionTypesResponse, summary="Distinct action types")
def action_types(
    activity_log_manager: ActivityLogManagerDep,
    current_user: CurrentUser = Depends(require_permissions("activity_view")),
) -> ActionTypesResponse:
    return ActionTypesResponse(actionTypes=activity_log_manager.action_types())


@router.get("/entities", response_model=EntityTypesResponse, summary="Distinct entity types")
def entity_types(
    activity_log_manager: ActivityLogManagerDep,
    current_user: CurrentUser = Depends(require_permissions("activity_view")),
) -> EntityTypesResponse:
    return EntityTypesResponse(entityTypes=activity_log_manager.entity_types())


@router.get("/stats", response_model=ActivityStats, summary="Activity statistics")
def activity_stats(
    activity_log_manager: ActivityLogManagerDep,
    current_user: CurrentUser = Depends(require_permissions("activity_view")),
) -> ActivityStats:
    return ActivityStats(**activity_log_manager.stats())
