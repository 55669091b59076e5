"""Feature request routes.

Any authenticated user may submit requests and see their own; reviewing all
requests needs the feature_request_manage permission.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from api.errors import http_error
from api.routes.auth import get_actor, require_permissions
from core.dependencies import FeatureRequestManagerDep
from core.exceptions import EmployDexError
from schemas.feature_request import (
    CreateFeatureRequest,
    FeatureRequestListResponse,
    FeatureRequestOut,
    FeatureRequestStatus,
    UpdateFeatureRequest,
)
from schemas.user import CurrentUser
from utils.activity_logger import ActorContext

router = APIRouter(prefix="/api/feature-requests", tags=["Feature Requests"])


@router.post(
    "",
    response_model=FeatureRequestOut,
    status_code=status.HTTP_201_CREATED,
    summary="Submit a feature request",
)
def create_feature_request(
    req: CreateFeatureRequest,
    feature_request_manager: FeatureRequestManagerDep,
    actor: ActorContext = Depends(get_actor),
) -> FeatureRequestOut:
    model = feature_request_manager.create_feature_request(req.model_dump(), actor=actor)
    return FeatureRequestOut.model_validate(model)


@router.get("/mine", response_model=FeatureRequestListResponse, summary="My feature requests")
def my_feature_requests(
    feature_request_manager: FeatureRequestManagerDep,
    actor: ActorContext = Depends(get_actor),
) -> FeatureRequestListResponse:
    models = feature_request_manager.list_for_user(actor.user_id)
    return FeatureRequestListResponse(
        count=len(models),
        feature_requests=[FeatureRequestOut.model_validate(m) for m in models],
    )


@router.get("", response_model=FeatureRequestListResponse, summary="All feature requests")
def list_feature_requests(
    feature_request_manager: FeatureRequestManagerDep,
    request_status: Optional[FeatureRequestStatus] = Query(default=None, alias="status"),
    current_user: CurrentUser = Depends(require_permissions("feature_request_manage")),
) -> FeatureRequestListResponse:
    models = feature_request_manager.list_all(status=request_status)
    return FeatureRequestListResponse(
        count=len(models),
        feature_requests=[FeatureRequestOut.model_validate(m) for m in models],
    )


@router.put(
    "/{feature_request_id}",
    response_model=FeatureRequestOut,
    summary="Update a feature request",
)
def update_feature_request(
    feature_request_id: int,
    req: UpdateFeatureRequest,
    feature_request_manager: FeatureRequestManagerDep,
    current_user: CurrentUser = Depends(require_permissions("feature_request_manage")),
    actor: ActorContext = Depends(get_actor),
) -> FeatureRequestOut:
    """Update status, priority or denial reason.

    Raises:
        HTTPException: 400 if nothing is updated or a denial lacks a reason,
            404 if the request does not exist.
    """
    try:
        model = feature_request_manager.update_feature_request(
            feature_request_id, req.model_dump(exclude_unset=True), actor=actor
        )
    except EmployDexError as e:
        raise http_error(e)
    return FeatureRequestOut.model_validate(model)
