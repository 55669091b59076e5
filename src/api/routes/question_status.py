"""Question status workflow routes.

Status and transition administration is restricted to the Admin role.
Moving a question between statuses is checked against the transition table.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from api.errors import http_error
from api.routes.auth import get_actor, get_current_user, require_permissions, require_roles
from api.routes.question import build_question_out
from config import ADMIN_ROLE_NAME, DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from core.dependencies import QuestionStatusManagerDep
from core.exceptions import EmployDexError
from schemas.common import Pagination, total_pages
from schemas.question import QuestionOut
from schemas.question_status import (
    CreateQuestionStatusRequest,
    CreateTransitionRequest,
    QuestionStatusOut,
    StatusHistoryOut,
    StatusHistoryPage,
    TransitionOut,
    UpdateQuestionStatusBody,
    UpdateQuestionStatusRequest,
)
from schemas.user import CurrentUser
from utils.activity_logger import ActorContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/question-status", tags=["Question Status"])

require_admin = require_roles(ADMIN_ROLE_NAME)


class StatusChangeResponse(BaseModel):
    question: QuestionOut
    history: StatusHistoryOut


def _build_transition_out(transition) -> TransitionOut:
    return TransitionOut(
        transition_id=transition.transition_id,
        from_status_id=transition.from_status_id,
        from_status_name=transition.from_status.name,
        to_status_id=transition.to_status_id,
        to_status_name=transition.to_status.name,
        to_status_display_name=transition.to_status.display_name,
        role_id=transition.role_id,
        role_name=transition.role.role_name,
        is_active=transition.is_active,
    )


def _build_history_out(history) -> StatusHistoryOut:
    return StatusHistoryOut(
        history_id=history.history_id,
        question_id=history.question_id,
        from_status_id=history.from_status_id,
        from_status_name=history.from_status.name if history.from_status else None,
        to_status_id=history.to_status_id,
        to_status_name=history.to_status.name,
        changed_by=history.changed_by,
        changed_by_name=(
            f"{history.user.first_name} {history.user.last_name}" if history.user else None
        ),
        comments=history.comments,
        created_at=history.created_at,
    )


@router.get("", response_model=List[QuestionStatusOut], summary="List question statuses")
def list_statuses(
    status_manager: QuestionStatusManagerDep,
    includeInactive: bool = Query(default=False),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[QuestionStatusOut]:
    return [
        QuestionStatusOut.model_validate(s)
        for s in status_manager.list_statuses(include_inactive=includeInactive)
    ]


@router.post(
    "",
    response_model=QuestionStatusOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a question status",
)
def create_status(
    req: CreateQuestionStatusRequest,
    status_manager: QuestionStatusManagerDep,
    current_user: CurrentUser = Depends(require_admin),
    actor: ActorContext = Depends(get_actor),
) -> QuestionStatusOut:
    try:
        return QuestionStatusOut.model_validate(
            status_manager.create_status(req.model_dump(), actor=actor)
        )
    except EmployDexError as e:
        raise http_error(e)


@router.get("/transitions", response_model=List[TransitionOut], summary="List all transitions")
def list_transitions(
    status_manager: QuestionStatusManagerDep,
    current_user: CurrentUser = Depends(require_admin),
) -> List[TransitionOut]:
    return [_build_transition_out(t) for t in status_manager.list_transitions()]


@router.post(
    "/transitions",
    response_model=TransitionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Allow a status transition for a role",
)
def create_transition(
    req: CreateTransitionRequest,
    status_manager: QuestionStatusManagerDep,
    current_user: CurrentUser = Depends(require_admin),
    actor: ActorContext = Depends(get_actor),
) -> TransitionOut:
    try:
        transition = status_manager.create_transition(
            req.from_status_id, req.to_status_id, req.role_id, actor=actor
        )
    except EmployDexError as e:
        raise http_error(e)
    return _build_transition_out(transition)


@router.delete(
    "/transitions/{transition_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a transition",
)
def delete_transition(
    transition_id: int,
    status_manager: QuestionStatusManagerDep,
    current_user: CurrentUser = Depends(require_admin),
    actor: ActorContext = Depends(get_actor),
) -> Response:
    try:
        status_manager.delete_transition(transition_id, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/status/{status_id}/transitions",
    response_model=List[TransitionOut],
    summary="Transitions available to the caller",
)
def get_valid_transitions(
    status_id: int,
    status_manager: QuestionStatusManagerDep,
    current_user: CurrentUser = Depends(get_current_user),
) -> List[TransitionOut]:
    """Active transitions out of a status for any of the caller's roles."""
    try:
        transitions = status_manager.get_valid_transitions(status_id, current_user)
    except EmployDexError as e:
        raise http_error(e)
    return [_build_transition_out(t) for t in transitions]


@router.put(
    "/questions/{question_id}/status",
    response_model=StatusChangeResponse,
    summary="Change a question's status",
)
def update_question_status(
    question_id: int,
    req: UpdateQuestionStatusBody,
    status_manager: QuestionStatusManagerDep,
    current_user: CurrentUser = Depends(require_permissions("question_view")),
    actor: ActorContext = Depends(get_actor),
) -> StatusChangeResponse:
    """Move a question to another status.

    Raises:
        HTTPException: 403 if no active transition allows the move for the
            caller's roles, 404 if the question or status does not exist.
    """
    try:
        question, history = status_manager.update_question_status(
            question_id,
            req.to_status_id,
            current_user,
            comments=req.comments,
            actor=actor,
        )
    except EmployDexError as e:
        raise http_error(e)
    counts = status_manager.questions.version_counts([question_id])
    return StatusChangeResponse(
        question=build_question_out(question, counts.get(question_id, 0)),
        history=_build_history_out(history),
    )


@router.get(
    "/questions/{question_id}/status/history",
    response_model=StatusHistoryPage,
    summary="Status history of a question",
)
def status_history(
    question_id: int,
    status_manager: QuestionStatusManagerDep,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: CurrentUser = Depends(require_permissions("question_view")),
) -> StatusHistoryPage:
    try:
        rows, total = status_manager.status_history(question_id, page=page, limit=limit)
    except EmployDexError as e:
        raise http_error(e)
    return StatusHistoryPage(
        history=[_build_history_out(h) for h in rows],
        pagination=Pagination(
            page=page, limit=limit, total=total, total_pages=total_pages(total, limit)
        ),
    )


@router.get("/{status_id}", response_model=QuestionStatusOut, summary="Get a question status")
def get_status(
    status_id: int,
    status_manager: QuestionStatusManagerDep,
    current_user: CurrentUser = Depends(get_current_user),
) -> QuestionStatusOut:
    try:
        return QuestionStatusOut.model_validate(status_manager.get_status(status_id))
    except EmployDexError as e:
        raise http_error(e)


@router.put("/{status_id}", response_model=QuestionStatusOut, summary="Update a question status")
def update_status(
    status_id: int,
    req: UpdateQuestionStatusRequest,
    status_manager: QuestionStatusManagerDep,
    current_user: CurrentUser = Depends(require_admin),
    actor: ActorContext = Depends(get_actor),
) -> QuestionStatusOut:
    try:
        updated = status_manager.update_status(
            status_id, req.model_dump(exclude_unset=True), actor=actor
        )
    except EmployDexError as e:
        raise http_error(e)
    return QuestionStatusOut.model_validate(updated)


@router.delete(
    "/{status_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a question status",
)
def delete_status(
    status_id: int,
    status_manager: QuestionStatusManagerDep,
    current_user: CurrentUser = Depends(require_admin),
    actor: ActorContext = Depends(get_actor),
) -> Response:
    try:
        status_manager.delete_status(status_id, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
