"""Vote routes."""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from api.errors import http_error
from api.routes.auth import get_actor, get_current_user
from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from core.dependencies import VoteManagerDep
from core.exceptions import EmployDexError
from schemas.common import MessageResponse, Pagination, total_pages
from schemas.user import CurrentUser
from schemas.vote import CastVoteRequest, CastVoteResponse, TargetType, VoteOut, VotePage, VoteSummary
from utils.activity_logger import ActorContext

router = APIRouter(prefix="/api/votes", tags=["Votes"])


@router.post("", response_model=CastVoteResponse, summary="Vote on a question or comment")
def cast_vote(
    req: CastVoteRequest,
    vote_manager: VoteManagerDep,
    actor: ActorContext = Depends(get_actor),
) -> CastVoteResponse:
    """Toggle the caller's vote.

    No vote yet adds it, the same vote again removes it, the opposite vote
    flips it.
    """
    try:
        action, vote = vote_manager.cast_vote(
            req.target_type, req.target_id, req.vote_type, actor=actor
        )
        summary = vote_manager.summary(req.target_type, req.target_id, user_id=actor.user_id)
    except EmployDexError as e:
        raise http_error(e)
    return CastVoteResponse(
        action=action,
        vote=VoteOut.model_validate(vote) if vote is not None else None,
        summary=VoteSummary(**summary),
    )


@router.get(
    "/summary/{target_type}/{target_id}",
    response_model=VoteSummary,
    summary="Vote totals for a target",
)
def vote_summary(
    target_type: TargetType,
    vote_manager: VoteManagerDep,
    target_id: int = Path(ge=1),
    current_user: CurrentUser = Depends(get_current_user),
) -> VoteSummary:
    try:
        return VoteSummary(
            **vote_manager.summary(target_type, target_id, user_id=current_user.user_id)
        )
    except EmployDexError as e:
        raise http_error(e)


@router.get("/my-votes", response_model=VotePage, summary="The caller's votes")
def my_votes(
    vote_manager: VoteManagerDep,
    target_type: Optional[TargetType] = Query(default=None),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: CurrentUser = Depends(get_current_user),
) -> VotePage:
    votes, total = vote_manager.user_votes(
        current_user.user_id, target_type=target_type, page=page, limit=limit
    )
    return VotePage(
        votes=[VoteOut.model_validate(v) for v in votes],
        pagination=Pagination(
            page=page, limit=limit, total=total, total_pages=total_pages(total, limit)
        ),
    )


@router.get(
    "/target/{target_type}/{target_id}",
    response_model=VotePage,
    summary="Votes cast on a target",
)
def target_votes(
    target_type: TargetType,
    vote_manager: VoteManagerDep,
    target_id: int = Path(ge=1),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: CurrentUser = Depends(get_current_user),
) -> VotePage:
    try:
        votes, total = vote_manager.target_votes(target_type, target_id, page=page, limit=limit)
    except EmployDexError as e:
        raise http_error(e)
    return VotePage(
        votes=[VoteOut.model_validate(v) for v in votes],
        pagination=Pagination(
            page=page, limit=limit, total=total, total_pages=total_pages(total, limit)
        ),
    )


@router.delete("/{vote_id}", response_model=MessageResponse, summary="Delete one of your votes")
def delete_vote(
    vote_id: int,
    vote_manager: VoteManagerDep,
    actor: ActorContext = Depends(get_actor),
) -> MessageResponse:
    try:
        vote_manager.delete_vote(vote_id, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return MessageResponse(message="Vote deleted successfully")
