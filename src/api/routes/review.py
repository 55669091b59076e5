"""Question review routes.

A review is visible to its creator, its assignee and holders of
review_assign; anyone else gets a 404.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from api.errors import http_error
from api.routes.auth import get_actor, require_permissions
from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from core.dependencies import ReviewManagerDep
from core.exceptions import EmployDexError
from schemas.common import Pagination, total_pages
from schemas.review import (
    AssignReviewRequest,
    CreateReviewRequest,
    ReviewAssignmentOut,
    ReviewCommentOut,
    ReviewCommentRequest,
    ReviewDetailOut,
    ReviewHistoryOut,
    ReviewListResponse,
    ReviewOut,
    ReviewStatistics,
    ReviewStatusOut,
    UpdateReviewStatusRequest,
)
from schemas.user import CurrentUser
from utils.activity_logger import ActorContext

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


def _review_fields(review) -> dict:
    question = review.question
    return dict(
        review_id=review.review_id,
        question_id=review.question_id,
        question_text=question.question_text,
        category_name=question.category.name if question.category else None,
        status_id=review.status_id,
        status_name=review.status.name,
        created_by=review.created_by,
        created_by_email=review.creator.user_email if review.creator else None,
        assigned_to=review.assigned_to,
        assigned_to_email=review.assignee.user_email if review.assignee else None,
        updated_by=review.updated_by,
        notes=review.notes,
        priority=review.priority,
        due_date=review.due_date,
        is_active=review.is_active,
        created_at=review.created_at,
        updated_at=review.updated_at,
    )


def _build_comment_out(comment) -> ReviewCommentOut:
    user = comment.user
    return ReviewCommentOut(
        comment_id=comment.comment_id,
        review_id=comment.review_id,
        user_id=comment.user_id,
        user_email=user.user_email if user else None,
        author_name=f"{user.first_name} {user.last_name}" if user else None,
        comment_text=comment.comment_text,
        created_at=comment.created_at,
    )


def _build_detail_out(review) -> ReviewDetailOut:
    return ReviewDetailOut(
        **_review_fields(review),
        history=[
            ReviewHistoryOut(
                history_id=h.history_id,
                status_id=h.status_id,
                status_name=h.status.name if h.status else None,
                changed_by=h.changed_by,
                comments=h.comments,
                created_at=h.created_at,
            )
            for h in review.history
        ],
        comments=[_build_comment_out(c) for c in review.comments],
        assignments=[
            ReviewAssignmentOut(
                assignment_id=a.assignment_id,
                user_id=a.user_id,
                user_email=a.user.user_email,
                assigned_by=a.assigned_by,
                is_active=a.is_active,
                assigned_at=a.assigned_at,
            )
            for a in review.assignments
        ],
    )


@router.post(
    "",
    response_model=ReviewDetailOut,
    status_code=status.HTTP_201_CREATED,
    summary="Open a review of a question",
)
def create_review(
    req: CreateReviewRequest,
    review_manager: ReviewManagerDep,
    current_user: CurrentUser = Depends(require_permissions("review_create")),
    actor: ActorContext = Depends(get_actor),
) -> ReviewDetailOut:
    try:
        review = review_manager.create_review(req.model_dump(), actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return _build_detail_out(review)


@router.get("", response_model=ReviewListResponse, summary="List reviews")
def list_reviews(
    review_manager: ReviewManagerDep,
    status_id: Optional[int] = Query(default=None, ge=1),
    assigned_to: Optional[int] = Query(default=None, ge=1),
    created_by: Optional[int] = Query(default=None, ge=1),
    search: Optional[str] = Query(default=None, max_length=100),
    includeClosed: bool = Query(default=False),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: CurrentUser = Depends(require_permissions("review_view")),
) -> ReviewListResponse:
    reviews, total = review_manager.list_reviews(
        status_id=status_id,
        assigned_to=assigned_to,
        created_by=created_by,
        search=search,
        include_closed=includeClosed,
        page=page,
        limit=limit,
    )
    return ReviewListResponse(
        reviews=[ReviewOut(**_review_fields(r)) for r in reviews],
        pagination=Pagination(
            page=page, limit=limit, total=total, total_pages=total_pages(total, limit)
        ),
    )


@router.get("/statuses", response_model=List[ReviewStatusOut], summary="List review statuses")
def list_review_statuses(
    review_manager: ReviewManagerDep,
    current_user: CurrentUser = Depends(require_permissions("review_view")),
) -> List[ReviewStatusOut]:
    return [
        ReviewStatusOut(
            status_id=s.status_id, name=s.name, display_name=s.display_name, is_closing=s.is_closing
        )
        for s in review_manager.list_statuses()
    ]


@router.get("/statistics", response_model=ReviewStatistics, summary="Review statistics")
def review_statistics(
    review_manager: ReviewManagerDep,
    current_user: CurrentUser = Depends(require_permissions("review_view")),
) -> ReviewStatistics:
    return ReviewStatistics(**review_manager.statistics())


@router.get("/{review_id}", response_model=ReviewDetailOut, summary="Get a review")
def get_review(
    review_id: int,
    review_manager: ReviewManagerDep,
    current_user: CurrentUser = Depends(require_permissions("review_view")),
) -> ReviewDetailOut:
    try:
        review = review_manager.get_review(review_id, current_user)
    except EmployDexError as e:
        raise http_error(e)
    return _build_detail_out(review)


@router.put("/{review_id}/status", response_model=ReviewDetailOut, summary="Change review status")
def update_review_status(
    review_id: int,
    req: UpdateReviewStatusRequest,
    review_manager: ReviewManagerDep,
    current_user: CurrentUser = Depends(require_permissions("review_edit")),
    actor: ActorContext = Depends(get_actor),
) -> ReviewDetailOut:
    try:
        review = review_manager.update_status(
            review_id, req.status_id, req.comment, current_user, actor=actor
        )
    except EmployDexError as e:
        raise http_error(e)
    return _build_detail_out(review)


@router.post(
    "/{review_id}/comments",
    response_model=ReviewCommentOut,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a review",
)
def add_review_comment(
    review_id: int,
    req: ReviewCommentRequest,
    review_manager: ReviewManagerDep,
    current_user: CurrentUser = Depends(require_permissions("review_comment")),
    actor: ActorContext = Depends(get_actor),
) -> ReviewCommentOut:
    try:
        comment = review_manager.add_comment(review_id, req.comment, current_user, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return _build_comment_out(comment)


@router.post("/{review_id}/assign", response_model=ReviewDetailOut, summary="Assign a review")
def assign_review(
    review_id: int,
    req: AssignReviewRequest,
    review_manager: ReviewManagerDep,
    current_user: CurrentUser = Depends(require_permissions("review_assign")),
    actor: ActorContext = Depends(get_actor),
) -> ReviewDetailOut:
    try:
        review = review_manager.assign(review_id, req.user_id, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return _build_detail_out(review)
