"""Question bank routes: questions, versions, statistics and comments."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from api.errors import http_error
from api.routes.auth import get_actor, require_permissions
from config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from core.dependencies import QuestionManagerDep
from core.exceptions import EmployDexError
from schemas.common import MessageResponse, Pagination, total_pages
from schemas.question_category import TagOut
from schemas.question import (
    CommentOut,
    CreateCommentRequest,
    CreateQuestionRequest,
    QuestionListResponse,
    QuestionOptionOut,
    QuestionOut,
    QuestionStatistics,
    QuestionVersionOut,
    UpdateQuestionRequest,
)
from schemas.user import CurrentUser
from utils.activity_logger import ActorContext

router = APIRouter(prefix="/api/questions", tags=["Questions"])


def build_question_out(question, version_count: int = 0) -> QuestionOut:
    return QuestionOut(
        question_id=question.question_id,
        question_text=question.question_text,
        question_type=question.question_type,
        difficulty_level=question.difficulty_level,
        explanation=question.explanation,
        status_id=question.status_id,
        status_name=question.status.name,
        status_display_name=question.status.display_name,
        category_id=question.category_id,
        category_name=question.category.name if question.category else None,
        tags=[TagOut(tag_id=t.tag_id, name=t.name) for t in question.tags],
        created_by=question.created_by,
        updated_by=question.updated_by,
        upvote_count=question.upvote_count,
        downvote_count=question.downvote_count,
        version_count=version_count,
        options=[
            QuestionOptionOut(
                option_id=o.option_id,
                text=o.option_text,
                is_correct=o.is_correct,
                order=o.option_order,
            )
            for o in question.options
        ],
        created_at=question.created_at,
        updated_at=question.updated_at,
    )


def _build_version_out(version) -> QuestionVersionOut:
    return QuestionVersionOut(
        version_id=version.version_id,
        question_id=version.question_id,
        version_number=version.version_number,
        snapshot=version.snapshot,
        change_summary=version.change_summary,
        created_by=version.created_by,
        created_at=version.created_at,
    )


def _build_comment_out(comment) -> CommentOut:
    return CommentOut(
        comment_id=comment.comment_id,
        question_id=comment.question_id,
        user_id=comment.user_id,
        author_name=(
            f"{comment.user.first_name} {comment.user.last_name}" if comment.user else None
        ),
        comment_text=comment.comment_text,
        upvote_count=comment.upvote_count,
        downvote_count=comment.downvote_count,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )


@router.post(
    "",
    response_model=QuestionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a question",
)
def create_question(
    req: CreateQuestionRequest,
    question_manager: QuestionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("question_create")),
    actor: ActorContext = Depends(get_actor),
) -> QuestionOut:
    """Create a question; it starts in the default status (draft)."""
    try:
        question = question_manager.create_question(
            question_text=req.question_text,
            question_type=req.question_type,
            difficulty_level=req.difficulty_level,
            explanation=req.explanation,
            options=[o.model_dump() for o in req.options],
            category_id=req.category_id,
            tag_ids=req.tag_ids,
            actor=actor,
        )
    except EmployDexError as e:
        raise http_error(e)
    return build_question_out(question)


@router.get("", response_model=QuestionListResponse, summary="List questions")
def list_questions(
    question_manager: QuestionManagerDep,
    status_name: Optional[str] = Query(default=None, alias="status"),
    question_type: Optional[str] = Query(default=None, alias="type"),
    difficulty: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=255),
    created_by: Optional[int] = Query(default=None),
    category_id: Optional[int] = Query(default=None, alias="categoryId", ge=1),
    tag_ids: Optional[List[int]] = Query(default=None, alias="tagIds"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    current_user: CurrentUser = Depends(require_permissions("question_view")),
) -> QuestionListResponse:
    questions, total = question_manager.list_questions(
        status=status_name,
        question_type=question_type,
        difficulty=difficulty,
        search=search,
        created_by=created_by,
        category_id=category_id,
        tag_ids=tag_ids,
        page=page,
        limit=limit,
    )
    counts = question_manager.version_counts([q.question_id for q in questions])
    return QuestionListResponse(
        questions=[build_question_out(q, counts.get(q.question_id, 0)) for q in questions],
        pagination=Pagination(
            page=page, limit=limit, total=total, total_pages=total_pages(total, limit)
        ),
    )


@router.get("/statistics", response_model=QuestionStatistics, summary="Question statistics")
def question_statistics(
    question_manager: QuestionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("question_view")),
) -> QuestionStatistics:
    return QuestionStatistics(**question_manager.statistics())


@router.get("/{question_id}", response_model=QuestionOut, summary="Get a question")
def get_question(
    question_id: int,
    question_manager: QuestionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("question_view")),
) -> QuestionOut:
    try:
        question = question_manager.get_question(question_id)
    except EmployDexError as e:
        raise http_error(e)
    counts = question_manager.version_counts([question_id])
    return build_question_out(question, counts.get(question_id, 0))


@router.put("/{question_id}", response_model=QuestionOut, summary="Update a question")
def update_question(
    question_id: int,
    req: UpdateQuestionRequest,
    question_manager: QuestionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("question_view")),
    actor: ActorContext = Depends(get_actor),
) -> QuestionOut:
    """Update a question; the creator or a holder of question_edit may do so.

    The previous state is kept as a new version.
    """
    try:
        question = question_manager.update_question(
            question_id, req.model_dump(exclude_unset=True), current_user, actor=actor
        )
    except EmployDexError as e:
        raise http_error(e)
    counts = question_manager.version_counts([question_id])
    return build_question_out(question, counts.get(question_id, 0))


@router.delete("/{question_id}", response_model=MessageResponse, summary="Delete a question")
def delete_question(
    question_id: int,
    question_manager: QuestionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("question_view")),
    actor: ActorContext = Depends(get_actor),
) -> MessageResponse:
    try:
        question_manager.delete_question(question_id, current_user, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return MessageResponse(message="Question deleted successfully")


@router.get(
    "/{question_id}/versions",
    response_model=List[QuestionVersionOut],
    summary="List question versions",
)
def list_versions(
    question_id: int,
    question_manager: QuestionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("question_view")),
) -> List[QuestionVersionOut]:
    try:
        versions = question_manager.list_versions(question_id)
    except EmployDexError as e:
        raise http_error(e)
    return [_build_version_out(v) for v in versions]


@router.get(
    "/{question_id}/versions/{version_number}",
    response_model=QuestionVersionOut,
    summary="Get a question version",
)
def get_version(
    question_id: int,
    version_number: int,
    question_manager: QuestionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("question_view")),
) -> QuestionVersionOut:
    try:
        return _build_version_out(question_manager.get_version(question_id, version_number))
    except EmployDexError as e:
        raise http_error(e)


@router.get(
    "/{question_id}/comments",
    response_model=List[CommentOut],
    summary="List comments on a question",
)
def list_comments(
    question_id: int,
    question_manager: QuestionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("question_view")),
) -> List[CommentOut]:
    try:
        comments = question_manager.list_comments(question_id)
    except EmployDexError as e:
        raise http_error(e)
    return [_build_comment_out(c) for c in comments]


@router.post(
    "/{question_id}/comments",
    response_model=CommentOut,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on a question",
)
def add_comment(
    question_id: int,
    req: CreateCommentRequest,
    question_manager: QuestionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("question_view")),
    actor: ActorContext = Depends(get_actor),
) -> CommentOut:
    try:
        comment = question_manager.add_comment(question_id, req.comment_text, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return _build_comment_out(comment)


@router.delete(
    "/{question_id}/comments/{comment_id}",
    response_model=MessageResponse,
    summary="Delete a comment",
)
def delete_comment(
    question_id: int,
    comment_id: int,
    question_manager: QuestionManagerDep,
    current_user: CurrentUser = Depends(require_permissions("question_view")),
    actor: ActorContext = Depends(get_actor),
) -> MessageResponse:
    try:
        question_manager.delete_comment(question_id, comment_id, current_user, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return MessageResponse(message="Comment deleted successfully")
