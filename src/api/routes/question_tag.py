"""Question tag routes."""

from typing import List

from fastapi import APIRouter, Depends, Response, status

from api.errors import http_error
from api.routes.auth import get_actor, require_permissions
from core.dependencies import QuestionTagManagerDep
from core.exceptions import EmployDexError
from schemas.question_category import CreateTagRequest, TagWithCountOut
from schemas.user import CurrentUser
from utils.activity_logger import ActorContext

router = APIRouter(prefix="/api/question-tags", tags=["Question Tags"])


@router.get("", response_model=List[TagWithCountOut], summary="List tags with usage counts")
def list_tags(
    tag_manager: QuestionTagManagerDep,
    current_user: CurrentUser = Depends(require_permissions("question_view")),
) -> List[TagWithCountOut]:
    return [
        TagWithCountOut(
            tag_id=tag.tag_id, name=tag.name, question_count=count, created_at=tag.created_at
        )
        for tag, count in tag_manager.list_tags()
    ]


@router.post(
    "",
    response_model=TagWithCountOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a tag",
)
def create_tag(
    req: CreateTagRequest,
    tag_manager: QuestionTagManagerDep,
    current_user: CurrentUser = Depends(require_permissions("question_create")),
    actor: ActorContext = Depends(get_actor),
) -> TagWithCountOut:
    try:
        tag = tag_manager.create_tag(req.name, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return TagWithCountOut(tag_id=tag.tag_id, name=tag.name, question_count=0, created_at=tag.created_at)


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a tag")
def delete_tag(
    tag_id: int,
    tag_manager: QuestionTagManagerDep,
    current_user: CurrentUser = Depends(require_permissions("question_delete")),
    actor: ActorContext = Depends(get_actor),
) -> Response:
    try:
        tag_manager.delete_tag(tag_id, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
