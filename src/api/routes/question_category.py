"""Question category routes.

Categories are listed as root categories, children of one parent, or a
full tree. Deleting a category deactivates it.
"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status

from api.errors import http_error
from api.routes.auth import get_actor, require_permissions
from core.dependencies import CategoryManagerDep
from core.exceptions import EmployDexError, ValidationError
from schemas.common import MessageResponse
from schemas.question_category import (
    CategoryListResponse,
    CategoryOut,
    CategoryStatistics,
    CreateCategoryRequest,
    MoveQuestionsRequest,
    MoveQuestionsResponse,
    UpdateCategoryRequest,
)
from schemas.user import CurrentUser
from utils.activity_logger import ActorContext
from utils.category_manager import CategoryManager

router = APIRouter(prefix="/api/question-categories", tags=["Question Categories"])


def _build_category_outs(manager: CategoryManager, categories) -> List[CategoryOut]:
    ids = [c.category_id for c in categories]
    questions = manager.question_counts(ids)
    children = manager.children_counts(ids)
    return [
        CategoryOut(
            category_id=c.category_id,
            name=c.name,
            description=c.description,
            parent_id=c.parent_id,
            parent_name=c.parent.name if c.parent else None,
            is_active=c.is_active,
            questions_count=questions.get(c.category_id, 0),
            children_count=children.get(c.category_id, 0),
            created_by=c.created_by,
            updated_by=c.updated_by,
            created_at=c.created_at,
            updated_at=c.updated_at,
        )
        for c in categories
    ]


def _as_tree(nodes: List[CategoryOut]) -> List[CategoryOut]:
    by_id: Dict[int, CategoryOut] = {}
    for node in nodes:
        node.children = []
        by_id[node.category_id] = node
    roots = []
    for node in nodes:
        parent = by_id.get(node.parent_id) if node.parent_id is not None else None
        # Children of a hidden parent surface at the top level
        if parent is None:
            roots.append(node)
        else:
            parent.children.append(node)
    return roots


@router.get("", response_model=CategoryListResponse, summary="List categories")
def list_categories(
    category_manager: CategoryManagerDep,
    parentId: Optional[int] = Query(default=None, ge=1),
    includeInactive: bool = Query(default=False),
    asTree: bool = Query(default=False),
    current_user: CurrentUser = Depends(require_permissions("category_view")),
) -> CategoryListResponse:
    categories = category_manager.list_categories(
        parent_id=parentId, include_inactive=includeInactive, all_levels=asTree
    )
    outs = _build_category_outs(category_manager, categories)
    if asTree:
        outs = _as_tree(outs)
    return CategoryListResponse(count=len(categories), categories=outs)


@router.post(
    "",
    response_model=CategoryOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create a category",
)
def create_category(
    req: CreateCategoryRequest,
    category_manager: CategoryManagerDep,
    current_user: CurrentUser = Depends(require_permissions("category_create")),
    actor: ActorContext = Depends(get_actor),
) -> CategoryOut:
    try:
        category = category_manager.create_category(req.model_dump(), actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return _build_category_outs(category_manager, [category])[0]


@router.get("/statistics", response_model=CategoryStatistics, summary="Category statistics")
def category_statistics(
    category_manager: CategoryManagerDep,
    current_user: CurrentUser = Depends(require_permissions("category_view")),
) -> CategoryStatistics:
    return CategoryStatistics(**category_manager.statistics())


@router.get("/{category_id}", response_model=CategoryOut, summary="Get a category")
def get_category(
    category_id: int,
    category_manager: CategoryManagerDep,
    current_user: CurrentUser = Depends(require_permissions("category_view")),
) -> CategoryOut:
    try:
        category = category_manager.get_category(category_id)
    except EmployDexError as e:
        raise http_error(e)
    return _build_category_outs(category_manager, [category])[0]


@router.put("/{category_id}", response_model=CategoryOut, summary="Update a category")
def update_category(
    category_id: int,
    req: UpdateCategoryRequest,
    category_manager: CategoryManagerDep,
    current_user: CurrentUser = Depends(require_permissions("category_edit")),
    actor: ActorContext = Depends(get_actor),
) -> CategoryOut:
    try:
        category = category_manager.update_category(
            category_id, req.model_dump(exclude_unset=True), actor=actor
        )
    except EmployDexError as e:
        raise http_error(e)
    return _build_category_outs(category_manager, [category])[0]


@router.delete("/{category_id}", response_model=MessageResponse, summary="Delete a category")
def delete_category(
    category_id: int,
    category_manager: CategoryManagerDep,
    moveToCategoryId: Optional[str] = Query(
        default=None, description='Category id to move questions to, or "null" to uncategorize them.'
    ),
    current_user: CurrentUser = Depends(require_permissions("category_delete")),
    actor: ActorContext = Depends(get_actor),
) -> MessageResponse:
    kwargs = {}
    try:
        if moveToCategoryId is not None:
            if moveToCategoryId.lower() == "null":
                kwargs["move_to"] = None
            elif moveToCategoryId.isdigit():
                kwargs["move_to"] = int(moveToCategoryId)
            else:
                raise ValidationError(
                    "Invalid moveToCategoryId",
                    errors=[{"field": "moveToCategoryId", "message": 'Must be a category id or "null"'}],
                )
        category, moved = category_manager.delete_category(category_id, actor=actor, **kwargs)
    except EmployDexError as e:
        raise http_error(e)
    message = f"Category '{category.name}' deleted"
    if moved:
        message += f"; {moved} question(s) moved"
    return MessageResponse(message=message)


@router.post(
    "/{category_id}/move-questions",
    response_model=MoveQuestionsResponse,
    summary="Move every question of a category",
)
def move_questions(
    category_id: int,
    req: MoveQuestionsRequest,
    category_manager: CategoryManagerDep,
    current_user: CurrentUser = Depends(require_permissions("category_edit")),
    actor: ActorContext = Depends(get_actor),
) -> MoveQuestionsResponse:
    try:
        moved = category_manager.move_questions(category_id, req.target_category_id, actor=actor)
    except EmployDexError as e:
        raise http_error(e)
    return MoveQuestionsResponse(message=f"{moved} question(s) moved", moved=moved)
