"""Question category utilities.

Categories form a tree through ``parent_id``. Deleting a category only
deactivates it, and only once it has no active children and no live
questions left.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError, ValidationError
from models.question import QuestionModel
from models.question_category import QuestionCategoryModel
from utils.activity_logger import ActivityLogger, ActorContext

logger = logging.getLogger(__name__)

_UNSET = object()


class CategoryManager:
    """Manages question categories."""

    def __init__(self, db: Session):
        self.db = db
        self.activity = ActivityLogger(db)

    def get_category(self, category_id: int) -> QuestionCategoryModel:
        """Get a category, active or not.

        Raises:
            NotFoundError: If the category does not exist.
        """
        category = (
            self.db.query(QuestionCategoryModel)
            .filter(QuestionCategoryModel.category_id == category_id)
            .first()
        )
        if category is None:
            raise NotFoundError("Category", category_id)
        return category

    def _active_category(self, category_id: int, field: str) -> QuestionCategoryModel:
        category = (
            self.db.query(QuestionCategoryModel)
            .filter(
                QuestionCategoryModel.category_id == category_id,
                QuestionCategoryModel.is_active.is_(True),
            )
            .first()
        )
        if category is None:
            raise ValidationError(
                "Category not found or inactive",
                errors=[{"field": field, "message": f"Category {category_id} not found or inactive"}],
            )
        return category

    def question_counts(self, category_ids: List[int]) -> Dict[int, int]:
        """Live questions filed directly under each category."""
        if not category_ids:
            return {}
        return dict(
            self.db.query(QuestionModel.category_id, func.count(QuestionModel.question_id))
            .filter(
                QuestionModel.category_id.in_(category_ids),
                QuestionModel.is_deleted.is_(False),
            )
            .group_by(QuestionModel.category_id)
            .all()
        )

    def children_counts(self, category_ids: List[int]) -> Dict[int, int]:
        """Active direct children of each category."""
        if not category_ids:
            return {}
        return dict(
            self.db.query(QuestionCategoryModel.parent_id, func.count(QuestionCategoryModel.category_id))
            .filter(
                QuestionCategoryModel.parent_id.in_(category_ids),
                QuestionCategoryModel.is_active.is_(True),
            )
            .group_by(QuestionCategoryModel.parent_id)
            .all()
        )

    def list_categories(
        self,
        parent_id: Optional[int] = None,
        include_inactive: bool = False,
        all_levels: bool = False,
    ) -> List[QuestionCategoryModel]:
        """List categories ordered by name.

        Args:
            parent_id: Only children of this category. Ignored with all_levels.
            include_inactive: Include deactivated categories.
            all_levels: Every category regardless of parent, for tree building.
                Without it and without parent_id only root categories are listed.
        """
        query = self.db.query(QuestionCategoryModel)
        if not include_inactive:
            query = query.filter(QuestionCategoryModel.is_active.is_(True))
        if not all_levels:
            if parent_id is not None:
                query = query.filter(QuestionCategoryModel.parent_id == parent_id)
            else:
                query = query.filter(QuestionCategoryModel.parent_id.is_(None))
        return query.order_by(QuestionCategoryModel.name, QuestionCategoryModel.category_id).all()

    def _ensure_name_free(
        self, name: str, parent_id: Optional[int], exclude_category_id: Optional[int] = None
    ) -> None:
        query = self.db.query(QuestionCategoryModel.category_id).filter(
            func.lower(QuestionCategoryModel.name) == name.lower(),
            QuestionCategoryModel.is_active.is_(True),
        )
        if parent_id is None:
            query = query.filter(QuestionCategoryModel.parent_id.is_(None))
        else:
            query = query.filter(QuestionCategoryModel.parent_id == parent_id)
        if exclude_category_id is not None:
            query = query.filter(QuestionCategoryModel.category_id != exclude_category_id)
        if query.first():
            raise ConflictError(f"Category '{name}' already exists at this level")

    def _check_no_cycle(self, category_id: int, parent_id: int) -> None:
        if parent_id == category_id:
            raise ValidationError(
                "A category cannot be its own parent",
                errors=[{"field": "parent_id", "message": "A category cannot be its own parent"}],
            )
        seen = set()
        current = self.get_category(parent_id)
        while current.parent_id is not None and current.parent_id not in seen:
            if current.parent_id == category_id:
                raise ValidationError(
                    "Circular category reference",
                    errors=[{"field": "parent_id", "message": "The new parent is a descendant of this category"}],
                )
            seen.add(current.parent_id)
            current = self.get_category(current.parent_id)

    def create_category(
        self, data: Dict[str, Any], actor: Optional[ActorContext] = None
    ) -> QuestionCategoryModel:
        """Create a category.

        Raises:
            ValidationError: If the parent is unknown or inactive.
            ConflictError: If a sibling already has the name.
        """
        parent_id = data.get("parent_id")
        if parent_id is not None:
            self._active_category(parent_id, "parent_id")
        self._ensure_name_free(data["name"], parent_id)

        user_id = actor.user_id if actor else None
        category = QuestionCategoryModel(
            name=data["name"],
            description=data.get("description"),
            parent_id=parent_id,
            created_by=user_id,
            updated_by=user_id,
        )
        self.db.add(category)
        self.db.flush()
        self.activity.record(
            actor,
            "CATEGORY_CREATED",
            entity_type="question_category",
            entity_id=category.category_id,
            details={"name": category.name, "parent_id": parent_id},
        )
        self.db.commit()
        self.db.refresh(category)
        logger.info("Category %s created: %s", category.category_id, category.name)
        return category

    def update_category(
        self, category_id: int, changes: Dict[str, Any], actor: Optional[ActorContext] = None
    ) -> QuestionCategoryModel:
        """Update a category; ``parent_id`` present as None moves it to the root.

        Raises:
            NotFoundError: If the category does not exist.
            ValidationError: If nothing changes, or the new parent is invalid.
            ConflictError: If a sibling already has the name.
        """
        if not changes:
            raise ValidationError("No fields to update")
        category = self.get_category(category_id)

        new_parent = changes.get("parent_id", _UNSET)
        if new_parent is not _UNSET and new_parent is not None:
            self._active_category(new_parent, "parent_id")
            self._check_no_cycle(category_id, new_parent)
        parent_id = category.parent_id if new_parent is _UNSET else new_parent

        name = changes.get("name") or category.name
        if name != category.name or parent_id != category.parent_id:
            self._ensure_name_free(name, parent_id, exclude_category_id=category_id)

        category.name = name
        category.parent_id = parent_id
        if "description" in changes:
            category.description = changes["description"]
        if changes.get("is_active") is not None:
            category.is_active = changes["is_active"]
        category.updated_by = actor.user_id if actor else None

        self.activity.record(
            actor,
            "CATEGORY_UPDATED",
            entity_type="question_category",
            entity_id=category_id,
            details={"fields": sorted(changes)},
        )
        self.db.commit()
        self.db.refresh(category)
        return category

    def _move_questions(self, source_id: int, target_id: Optional[int]) -> int:
        return (
            self.db.query(QuestionModel)
            .filter(
                QuestionModel.category_id == source_id,
                QuestionModel.is_deleted.is_(False),
            )
            .update({QuestionModel.category_id: target_id}, synchronize_session=False)
        )

    def move_questions(
        self, category_id: int, target_category_id: Optional[int], actor: Optional[ActorContext] = None
    ) -> int:
        """Move every live question of a category to another one, or to none.

        Returns:
            Number of questions moved.

        Raises:
            NotFoundError: If the source category does not exist.
            ValidationError: If the target is unknown, inactive or the source itself.
        """
        self.get_category(category_id)
        if target_category_id is not None:
            if target_category_id == category_id:
                raise ValidationError(
                    "Source and target categories are the same",
                    errors=[{"field": "target_category_id", "message": "Choose a different category"}],
                )
            self._active_category(target_category_id, "target_category_id")

        moved = self._move_questions(category_id, target_category_id)
        self.activity.record(
            actor,
            "CATEGORY_QUESTIONS_MOVED",
            entity_type="question_category",
            entity_id=category_id,
            details={"target_category_id": target_category_id, "moved": moved},
        )
        self.db.commit()
        logger.info("Moved %d question(s) from category %s to %s", moved, category_id, target_category_id)
        return moved

    def delete_category(
        self,
        category_id: int,
        move_to: Any = _UNSET,
        actor: Optional[ActorContext] = None,
    ) -> Tuple[QuestionCategoryModel, int]:
        """Deactivate a category, optionally moving its questions first.

        Args:
            move_to: Category to move live questions to; None leaves them
                uncategorized. Left unset, questions are not moved.

        Returns:
            Tuple of (category, moved question count).

        Raises:
            NotFoundError: If the category does not exist.
            ValidationError: If move_to is unknown, inactive or the category itself.
            ConflictError: If active children or live questions remain.
        """
        category = self.get_category(category_id)
        children = self.children_counts([category_id]).get(category_id, 0)
        if children:
            raise ConflictError(f"Cannot delete category: it has {children} active subcategories")

        moved = 0
        if move_to is not _UNSET:
            if move_to is not None:
                if move_to == category_id:
                    raise ValidationError("Cannot move questions into the category being deleted")
                self._active_category(move_to, "moveToCategoryId")
            moved = self._move_questions(category_id, move_to)
        remaining = self.question_counts([category_id]).get(category_id, 0)
        if remaining:
            raise ConflictError(
                f"Cannot delete category: it still has {remaining} question(s); move them first"
            )

        category.is_active = False
        category.updated_by = actor.user_id if actor else None
        self.activity.record(
            actor,
            "CATEGORY_DELETED",
            entity_type="question_category",
            entity_id=category_id,
            details={"name": category.name, "moved_questions": moved},
        )
        self.db.commit()
        self.db.refresh(category)
        return category, moved

    def statistics(self) -> Dict[str, Any]:
        active = QuestionCategoryModel.is_active.is_(True)
        total = self.db.query(func.count(QuestionCategoryModel.category_id)).filter(active).scalar()
        roots = (
            self.db.query(func.count(QuestionCategoryModel.category_id))
            .filter(active, QuestionCategoryModel.parent_id.is_(None))
            .scalar()
        )
        live = QuestionModel.is_deleted.is_(False)
        with_category = (
            self.db.query(func.count(QuestionModel.question_id))
            .filter(live, QuestionModel.category_id.isnot(None))
            .scalar()
        )
        without_category = (
            self.db.query(func.count(QuestionModel.question_id))
            .filter(live, QuestionModel.category_id.is_(None))
            .scalar()
        )
        question_count = func.count(QuestionModel.question_id).label("question_count")
        top = (
            self.db.query(QuestionCategoryModel.category_id, QuestionCategoryModel.name, question_count)
            .join(QuestionModel, QuestionModel.category_id == QuestionCategoryModel.category_id)
            .filter(active, live)
            .group_by(QuestionCategoryModel.category_id, QuestionCategoryModel.name)
            .order_by(question_count.desc(), QuestionCategoryModel.category_id)
            .first()
        )
        return {
            "total_categories": total,
            "root_categories": roots,
            "subcategories": total - roots,
            "questions_with_category": with_category,
            "questions_without_category": without_category,
            "top_category": (
                {"category_id": top[0], "name": top[1], "question_count": top[2]} if top else None
            ),
        }
