"""Question bank utilities.

Questions are created in the default status, snapshotted into a new version
before every update, and soft-deleted. Comments on questions live here too.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from models.comment import CommentModel
from models.question_category import QuestionCategoryModel, QuestionTagModel
from models.question import QuestionModel, QuestionOptionModel, QuestionVersionModel
from models.question_status import QuestionStatusHistoryModel, QuestionStatusModel
from models.vote import VoteModel
from schemas.user import CurrentUser
from utils.activity_logger import ActivityLogger, ActorContext

logger = logging.getLogger(__name__)

DEFAULT_STATUS_NAME = "draft"


def question_snapshot(question: QuestionModel) -> Dict[str, Any]:
    """Serializable copy of the editable state of a question."""
    return {
        "question_text": question.question_text,
        "question_type": question.question_type,
        "difficulty_level": question.difficulty_level,
        "explanation": question.explanation,
        "status_id": question.status_id,
        "category_id": question.category_id,
        "tag_ids": [tag.tag_id for tag in question.tags],
        "options": [
            {
                "text": option.option_text,
                "is_correct": option.is_correct,
                "order": option.option_order,
            }
            for option in question.options
        ],
        "updated_by": question.updated_by,
        "updated_at": question.updated_at,
    }


class QuestionManager:
    """Manages questions, their versions and comments."""

    def __init__(self, db: Session):
        self.db = db
        self.activity = ActivityLogger(db)

    # --- Questions ---

    def default_status(self) -> QuestionStatusModel:
        status = (
            self.db.query(QuestionStatusModel)
            .filter(
                QuestionStatusModel.is_default.is_(True),
                QuestionStatusModel.is_active.is_(True),
            )
            .order_by(QuestionStatusModel.status_id)
            .first()
        )
        if status is None:
            status = (
                self.db.query(QuestionStatusModel)
                .filter(
                    QuestionStatusModel.name == DEFAULT_STATUS_NAME,
                    QuestionStatusModel.is_active.is_(True),
                )
                .first()
            )
        if status is None:
            raise ValidationError("No default question status is configured")
        return status

    def get_question(self, question_id: int) -> QuestionModel:
        """Get a question that has not been deleted.

        Raises:
            NotFoundError: If the question does not exist or is deleted.
        """
        question = (
            self.db.query(QuestionModel)
            .filter(
                QuestionModel.question_id == question_id,
                QuestionModel.is_deleted.is_(False),
            )
            .first()
        )
        if question is None:
            raise NotFoundError("Question", question_id)
        return question

    def version_counts(self, question_ids: List[int]) -> Dict[int, int]:
        if not question_ids:
            return {}
        return dict(
            self.db.query(QuestionVersionModel.question_id, func.count(QuestionVersionModel.version_id))
            .filter(QuestionVersionModel.question_id.in_(question_ids))
            .group_by(QuestionVersionModel.question_id)
            .all()
        )

    def list_questions(
        self,
        status: Optional[str] = None,
        question_type: Optional[str] = None,
        difficulty: Optional[str] = None,
        search: Optional[str] = None,
        created_by: Optional[int] = None,
        category_id: Optional[int] = None,
        tag_ids: Optional[List[int]] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[QuestionModel], int]:
        """List non-deleted questions, newest first.

        Args:
            status: Status name, e.g. "pending_review".
            question_type: Question type filter.
            difficulty: Difficulty level filter.
            search: Substring matched against question text and explanation.
            created_by: Creator user id.
            category_id: Only questions filed directly under this category.
            tag_ids: Only questions carrying at least one of these tags.
            page: 1-based page number.
            limit: Page size.

        Returns:
            Tuple of (questions on the page, total matching).
        """
        query = self.db.query(QuestionModel).filter(QuestionModel.is_deleted.is_(False))
        if status:
            query = query.join(
                QuestionStatusModel, QuestionStatusModel.status_id == QuestionModel.status_id
            ).filter(QuestionStatusModel.name == status)
        if question_type:
            query = query.filter(QuestionModel.question_type == question_type)
        if difficulty:
            query = query.filter(QuestionModel.difficulty_level == difficulty)
        if created_by is not None:
            query = query.filter(QuestionModel.created_by == created_by)
        if category_id is not None:
            query = query.filter(QuestionModel.category_id == category_id)
        if tag_ids:
            query = query.filter(QuestionModel.tags.any(QuestionTagModel.tag_id.in_(tag_ids)))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    QuestionModel.question_text.ilike(pattern),
                    QuestionModel.explanation.ilike(pattern),
                )
            )

        total = query.count()
        questions = (
            query.order_by(QuestionModel.created_at.desc(), QuestionModel.question_id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return questions, total

    def _resolve_category(self, category_id: Optional[int]) -> Optional[int]:
        if category_id is None:
            return None
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
                "Invalid category",
                errors=[{"field": "category_id", "message": f"Category {category_id} not found or inactive"}],
            )
        return category.category_id

    def _resolve_tags(self, tag_ids: List[int]) -> List[QuestionTagModel]:
        wanted = list(dict.fromkeys(tag_ids))
        if not wanted:
            return []
        tags = self.db.query(QuestionTagModel).filter(QuestionTagModel.tag_id.in_(wanted)).all()
        missing = sorted(set(wanted) - {tag.tag_id for tag in tags})
        if missing:
            raise ValidationError(
                "Invalid tags",
                errors=[
                    {"field": "tag_ids", "message": f"Unknown tag ids: {', '.join(map(str, missing))}"}
                ],
            )
        return tags

    @staticmethod
    def _build_options(options: List[Dict[str, Any]]) -> List[QuestionOptionModel]:
        return [
            QuestionOptionModel(
                option_text=option["text"],
                is_correct=bool(option.get("is_correct", False)),
                option_order=index,
            )
            for index, option in enumerate(options, start=1)
        ]

    def create_question(
        self,
        question_text: str,
        question_type: str,
        difficulty_level: str,
        explanation: Optional[str] = None,
        options: Optional[List[Dict[str, Any]]] = None,
        category_id: Optional[int] = None,
        tag_ids: Optional[List[int]] = None,
        actor: Optional[ActorContext] = None,
    ) -> QuestionModel:
        """Create a question in the default status.

        Raises:
            ValidationError: If no default status is available, or the category
                or a tag does not exist.
        """
        status = self.default_status()
        category_id = self._resolve_category(category_id)
        tags = self._resolve_tags(tag_ids or [])
        user_id = actor.user_id if actor else None
        question = QuestionModel(
            question_text=question_text,
            question_type=question_type,
            difficulty_level=difficulty_level,
            explanation=explanation,
            status_id=status.status_id,
            category_id=category_id,
            created_by=user_id,
            updated_by=user_id,
            options=self._build_options(options or []),
            tags=tags,
        )
        self.db.add(question)
        self.db.flush()
        self.db.add(
            QuestionStatusHistoryModel(
                question_id=question.question_id,
                from_status_id=None,
                to_status_id=status.status_id,
                changed_by=user_id,
                comments="Question created",
            )
        )
        self.activity.record(
            actor,
            "QUESTION_CREATED",
            entity_type="question",
            entity_id=question.question_id,
            details={"question_type": question_type, "difficulty_level": difficulty_level},
        )
        self.db.commit()
        self.db.refresh(question)
        logger.info("Created question %s", question.question_id)
        return question

    def _check_owner_or_permission(
        self, owner_id: Optional[int], current_user: CurrentUser, permission_name: str, what: str
    ) -> None:
        if owner_id == current_user.user_id:
            return
        if current_user.has_permission(permission_name):
            return
        raise ForbiddenError(f"You are not allowed to {what}")

    def update_question(
        self,
        question_id: int,
        changes: Dict[str, Any],
        current_user: CurrentUser,
        actor: Optional[ActorContext] = None,
    ) -> QuestionModel:
        """Update a question after snapshotting its current state.

        Args:
            question_id: Question to update.
            changes: Any of question_text, question_type, difficulty_level,
                explanation, options, category_id, tag_ids, change_summary.
                A category_id key holding None uncategorizes the question.
            current_user: Caller; must be the creator or hold question_edit.
            actor: Acting user and request origin.

        Raises:
            NotFoundError: If the question does not exist.
            ForbiddenError: If the caller may not edit it.
            ValidationError: If the category or a tag does not exist.
        """
        question = self.get_question(question_id)
        self._check_owner_or_permission(
            question.created_by, current_user, "question_edit", "edit this question"
        )
        if "category_id" in changes:
            new_category_id = self._resolve_category(changes["category_id"])
        new_tags = None
        if changes.get("tag_ids") is not None:
            new_tags = self._resolve_tags(changes["tag_ids"])

        last_version = (
            self.db.query(func.max(QuestionVersionModel.version_number))
            .filter(QuestionVersionModel.question_id == question_id)
            .scalar()
        ) or 0
        version = QuestionVersionModel(
            question_id=question_id,
            version_number=last_version + 1,
            snapshot=question_snapshot(question),
            change_summary=changes.get("change_summary"),
            created_by=current_user.user_id,
        )
        self.db.add(version)

        for field in ("question_text", "question_type", "difficulty_level", "explanation"):
            if changes.get(field) is not None:
                setattr(question, field, changes[field])
        if changes.get("options") is not None:
            question.options = self._build_options(changes["options"])
        if "category_id" in changes:
            question.category_id = new_category_id
        if new_tags is not None:
            question.tags = new_tags
        question.updated_by = current_user.user_id

        self.activity.record(
            actor,
            "QUESTION_UPDATED",
            entity_type="question",
            entity_id=question_id,
            details={"version_number": version.version_number},
        )
        self.db.commit()
        self.db.refresh(question)
        logger.info("Updated question %s (version %d saved)", question_id, version.version_number)
        return question

    def delete_question(
        self,
        question_id: int,
        current_user: CurrentUser,
        actor: Optional[ActorContext] = None,
    ) -> None:
        """Soft delete a question.

        Raises:
            NotFoundError: If the question does not exist.
            ForbiddenError: If the caller is neither creator nor holds question_delete.
        """
        question = self.get_question(question_id)
        self._check_owner_or_permission(
            question.created_by, current_user, "question_delete", "delete this question"
        )
        question.is_deleted = True
        question.updated_by = current_user.user_id
        self.activity.record(actor, "QUESTION_DELETED", entity_type="question", entity_id=question_id)
        self.db.commit()
        logger.info("Deleted question %s", question_id)

    def list_versions(self, question_id: int) -> List[QuestionVersionModel]:
        self.get_question(question_id)
        return (
            self.db.query(QuestionVersionModel)
            .filter(QuestionVersionModel.question_id == question_id)
            .order_by(QuestionVersionModel.version_number.desc())
            .all()
        )

    def get_version(self, question_id: int, version_number: int) -> QuestionVersionModel:
        self.get_question(question_id)
        version = (
            self.db.query(QuestionVersionModel)
            .filter(
                QuestionVersionModel.question_id == question_id,
                QuestionVersionModel.version_number == version_number,
            )
            .first()
        )
        if version is None:
            raise NotFoundError("Question version", version_number)
        return version

    def statistics(self) -> Dict[str, Any]:
        """Counts of non-deleted questions by status, type and difficulty."""
        live = QuestionModel.is_deleted.is_(False)
        total = self.db.query(func.count(QuestionModel.question_id)).filter(live).scalar()
        by_status = dict(
            self.db.query(QuestionStatusModel.name, func.count(QuestionModel.question_id))
            .join(QuestionStatusModel, QuestionStatusModel.status_id == QuestionModel.status_id)
            .filter(live)
            .group_by(QuestionStatusModel.name)
            .all()
        )
        by_type = dict(
            self.db.query(QuestionModel.question_type, func.count(QuestionModel.question_id))
            .filter(live)
            .group_by(QuestionModel.question_type)
            .all()
        )
        by_difficulty = dict(
            self.db.query(QuestionModel.difficulty_level, func.count(QuestionModel.question_id))
            .filter(live)
            .group_by(QuestionModel.difficulty_level)
            .all()
        )
        return {
            "total": total,
            "by_status": by_status,
            "by_type": by_type,
            "by_difficulty": by_difficulty,
        }

    # --- Comments ---

    def list_comments(self, question_id: int) -> List[CommentModel]:
        self.get_question(question_id)
        return (
            self.db.query(CommentModel)
            .filter(CommentModel.question_id == question_id)
            .order_by(CommentModel.created_at, CommentModel.comment_id)
            .all()
        )

    def get_comment(self, comment_id: int) -> CommentModel:
        comment = self.db.query(CommentModel).filter(CommentModel.comment_id == comment_id).first()
        if comment is None:
            raise NotFoundError("Comment", comment_id)
        return comment

    def add_comment(
        self, question_id: int, comment_text: str, actor: Optional[ActorContext] = None
    ) -> CommentModel:
        self.get_question(question_id)
        comment = CommentModel(
            question_id=question_id,
            user_id=actor.user_id if actor else None,
            comment_text=comment_text.strip(),
        )
        self.db.add(comment)
        self.db.flush()
        self.activity.record(
            actor,
            "COMMENT_CREATED",
            entity_type="comment",
            entity_id=comment.comment_id,
            details={"question_id": question_id},
        )
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def delete_comment(
        self,
        question_id: int,
        comment_id: int,
        current_user: CurrentUser,
        actor: Optional[ActorContext] = None,
    ) -> None:
        """Delete a comment and its votes.

        Raises:
            NotFoundError: If the comment does not belong to the question.
            ForbiddenError: If the caller is neither author nor holds question_edit.
        """
        comment = self.get_comment(comment_id)
        if comment.question_id != question_id:
            raise NotFoundError("Comment", comment_id)
        self._check_owner_or_permission(
            comment.user_id, current_user, "question_edit", "delete this comment"
        )
        self.db.query(VoteModel).filter(
            VoteModel.target_type == "comment", VoteModel.target_id == comment_id
        ).delete(synchronize_session=False)
        self.db.delete(comment)
        self.activity.record(
            actor,
            "COMMENT_DELETED",
            entity_type="comment",
            entity_id=comment_id,
            details={"question_id": question_id},
        )
        self.db.commit()
