"""Question review utilities.

A question has at most one active review. A review moves through the
review statuses; reaching a closing status (approved, rejected) ends it,
after which a new review of the same question may be opened. Every status
change and reassignment is written to ``review_history``.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError, ValidationError
from models.base import now_iso
from models.question import QuestionModel
from models.review import (
    ReviewAssignmentModel,
    ReviewCommentModel,
    ReviewHistoryModel,
    ReviewModel,
    ReviewStatusModel,
)
from models.user import UserModel
from schemas.user import CurrentUser
from utils.activity_logger import ActivityLogger, ActorContext
from utils.question_manager import QuestionManager

logger = logging.getLogger(__name__)

INITIAL_REVIEW_STATUS = "pending"
REVIEW_ASSIGN_PERMISSION = "review_assign"


class ReviewManager:
    """Manages question reviews, their comments and assignments."""

    def __init__(self, db: Session):
        self.db = db
        self.activity = ActivityLogger(db)
        self.questions = QuestionManager(db)

    # --- Statuses ---

    def list_statuses(self) -> List[ReviewStatusModel]:
        return (
            self.db.query(ReviewStatusModel)
            .filter(ReviewStatusModel.is_active.is_(True))
            .order_by(ReviewStatusModel.status_id)
            .all()
        )

    def _status_by_name(self, name: str) -> ReviewStatusModel:
        status = (
            self.db.query(ReviewStatusModel)
            .filter(ReviewStatusModel.name == name, ReviewStatusModel.is_active.is_(True))
            .first()
        )
        if status is None:
            raise ValidationError(f"Review status '{name}' is not configured")
        return status

    # --- Reviews ---

    def _active_user(self, user_id: int, field: str) -> UserModel:
        user = (
            self.db.query(UserModel)
            .filter(UserModel.user_id == user_id, UserModel.is_active.is_(True))
            .first()
        )
        if user is None:
            raise ValidationError(
                "Assignee not found or inactive",
                errors=[{"field": field, "message": f"User {user_id} not found or inactive"}],
            )
        return user

    @staticmethod
    def can_view(review: ReviewModel, current_user: CurrentUser) -> bool:
        """Creator, assignee and holders of review_assign may open a review."""
        return (
            review.created_by == current_user.user_id
            or review.assigned_to == current_user.user_id
            or current_user.has_permission(REVIEW_ASSIGN_PERMISSION)
        )

    def get_review(self, review_id: int, current_user: Optional[CurrentUser] = None) -> ReviewModel:
        """Get a review, hiding it from callers who may not see it.

        Raises:
            NotFoundError: If the review does not exist or is not visible.
        """
        review = self.db.query(ReviewModel).filter(ReviewModel.review_id == review_id).first()
        if review is None or (current_user is not None and not self.can_view(review, current_user)):
            raise NotFoundError("Review", review_id)
        return review

    def list_reviews(
        self,
        status_id: Optional[int] = None,
        assigned_to: Optional[int] = None,
        created_by: Optional[int] = None,
        search: Optional[str] = None,
        include_closed: bool = False,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[ReviewModel], int]:
        """List reviews of live questions, most recently updated first."""
        query = (
            self.db.query(ReviewModel)
            .join(QuestionModel, QuestionModel.question_id == ReviewModel.question_id)
            .filter(QuestionModel.is_deleted.is_(False))
        )
        if not include_closed:
            query = query.filter(ReviewModel.is_active.is_(True))
        if status_id is not None:
            query = query.filter(ReviewModel.status_id == status_id)
        if assigned_to is not None:
            query = query.filter(ReviewModel.assigned_to == assigned_to)
        if created_by is not None:
            query = query.filter(ReviewModel.created_by == created_by)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(QuestionModel.question_text.ilike(pattern), ReviewModel.notes.ilike(pattern))
            )
        total = query.count()
        reviews = (
            query.order_by(ReviewModel.updated_at.desc(), ReviewModel.review_id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return reviews, total

    def create_review(self, data: Dict[str, Any], actor: ActorContext) -> ReviewModel:
        """Open a review of a question.

        Raises:
            NotFoundError: If the question does not exist or is deleted.
            ConflictError: If the question already has an active review.
            ValidationError: If the assignee is unknown or inactive.
        """
        question = self.questions.get_question(data["question_id"])
        open_review = (
            self.db.query(ReviewModel.review_id)
            .filter(
                ReviewModel.question_id == question.question_id,
                ReviewModel.is_active.is_(True),
            )
            .first()
        )
        if open_review:
            raise ConflictError(
                f"Question {question.question_id} already has an active review ({open_review[0]})"
            )
        assigned_to = data.get("assigned_to")
        if assigned_to is not None:
            self._active_user(assigned_to, "assigned_to")

        status = self._status_by_name(INITIAL_REVIEW_STATUS)
        due_date = data.get("due_date")
        review = ReviewModel(
            question_id=question.question_id,
            status_id=status.status_id,
            created_by=actor.user_id,
            assigned_to=assigned_to,
            updated_by=actor.user_id,
            notes=data.get("notes"),
            priority=data.get("priority", 2),
            due_date=due_date.isoformat() if isinstance(due_date, datetime) else due_date,
        )
        review.history.append(
            ReviewHistoryModel(
                status_id=status.status_id, changed_by=actor.user_id, comments="Review created"
            )
        )
        if assigned_to is not None:
            review.assignments.append(
                ReviewAssignmentModel(user_id=assigned_to, assigned_by=actor.user_id)
            )
        self.db.add(review)
        self.db.flush()
        self.activity.record(
            actor,
            "REVIEW_CREATED",
            entity_type="review",
            entity_id=review.review_id,
            details={"question_id": question.question_id, "assigned_to": assigned_to},
        )
        self.db.commit()
        self.db.refresh(review)
        logger.info("Review %s opened for question %s", review.review_id, question.question_id)
        return review

    def update_status(
        self,
        review_id: int,
        status_id: int,
        comment: Optional[str],
        current_user: CurrentUser,
        actor: ActorContext,
    ) -> ReviewModel:
        """Move a review to another status; a closing status ends the review.

        Raises:
            NotFoundError: If the review does not exist or is not visible.
            ValidationError: If the status is unknown or inactive.
            ConflictError: If the review is already closed.
        """
        review = self.get_review(review_id, current_user)
        status = (
            self.db.query(ReviewStatusModel)
            .filter(ReviewStatusModel.status_id == status_id, ReviewStatusModel.is_active.is_(True))
            .first()
        )
        if status is None:
            raise ValidationError(
                "Invalid review status",
                errors=[{"field": "status_id", "message": f"Review status {status_id} not found or inactive"}],
            )
        if not review.is_active:
            raise ConflictError("Review is already closed")

        previous = review.status.name
        review.status_id = status.status_id
        review.updated_by = actor.user_id
        if status.is_closing:
            review.is_active = False
        review.history.append(
            ReviewHistoryModel(status_id=status.status_id, changed_by=actor.user_id, comments=comment)
        )
        self.activity.record(
            actor,
            "REVIEW_STATUS_CHANGED",
            entity_type="review",
            entity_id=review_id,
            details={"from": previous, "to": status.name},
        )
        self.db.commit()
        self.db.refresh(review)
        return review

    def add_comment(
        self, review_id: int, text: str, current_user: CurrentUser, actor: ActorContext
    ) -> ReviewCommentModel:
        review = self.get_review(review_id, current_user)
        comment = ReviewCommentModel(review_id=review.review_id, user_id=actor.user_id, comment_text=text)
        self.db.add(comment)
        # Commenting counts as activity on the review
        review.updated_by = actor.user_id
        review.updated_at = comment.created_at = now_iso()
        self.db.flush()
        self.activity.record(
            actor,
            "REVIEW_COMMENTED",
            entity_type="review",
            entity_id=review_id,
            details={"comment_id": comment.comment_id},
        )
        self.db.commit()
        self.db.refresh(comment)
        return comment

    def assign(self, review_id: int, user_id: int, actor: ActorContext) -> ReviewModel:
        """Hand a review to another user, closing earlier assignments.

        Raises:
            NotFoundError: If the review does not exist.
            ValidationError: If the user is unknown or inactive.
        """
        review = self.get_review(review_id)
        self._active_user(user_id, "user_id")
        for assignment in review.assignments:
            assignment.is_active = False
        review.assignments.append(ReviewAssignmentModel(user_id=user_id, assigned_by=actor.user_id))
        review.assigned_to = user_id
        review.updated_by = actor.user_id
        review.history.append(
            ReviewHistoryModel(
                status_id=None, changed_by=actor.user_id, comments=f"Assigned to user {user_id}"
            )
        )
        self.activity.record(
            actor,
            "REVIEW_ASSIGNED",
            entity_type="review",
            entity_id=review_id,
            details={"user_id": user_id},
        )
        self.db.commit()
        self.db.refresh(review)
        return review

    def statistics(self) -> Dict[str, Any]:
        counts = dict(
            self.db.query(ReviewStatusModel.name, func.count(ReviewModel.review_id))
            .join(ReviewModel, ReviewModel.status_id == ReviewStatusModel.status_id)
            .group_by(ReviewStatusModel.name)
            .all()
        )
        reviewers = (
            self.db.query(func.count(func.distinct(ReviewModel.assigned_to)))
            .filter(ReviewModel.assigned_to.isnot(None))
            .scalar()
        )
        closed = (
            self.db.query(ReviewModel.created_at, ReviewModel.updated_at)
            .join(ReviewStatusModel, ReviewStatusModel.status_id == ReviewModel.status_id)
            .filter(ReviewStatusModel.is_closing.is_(True))
            .all()
        )
        durations = [
            (datetime.fromisoformat(updated) - datetime.fromisoformat(created)).total_seconds() / 86400
            for created, updated in closed
        ]
        return {
            "total_reviews": sum(counts.values()),
            "pending_reviews": counts.get("pending", 0),
            "in_progress_reviews": counts.get("in_progress", 0),
            "approved_reviews": counts.get("approved", 0),
            "rejected_reviews": counts.get("rejected", 0),
            "reviewers_count": reviewers,
            "avg_days_to_resolution": (
                round(sum(durations) / len(durations), 2) if durations else None
            ),
        }
