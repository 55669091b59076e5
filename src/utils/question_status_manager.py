"""Question status workflow utilities.

A question may move from one status to another only if an active row in
``question_status_transitions`` allows that pair for one of the caller's
roles. Every successful move is recorded in ``question_status_history``.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from models.question import QuestionModel
from models.question_status import (
    QuestionStatusHistoryModel,
    QuestionStatusModel,
    QuestionStatusTransitionModel,
)
from models.role import RoleModel
from schemas.user import CurrentUser
from utils.activity_logger import ActivityLogger, ActorContext
from utils.question_manager import QuestionManager

logger = logging.getLogger(__name__)


class QuestionStatusManager:
    """Manages statuses, allowed transitions and status changes."""

    def __init__(self, db: Session):
        self.db = db
        self.activity = ActivityLogger(db)
        self.questions = QuestionManager(db)

    # --- Statuses ---

    def list_statuses(self, include_inactive: bool = False) -> List[QuestionStatusModel]:
        query = self.db.query(QuestionStatusModel)
        if not include_inactive:
            query = query.filter(QuestionStatusModel.is_active.is_(True))
        return query.order_by(QuestionStatusModel.status_id).all()

    def get_status(self, status_id: int) -> QuestionStatusModel:
        status = (
            self.db.query(QuestionStatusModel)
            .filter(QuestionStatusModel.status_id == status_id)
            .first()
        )
        if status is None:
            raise NotFoundError("Question status", status_id)
        return status

    def _ensure_name_free(self, name: str, exclude_status_id: Optional[int] = None) -> None:
        query = self.db.query(QuestionStatusModel.status_id).filter(QuestionStatusModel.name == name)
        if exclude_status_id is not None:
            query = query.filter(QuestionStatusModel.status_id != exclude_status_id)
        if query.first():
            raise ConflictError(f"Question status '{name}' already exists")

    def _clear_other_defaults(self, status_id: int) -> None:
        self.db.query(QuestionStatusModel).filter(
            QuestionStatusModel.status_id != status_id,
            QuestionStatusModel.is_default.is_(True),
        ).update({QuestionStatusModel.is_default: False}, synchronize_session=False)

    def create_status(
        self, data: Dict[str, Any], actor: Optional[ActorContext] = None
    ) -> QuestionStatusModel:
        """Create a status.

        Raises:
            ConflictError: If the name is already taken.
        """
        self._ensure_name_free(data["name"])
        status = QuestionStatusModel(
            name=data["name"],
            display_name=data["display_name"],
            description=data.get("description"),
            is_active=data.get("is_active", True),
            is_default=data.get("is_default", False),
        )
        self.db.add(status)
        self.db.flush()
        # Only one default status
        if status.is_default:
            self._clear_other_defaults(status.status_id)
        self.activity.record(
            actor,
            "QUESTION_STATUS_CREATED",
            entity_type="question_status",
            entity_id=status.status_id,
            details={"name": status.name},
        )
        self.db.commit()
        self.db.refresh(status)
        return status

    def update_status(
        self, status_id: int, changes: Dict[str, Any], actor: Optional[ActorContext] = None
    ) -> QuestionStatusModel:
        status = self.get_status(status_id)
        if changes.get("name") is not None and changes["name"] != status.name:
            self._ensure_name_free(changes["name"], exclude_status_id=status_id)
        for field in ("name", "display_name", "description", "is_active", "is_default"):
            if changes.get(field) is not None:
                setattr(status, field, changes[field])
        if changes.get("is_default"):
            self._clear_other_defaults(status_id)
        self.activity.record(
            actor,
            "QUESTION_STATUS_UPDATED",
            entity_type="question_status",
            entity_id=status_id,
            details={"fields": sorted(k for k, v in changes.items() if v is not None)},
        )
        self.db.commit()
        self.db.refresh(status)
        return status

    def delete_status(self, status_id: int, actor: Optional[ActorContext] = None) -> None:
        """Delete a status that no question or history row references.

        Raises:
            NotFoundError: If the status does not exist.
            ConflictError: If the status is still in use.
        """
        status = self.get_status(status_id)
        in_use = (
            self.db.query(func.count(QuestionModel.question_id))
            .filter(QuestionModel.status_id == status_id)
            .scalar()
        )
        if in_use:
            raise ConflictError(f"Cannot delete status: {in_use} question(s) use it")
        in_history = (
            self.db.query(QuestionStatusHistoryModel.history_id)
            .filter(
                or_(
                    QuestionStatusHistoryModel.from_status_id == status_id,
                    QuestionStatusHistoryModel.to_status_id == status_id,
                )
            )
            .first()
        )
        if in_history:
            raise ConflictError("Cannot delete status: it appears in question status history")

        name = status.name
        self.db.query(QuestionStatusTransitionModel).filter(
            or_(
                QuestionStatusTransitionModel.from_status_id == status_id,
                QuestionStatusTransitionModel.to_status_id == status_id,
            )
        ).delete(synchronize_session=False)
        self.db.delete(status)
        self.activity.record(
            actor,
            "QUESTION_STATUS_DELETED",
            entity_type="question_status",
            entity_id=status_id,
            details={"name": name},
        )
        self.db.commit()

    # --- Transitions ---

    def list_transitions(self) -> List[QuestionStatusTransitionModel]:
        return (
            self.db.query(QuestionStatusTransitionModel)
            .order_by(
                QuestionStatusTransitionModel.role_id,
                QuestionStatusTransitionModel.from_status_id,
                QuestionStatusTransitionModel.to_status_id,
            )
            .all()
        )

    def _role_ids(self, current_user: CurrentUser) -> List[int]:
        if not current_user.roles:
            return []
        rows = (
            self.db.query(RoleModel.role_id)
            .filter(RoleModel.role_name.in_(current_user.roles))
            .all()
        )
        return [role_id for (role_id,) in rows]

    def get_valid_transitions(
        self, from_status_id: int, current_user: CurrentUser
    ) -> List[QuestionStatusTransitionModel]:
        """Active transitions out of a status for any of the caller's roles.

        When several roles allow the same target, only the first row is kept.
        """
        self.get_status(from_status_id)
        role_ids = self._role_ids(current_user)
        if not role_ids:
            return []
        rows = (
            self.db.query(QuestionStatusTransitionModel)
            .join(
                QuestionStatusModel,
                QuestionStatusModel.status_id == QuestionStatusTransitionModel.to_status_id,
            )
            .filter(
                QuestionStatusTransitionModel.from_status_id == from_status_id,
                QuestionStatusTransitionModel.role_id.in_(role_ids),
                QuestionStatusTransitionModel.is_active.is_(True),
                QuestionStatusModel.is_active.is_(True),
            )
            .order_by(QuestionStatusTransitionModel.to_status_id, QuestionStatusTransitionModel.role_id)
            .all()
        )
        seen = set()
        unique = []
        for row in rows:
            if row.to_status_id not in seen:
                seen.add(row.to_status_id)
                unique.append(row)
        return unique

    def is_transition_allowed(
        self, from_status_id: int, to_status_id: int, current_user: CurrentUser
    ) -> bool:
        role_ids = self._role_ids(current_user)
        if not role_ids:
            return False
        match = (
            self.db.query(QuestionStatusTransitionModel.transition_id)
            .join(
                QuestionStatusModel,
                QuestionStatusModel.status_id == QuestionStatusTransitionModel.to_status_id,
            )
            .filter(
                QuestionStatusTransitionModel.from_status_id == from_status_id,
                QuestionStatusTransitionModel.to_status_id == to_status_id,
                QuestionStatusTransitionModel.role_id.in_(role_ids),
                QuestionStatusTransitionModel.is_active.is_(True),
                QuestionStatusModel.is_active.is_(True),
            )
            .first()
        )
        return match is not None

    def create_transition(
        self,
        from_status_id: int,
        to_status_id: int,
        role_id: int,
        actor: Optional[ActorContext] = None,
    ) -> QuestionStatusTransitionModel:
        """Allow a (from, to, role) transition.

        Raises:
            NotFoundError: If a status or the role does not exist.
            ValidationError: If from and to are the same status.
            ConflictError: If the triple already exists.
        """
        self.get_status(from_status_id)
        self.get_status(to_status_id)
        if self.db.query(RoleModel.role_id).filter(RoleModel.role_id == role_id).first() is None:
            raise NotFoundError("Role", role_id)
        if from_status_id == to_status_id:
            raise ValidationError("A transition must change the status")
        existing = (
            self.db.query(QuestionStatusTransitionModel)
            .filter(
                QuestionStatusTransitionModel.from_status_id == from_status_id,
                QuestionStatusTransitionModel.to_status_id == to_status_id,
                QuestionStatusTransitionModel.role_id == role_id,
            )
            .first()
        )
        if existing is not None:
            raise ConflictError("This transition already exists")

        transition = QuestionStatusTransitionModel(
            from_status_id=from_status_id, to_status_id=to_status_id, role_id=role_id
        )
        self.db.add(transition)
        self.db.flush()
        self.activity.record(
            actor,
            "QUESTION_STATUS_TRANSITION_CREATED",
            entity_type="question_status_transition",
            entity_id=transition.transition_id,
            details={"from": from_status_id, "to": to_status_id, "role_id": role_id},
        )
        self.db.commit()
        self.db.refresh(transition)
        return transition

    def delete_transition(self, transition_id: int, actor: Optional[ActorContext] = None) -> None:
        transition = (
            self.db.query(QuestionStatusTransitionModel)
            .filter(QuestionStatusTransitionModel.transition_id == transition_id)
            .first()
        )
        if transition is None:
            raise NotFoundError("Transition", transition_id)
        self.db.delete(transition)
        self.activity.record(
            actor,
            "QUESTION_STATUS_TRANSITION_DELETED",
            entity_type="question_status_transition",
            entity_id=transition_id,
        )
        self.db.commit()

    # --- Status changes ---

    def update_question_status(
        self,
        question_id: int,
        to_status_id: int,
        current_user: CurrentUser,
        comments: Optional[str] = None,
        actor: Optional[ActorContext] = None,
    ) -> Tuple[QuestionModel, QuestionStatusHistoryModel]:
        """Move a question to another status if a transition allows it.

        Returns:
            Tuple of (updated question, new history row).

        Raises:
            NotFoundError: If the question or target status does not exist.
            ForbiddenError: If no active transition allows the move for the caller's roles.
        """
        question = self.questions.get_question(question_id)
        target = self.get_status(to_status_id)
        from_status_id = question.status_id

        if not self.is_transition_allowed(from_status_id, to_status_id, current_user):
            logger.info(
                "Rejected status change of question %s: %s -> %s by user %s",
                question_id,
                from_status_id,
                to_status_id,
                current_user.user_id,
            )
            raise ForbiddenError(
                f"Transition from '{question.status.name}' to '{target.name}' is not allowed"
            )

        question.status_id = to_status_id
        question.updated_by = current_user.user_id
        history = QuestionStatusHistoryModel(
            question_id=question_id,
            from_status_id=from_status_id,
            to_status_id=to_status_id,
            changed_by=current_user.user_id,
            comments=comments,
        )
        self.db.add(history)
        self.db.flush()
        self.activity.record(
            actor,
            "QUESTION_STATUS_CHANGED",
            entity_type="question",
            entity_id=question_id,
            details={"from_status_id": from_status_id, "to_status_id": to_status_id},
        )
        self.db.commit()
        self.db.refresh(question)
        self.db.refresh(history)
        logger.info(
            "Question %s moved %s -> %s by user %s",
            question_id,
            from_status_id,
            to_status_id,
            current_user.user_id,
        )
        return question, history

    def status_history(
        self, question_id: int, page: int = 1, limit: int = 10
    ) -> Tuple[List[QuestionStatusHistoryModel], int]:
        self.questions.get_question(question_id)
        query = self.db.query(QuestionStatusHistoryModel).filter(
            QuestionStatusHistoryModel.question_id == question_id
        )
        total = query.count()
        rows = (
            query.order_by(
                QuestionStatusHistoryModel.created_at.desc(),
                QuestionStatusHistoryModel.history_id.desc(),
            )
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return rows, total
