"""Vote utilities.

Casting a vote toggles: a new vote is added, repeating the same vote removes
it, and the opposite vote flips it. The target's counters are adjusted with
SQL increment expressions.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from core.exceptions import ForbiddenError, NotFoundError, ValidationError
from models.comment import CommentModel
from models.question import QuestionModel
from models.vote import VoteModel
from utils.activity_logger import ActivityLogger, ActorContext

logger = logging.getLogger(__name__)

UPVOTE = "upvote"
DOWNVOTE = "downvote"

_TARGET_MODELS = {
    "question": (QuestionModel, QuestionModel.question_id),
    "comment": (CommentModel, CommentModel.comment_id),
}


class VoteManager:
    """Manages votes on questions and comments."""

    def __init__(self, db: Session):
        self.db = db
        self.activity = ActivityLogger(db)

    def _target_query(self, target_type: str, target_id: int):
        try:
            model, key = _TARGET_MODELS[target_type]
        except KeyError:
            raise ValidationError(f"Invalid target type: {target_type}")
        query = self.db.query(model).filter(key == target_id)
        if model is QuestionModel:
            query = query.filter(QuestionModel.is_deleted.is_(False))
        return model, query

    def _get_target(self, target_type: str, target_id: int) -> Union[QuestionModel, CommentModel]:
        model, query = self._target_query(target_type, target_id)
        target = query.first()
        if target is None:
            raise NotFoundError(target_type.capitalize(), target_id)
        return target

    def _adjust_counter(self, target_type: str, target_id: int, vote_type: str, delta: int) -> None:
        model, query = self._target_query(target_type, target_id)
        column = model.upvote_count if vote_type == UPVOTE else model.downvote_count
        query.update({column: column + delta}, synchronize_session=False)

    def summary(
        self, target_type: str, target_id: int, user_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """Vote tallies of a target plus the given user's own vote.

        Raises:
            NotFoundError: If the target does not exist.
        """
        target = self._get_target(target_type, target_id)
        self.db.refresh(target)
        user_vote = None
        if user_id is not None:
            vote = self._find_vote(target_type, target_id, user_id)
            user_vote = vote.vote_type if vote else None
        return {
            "target_type": target_type,
            "target_id": target_id,
            "upvotes": target.upvote_count,
            "downvotes": target.downvote_count,
            "score": target.upvote_count - target.downvote_count,
            "user_vote": user_vote,
        }

    def _find_vote(self, target_type: str, target_id: int, user_id: int) -> Optional[VoteModel]:
        return (
            self.db.query(VoteModel)
            .filter(
                VoteModel.target_type == target_type,
                VoteModel.target_id == target_id,
                VoteModel.user_id == user_id,
            )
            .first()
        )

    def cast_vote(
        self,
        target_type: str,
        target_id: int,
        vote_type: str,
        actor: ActorContext,
    ) -> Tuple[str, Optional[VoteModel]]:
        """Add, remove or flip the caller's vote on a target.

        Returns:
            Tuple of (action, vote); action is "added", "removed" or "updated"
            and vote is None when removed.

        Raises:
            NotFoundError: If the target does not exist.
        """
        self._get_target(target_type, target_id)
        existing = self._find_vote(target_type, target_id, actor.user_id)

        if existing is None:
            vote = VoteModel(
                target_type=target_type,
                target_id=target_id,
                user_id=actor.user_id,
                vote_type=vote_type,
            )
            self.db.add(vote)
            self._adjust_counter(target_type, target_id, vote_type, +1)
            action = "added"
        elif existing.vote_type == vote_type:
            self.db.delete(existing)
            self._adjust_counter(target_type, target_id, vote_type, -1)
            vote = None
            action = "removed"
        else:
            self._adjust_counter(target_type, target_id, existing.vote_type, -1)
            self._adjust_counter(target_type, target_id, vote_type, +1)
            existing.vote_type = vote_type
            vote = existing
            action = "updated"

        self.db.flush()
        self.activity.record(
            actor,
            f"VOTE_{action.upper()}",
            entity_type=target_type,
            entity_id=target_id,
            details={"vote_type": vote_type},
        )
        self.db.commit()
        if vote is not None:
            self.db.refresh(vote)
        logger.debug("Vote %s on %s %s by user %s", action, target_type, target_id, actor.user_id)
        return action, vote

    def delete_vote(self, vote_id: int, actor: ActorContext) -> None:
        """Delete one of the caller's votes.

        Raises:
            NotFoundError: If the vote does not exist.
            ForbiddenError: If the vote belongs to someone else.
        """
        vote = self.db.query(VoteModel).filter(VoteModel.vote_id == vote_id).first()
        if vote is None:
            raise NotFoundError("Vote", vote_id)
        if vote.user_id != actor.user_id:
            raise ForbiddenError("You can only delete your own votes")

        self._adjust_counter(vote.target_type, vote.target_id, vote.vote_type, -1)
        self.db.delete(vote)
        self.activity.record(
            actor,
            "VOTE_DELETED",
            entity_type=vote.target_type,
            entity_id=vote.target_id,
            details={"vote_id": vote_id},
        )
        self.db.commit()

    def withdraw_user_votes(self, user_id: int) -> int:
        """Remove every vote cast by a user and reverse its counters (no commit).

        Returns:
            Number of votes removed.
        """
        votes = self.db.query(VoteModel).filter(VoteModel.user_id == user_id).all()
        for vote in votes:
            model, key = _TARGET_MODELS[vote.target_type]
            column = model.upvote_count if vote.vote_type == UPVOTE else model.downvote_count
            # Soft-deleted questions keep their counters in step too
            self.db.query(model).filter(key == vote.target_id).update(
                {column: column - 1}, synchronize_session=False
            )
            self.db.delete(vote)
        return len(votes)

    def user_votes(
        self, user_id: int, target_type: Optional[str] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[VoteModel], int]:
        query = self.db.query(VoteModel).filter(VoteModel.user_id == user_id)
        if target_type:
            query = query.filter(VoteModel.target_type == target_type)
        total = query.count()
        votes = (
            query.order_by(VoteModel.created_at.desc(), VoteModel.vote_id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return votes, total

    def target_votes(
        self, target_type: str, target_id: int, page: int = 1, limit: int = 10
    ) -> Tuple[List[VoteModel], int]:
        self._get_target(target_type, target_id)
        query = self.db.query(VoteModel).filter(
            VoteModel.target_type == target_type, VoteModel.target_id == target_id
        )
        total = query.count()
        votes = (
            query.order_by(VoteModel.created_at.desc(), VoteModel.vote_id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return votes, total
