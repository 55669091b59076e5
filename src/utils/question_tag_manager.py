"""Question tag utilities."""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.exceptions import ConflictError, NotFoundError
from models.question_category import QuestionTagModel, question_tag_links
from utils.activity_logger import ActivityLogger, ActorContext

logger = logging.getLogger(__name__)


class QuestionTagManager:
    """Manages the shared pool of question tags."""

    def __init__(self, db: Session):
        self.db = db
        self.activity = ActivityLogger(db)

    def list_tags(self) -> List[Tuple[QuestionTagModel, int]]:
        """Every tag with the number of questions carrying it, by name."""
        usage = func.count(question_tag_links.c.question_id)
        return (
            self.db.query(QuestionTagModel, usage)
            .outerjoin(question_tag_links, question_tag_links.c.tag_id == QuestionTagModel.tag_id)
            .group_by(QuestionTagModel.tag_id)
            .order_by(QuestionTagModel.name)
            .all()
        )

    def create_tag(self, name: str, actor: Optional[ActorContext] = None) -> QuestionTagModel:
        """Create a tag; names are stored lowercased.

        Raises:
            ConflictError: If the tag already exists.
        """
        name = name.strip().lower()
        if self.db.query(QuestionTagModel.tag_id).filter(QuestionTagModel.name == name).first():
            raise ConflictError(f"Tag '{name}' already exists")
        tag = QuestionTagModel(name=name, created_by=actor.user_id if actor else None)
        self.db.add(tag)
        self.db.flush()
        self.activity.record(
            actor,
            "TAG_CREATED",
            entity_type="question_tag",
            entity_id=tag.tag_id,
            details={"name": name},
        )
        self.db.commit()
        self.db.refresh(tag)
        return tag

    def delete_tag(self, tag_id: int, actor: Optional[ActorContext] = None) -> None:
        """Delete a tag and detach it from every question.

        Raises:
            NotFoundError: If the tag does not exist.
        """
        tag = self.db.query(QuestionTagModel).filter(QuestionTagModel.tag_id == tag_id).first()
        if tag is None:
            raise NotFoundError("Tag", tag_id)
        name = tag.name
        self.db.execute(question_tag_links.delete().where(question_tag_links.c.tag_id == tag_id))
        self.db.delete(tag)
        self.activity.record(
            actor,
            "TAG_DELETED",
            entity_type="question_tag",
            entity_id=tag_id,
            details={"name": name},
        )
        self.db.commit()
        logger.info("Tag %s deleted: %s", tag_id, name)
