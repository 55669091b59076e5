"""Question bank models: questions, answer options and version snapshots."""

from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, now_iso


class QuestionModel(Base):
    __tablename__ = "questions"

    question_id = Column(Integer, primary_key=True, index=True)
    question_text = Column(Text, nullable=False)
    question_type = Column(String, nullable=False)  # see schemas.question.QuestionType
    difficulty_level = Column(String, nullable=False)
    explanation = Column(Text, nullable=True)
    status_id = Column(Integer, ForeignKey("question_statuses.status_id"), index=True, nullable=False)
    category_id = Column(
        Integer,
        ForeignKey("question_categories.category_id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    created_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), index=True, nullable=True)
    updated_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    # Denormalized vote tallies, adjusted with SQL increments
    upvote_count = Column(Integer, nullable=False, default=0)
    downvote_count = Column(Integer, nullable=False, default=0)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)

    status = relationship("QuestionStatusModel", lazy="joined")
    category = relationship("QuestionCategoryModel", lazy="joined")
    tags = relationship(
        "QuestionTagModel",
        secondary="question_tag_links",
        order_by="QuestionTagModel.name",
        lazy="selectin",
    )
    options = relationship(
        "QuestionOptionModel",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuestionOptionModel.option_order",
        lazy="selectin",
    )
    versions = relationship(
        "QuestionVersionModel",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="QuestionVersionModel.version_number",
    )


class QuestionOptionModel(Base):
    __tablename__ = "question_options"

    option_id = Column(Integer, primary_key=True, index=True)
    question_id = Column(
        Integer, ForeignKey("questions.question_id", ondelete="CASCADE"), index=True, nullable=False
    )
    option_text = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    option_order = Column(Integer, nullable=False)

    question = relationship("QuestionModel", back_populates="options")


class QuestionVersionModel(Base):
    """Snapshot of a question taken before each update."""

    __tablename__ = "question_versions"
    __table_args__ = (
        UniqueConstraint("question_id", "version_number", name="uq_question_version"),
    )

    version_id = Column(Integer, primary_key=True, index=True)
    question_id = Column(
        Integer, ForeignKey("questions.question_id", ondelete="CASCADE"), index=True, nullable=False
    )
    version_number = Column(Integer, nullable=False)
    snapshot = Column(JSON, nullable=False)
    change_summary = Column(String, nullable=True)
    created_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(String, nullable=False, default=now_iso)

    question = relationship("QuestionModel", back_populates="versions")
