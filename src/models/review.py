"""Question review models: reviews, their statuses, history, comments and assignments."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import Base, now_iso


class ReviewStatusModel(Base):
    __tablename__ = "review_statuses"

    status_id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)  # e.g. "in_progress"
    display_name = Column(String, nullable=False)
    # Reaching a closing status ends the review
    is_closing = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)


class ReviewModel(Base):
    __tablename__ = "reviews"

    review_id = Column(Integer, primary_key=True, index=True)
    question_id = Column(
        Integer, ForeignKey("questions.question_id", ondelete="CASCADE"), index=True, nullable=False
    )
    status_id = Column(Integer, ForeignKey("review_statuses.status_id"), nullable=False)
    created_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), index=True, nullable=True)
    assigned_to = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), index=True, nullable=True)
    updated_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    notes = Column(Text, nullable=True)
    priority = Column(Integer, nullable=False, default=2)  # 1 low .. 3 high
    due_date = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)

    status = relationship("ReviewStatusModel", lazy="joined")
    question = relationship("QuestionModel")
    creator = relationship("UserModel", foreign_keys=[created_by])
    assignee = relationship("UserModel", foreign_keys=[assigned_to])
    history = relationship(
        "ReviewHistoryModel",
        cascade="all, delete-orphan",
        order_by="ReviewHistoryModel.history_id",
    )
    comments = relationship(
        "ReviewCommentModel",
        cascade="all, delete-orphan",
        order_by="ReviewCommentModel.comment_id",
    )
    assignments = relationship(
        "ReviewAssignmentModel",
        cascade="all, delete-orphan",
        order_by="ReviewAssignmentModel.assignment_id.desc()",
    )


class ReviewHistoryModel(Base):
    """Status changes and reassignments of a review; status_id is None for reassignments."""

    __tablename__ = "review_history"

    history_id = Column(Integer, primary_key=True, index=True)
    review_id = Column(
        Integer, ForeignKey("reviews.review_id", ondelete="CASCADE"), index=True, nullable=False
    )
    status_id = Column(Integer, ForeignKey("review_statuses.status_id"), nullable=True)
    changed_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    comments = Column(String, nullable=True)
    created_at = Column(String, nullable=False, default=now_iso)

    status = relationship("ReviewStatusModel", lazy="joined")


class ReviewCommentModel(Base):
    __tablename__ = "review_comments"

    comment_id = Column(Integer, primary_key=True, index=True)
    review_id = Column(
        Integer, ForeignKey("reviews.review_id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    comment_text = Column(Text, nullable=False)
    created_at = Column(String, nullable=False, default=now_iso)

    user = relationship("UserModel", lazy="joined")


class ReviewAssignmentModel(Base):
    __tablename__ = "review_assignments"

    assignment_id = Column(Integer, primary_key=True, index=True)
    review_id = Column(
        Integer, ForeignKey("reviews.review_id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    assigned_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    assigned_at = Column(String, nullable=False, default=now_iso)

    user = relationship("UserModel", foreign_keys=[user_id], lazy="joined")
