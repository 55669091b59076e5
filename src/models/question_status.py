"""Question status, allowed transition and status history models."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, now_iso


class QuestionStatusModel(Base):
    __tablename__ = "question_statuses"

    status_id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)  # e.g. "pending_review"
    display_name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)


class QuestionStatusTransitionModel(Base):
    """Allowed (from_status, to_status, role) triple."""

    __tablename__ = "question_status_transitions"
    __table_args__ = (
        UniqueConstraint("from_status_id", "to_status_id", "role_id", name="uq_status_transition"),
    )

    transition_id = Column(Integer, primary_key=True, index=True)
    from_status_id = Column(
        Integer, ForeignKey("question_statuses.status_id", ondelete="CASCADE"), index=True, nullable=False
    )
    to_status_id = Column(
        Integer, ForeignKey("question_statuses.status_id", ondelete="CASCADE"), nullable=False
    )
    role_id = Column(Integer, ForeignKey("roles.role_id", ondelete="CASCADE"), index=True, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False, default=now_iso)

    from_status = relationship("QuestionStatusModel", foreign_keys=[from_status_id], lazy="joined")
    to_status = relationship("QuestionStatusModel", foreign_keys=[to_status_id], lazy="joined")
    role = relationship("RoleModel", lazy="joined")


class QuestionStatusHistoryModel(Base):
    __tablename__ = "question_status_history"

    history_id = Column(Integer, primary_key=True, index=True)
    question_id = Column(
        Integer, ForeignKey("questions.question_id", ondelete="CASCADE"), index=True, nullable=False
    )
    from_status_id = Column(Integer, ForeignKey("question_statuses.status_id"), nullable=True)
    to_status_id = Column(Integer, ForeignKey("question_statuses.status_id"), nullable=False)
    changed_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    comments = Column(String, nullable=True)
    created_at = Column(String, nullable=False, default=now_iso, index=True)

    from_status = relationship("QuestionStatusModel", foreign_keys=[from_status_id], lazy="joined")
    to_status = relationship("QuestionStatusModel", foreign_keys=[to_status_id], lazy="joined")
    user = relationship("UserModel", lazy="joined")
