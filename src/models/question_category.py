"""Question categories (a tree) and free-form question tags."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship

from .base import Base, now_iso

question_tag_links = Table(
    "question_tag_links",
    Base.metadata,
    Column(
        "question_id",
        Integer,
        ForeignKey("questions.question_id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column(
        "tag_id",
        Integer,
        ForeignKey("question_tags.tag_id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    ),
)


class QuestionCategoryModel(Base):
    __tablename__ = "question_categories"

    category_id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    parent_id = Column(
        Integer,
        ForeignKey("question_categories.category_id", ondelete="SET NULL"),
        index=True,
        nullable=True,
    )
    # Deleting a category only deactivates it
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)

    parent = relationship("QuestionCategoryModel", remote_side=[category_id])


class QuestionTagModel(Base):
    __tablename__ = "question_tags"

    tag_id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(String, nullable=False, default=now_iso)
