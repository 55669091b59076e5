from sqlalchemy import Column, ForeignKey, Integer, Text, String
from sqlalchemy.orm import relationship

from .base import Base, now_iso


class CommentModel(Base):
    __tablename__ = "comments"

    comment_id = Column(Integer, primary_key=True, index=True)
    question_id = Column(
        Integer, ForeignKey("questions.question_id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), index=True, nullable=True)
    comment_text = Column(Text, nullable=False)
    upvote_count = Column(Integer, nullable=False, default=0)
    downvote_count = Column(Integer, nullable=False, default=0)
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)

    user = relationship("UserModel", lazy="joined")
