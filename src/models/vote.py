"""Vote database model.

A user holds at most one vote per target; the vote type can flip between
upvote and downvote.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint

from .base import Base, now_iso


class VoteModel(Base):
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("target_type", "target_id", "user_id", name="uq_vote_target_user"),
    )

    vote_id = Column(Integer, primary_key=True, index=True)
    target_type = Column(String, nullable=False)  # 'question' or 'comment'
    target_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False)
    vote_type = Column(String, nullable=False)  # 'upvote' or 'downvote'
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)
