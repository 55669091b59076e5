"""Activity log database model.

Append-only trail of user actions, written in the same transaction as the
change it describes.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from .base import Base, now_iso


class ActivityLogModel(Base):
    __tablename__ = "activity_logs"

    log_id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), index=True, nullable=True)
    user_action = Column(String, index=True, nullable=False)  # e.g. "USER_CREATED"
    entity_type = Column(String, index=True, nullable=True)  # e.g. "user"
    entity_id = Column(String, nullable=True)  # string for flexibility
    activity_details = Column(Text, nullable=True)
    user_ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    created_at = Column(String, nullable=False, default=now_iso, index=True)

    user = relationship("UserModel", lazy="joined")
