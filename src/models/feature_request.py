from sqlalchemy import Column, ForeignKey, Integer, String, Text

from .base import Base, now_iso


class FeatureRequestModel(Base):
    __tablename__ = "feature_requests"

    feature_request_id = Column(Integer, primary_key=True, index=True)
    main_function = Column(String, nullable=False)
    sub_function = Column(String, nullable=True)
    feature_name = Column(String, nullable=False)
    feature_description = Column(Text, nullable=False)
    benefits = Column(Text, nullable=True)
    priority = Column(String, nullable=False)  # 'low', 'medium' or 'high'
    status = Column(String, nullable=False, default="pending")
    denial_reason = Column(Text, nullable=True)
    requested_by_user_id = Column(
        Integer, ForeignKey("users.user_id", ondelete="SET NULL"), index=True, nullable=True
    )
    created_at = Column(String, nullable=False, default=now_iso)
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)
