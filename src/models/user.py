"""User database model.

This module defines the User database model using SQLAlchemy.
"""

from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from .base import Base, now_iso


class UserModel(Base):
    """User database model."""

    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, index=True)
    user_email = Column(String, unique=True, index=True, nullable=False)
    mobile_number = Column(String, unique=True, index=True, nullable=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(String, nullable=False, default=now_iso)  # ISO format string
    updated_at = Column(String, nullable=False, default=now_iso, onupdate=now_iso)

    # Read side only; links are written through RoleUserLinkModel
    roles = relationship(
        "RoleModel",
        secondary="role_user_link",
        viewonly=True,
        lazy="selectin",
        order_by="RoleModel.role_name",
    )
