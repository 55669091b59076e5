"""Refresh token database model.

Only the token id (jti) is stored, so a leaked database does not leak tokens.
"""

from sqlalchemy import Column, ForeignKey, Integer, String

from .base import Base, now_iso


class RefreshTokenModel(Base):
    """Issued refresh token, revocable by jti."""

    __tablename__ = "refresh_tokens"

    jti = Column(String, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), index=True, nullable=False)
    created_at = Column(String, nullable=False, default=now_iso)
    expires_at = Column(String, nullable=False)  # ISO format string
    revoked_at = Column(String, nullable=True)
