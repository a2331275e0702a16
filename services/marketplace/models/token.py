"""
Session Token Database Models
=============================

Persisted refresh tokens and password reset tokens.

Rows past ``expires_at`` are inert: lookups delete them, and the
scheduled cleanup sweep removes the rest.

Version: 0.1.0
"""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from shared.database.postgres import Base
from services.marketplace.models.base import as_utc, new_id, utcnow


class _ExpiringToken:
    """Expiry check shared by both token tables."""

    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return as_utc(self.expires_at) < (now or utcnow())


class RefreshTokenModel(_ExpiringToken, Base):
    """A refresh token issued with a token pair. One row per session."""

    __tablename__ = "refresh_tokens"

    id = Column(String(36), primary_key=True, default=new_id)
    token = Column(Text, nullable=False, unique=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    user = relationship("UserModel", back_populates="refresh_tokens", lazy="joined")

    def __repr__(self) -> str:
        return f"<RefreshToken {self.id} user={self.user_id}>"


class PasswordResetTokenModel(_ExpiringToken, Base):
    """A single-use password reset capability."""

    __tablename__ = "password_reset_tokens"

    id = Column(String(36), primary_key=True, default=new_id)
    token = Column(String(64), nullable=False, unique=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    user = relationship("UserModel", back_populates="password_reset_tokens", lazy="joined")

    def __repr__(self) -> str:
        return f"<PasswordResetToken {self.id} user={self.user_id}>"
