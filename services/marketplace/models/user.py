"""
User Database Models
====================

SQLAlchemy ORM models for marketplace users and their profile side tables.

Version: 0.1.0
"""

import json
from enum import Enum
from typing import Any

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from shared.database.postgres import Base
from shared.logging import get_logger
from services.marketplace.models.base import isoformat, new_id, utcnow


logger = get_logger(__name__)


class UserRole(str, Enum):
    """Closed set of marketplace roles."""

    FREELANCER = "FREELANCER"
    CLIENT = "CLIENT"
    ADMIN = "ADMIN"


class CompanySize(str, Enum):
    """Client company size buckets."""

    MICRO = "1-10"
    SMALL = "11-50"
    MEDIUM = "51-200"
    LARGE = "201-500"
    ENTERPRISE = "500+"


class UserModel(Base):
    """
    SQLAlchemy model for marketplace users.

    Email is globally unique. Role is fixed at registration.
    """

    __tablename__ = "users"

    # Primary key
    id = Column(String(36), primary_key=True, default=new_id)

    # Credentials
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(SQLEnum(UserRole), nullable=False, default=UserRole.FREELANCER)
    is_email_verified = Column(Boolean, nullable=False, default=False)

    # Presence
    is_online = Column(Boolean, nullable=False, default=False)
    last_seen = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Profile
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    avatar = Column(String(500))
    bio = Column(Text)
    hourly_rate = Column(Float)
    location = Column(String(255))
    timezone = Column(String(64))

    # Client fields
    company_name = Column(String(100))
    company_size = Column(String(16))

    # Links
    website = Column(String(500))
    github = Column(String(500))
    linkedin = Column(String(500))
    portfolio_data = Column(Text)  # JSON document

    # Aggregate stats, maintained by reviews and payments
    average_rating = Column(Float, nullable=False, default=0.0)
    total_reviews = Column(Integer, nullable=False, default=0)
    total_earnings = Column(Float, nullable=False, default=0.0)
    total_spent = Column(Float, nullable=False, default=0.0)

    # Audit fields
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    skills = relationship(
        "UserSkillModel",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    languages = relationship(
        "UserLanguageModel",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    refresh_tokens = relationship(
        "RefreshTokenModel",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    password_reset_tokens = relationship(
        "PasswordResetTokenModel",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email} ({self.role.value if self.role else None})>"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def token_claims(self) -> dict[str, Any]:
        """Identity claims embedded in bearer tokens."""
        return {
            "userId": self.id,
            "email": self.email,
            "role": self.role.value,
        }

    def portfolio(self) -> Any:
        """Parse the stored portfolio document; None if absent or unreadable."""
        if not self.portfolio_data:
            return None
        try:
            return json.loads(self.portfolio_data)
        except json.JSONDecodeError:
            logger.warning("portfolio_data_invalid", user_id=self.id)
            return None

    def to_dict(self) -> dict[str, Any]:
        """Public representation. Never includes the password hash."""
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role.value,
            "avatar": self.avatar,
            "bio": self.bio,
            "hourlyRate": self.hourly_rate,
            "location": self.location,
            "timezone": self.timezone,
            "isEmailVerified": bool(self.is_email_verified),
            "isOnline": bool(self.is_online),
            "lastSeen": isoformat(self.last_seen),
            "companyName": self.company_name,
            "companySize": self.company_size,
            "website": self.website,
            "github": self.github,
            "linkedin": self.linkedin,
            "averageRating": self.average_rating,
            "totalReviews": self.total_reviews,
            "totalEarnings": self.total_earnings,
            "totalSpent": self.total_spent,
            "createdAt": isoformat(self.created_at),
            "updatedAt": isoformat(self.updated_at),
        }

    def to_profile(self) -> dict[str, Any]:
        """Full profile with side tables flattened to arrays."""
        profile = self.to_dict()
        profile["skills"] = [s.skill for s in self.skills]
        profile["languages"] = [lang.language for lang in self.languages]
        profile["portfolio"] = self.portfolio()
        return profile


class UserSkillModel(Base):
    """A skill listed on a user profile."""

    __tablename__ = "user_skills"
    __table_args__ = (UniqueConstraint("user_id", "skill", name="uq_user_skills_user_skill"),)

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    skill = Column(String(100), nullable=False)

    user = relationship("UserModel", back_populates="skills")


class UserLanguageModel(Base):
    """A spoken language listed on a user profile."""

    __tablename__ = "user_languages"
    __table_args__ = (UniqueConstraint("user_id", "language", name="uq_user_languages_user_language"),)

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    language = Column(String(100), nullable=False)

    user = relationship("UserModel", back_populates="languages")
