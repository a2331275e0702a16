"""
Marketplace Database Models
===========================

SQLAlchemy ORM models for the marketplace service.

Tables:
- users, user_skills, user_languages: Accounts and profiles
- refresh_tokens, password_reset_tokens: Session artifacts
- tasks, bids, milestones: Work items read by the realtime notifier
- messages, message_attachments, notifications: Conversation and alerts

Version: 0.1.0
"""

from services.marketplace.models.user import (
    CompanySize,
    UserLanguageModel,
    UserModel,
    UserRole,
    UserSkillModel,
)
from services.marketplace.models.token import (
    PasswordResetTokenModel,
    RefreshTokenModel,
)
from services.marketplace.models.task import (
    BidModel,
    BidStatus,
    MilestoneModel,
    TaskModel,
    TaskStatus,
)
from services.marketplace.models.message import (
    MessageAttachmentModel,
    MessageModel,
    MessageType,
    NotificationModel,
    NotificationType,
)

__all__ = [
    # Users
    "CompanySize",
    "UserLanguageModel",
    "UserModel",
    "UserRole",
    "UserSkillModel",
    # Tokens
    "PasswordResetTokenModel",
    "RefreshTokenModel",
    # Tasks
    "BidModel",
    "BidStatus",
    "MilestoneModel",
    "TaskModel",
    "TaskStatus",
    # Messaging
    "MessageAttachmentModel",
    "MessageModel",
    "MessageType",
    "NotificationModel",
    "NotificationType",
]
