"""
Messaging Database Models
=========================

Task conversation messages and user notifications.

Version: 0.1.0
"""

import json
from enum import Enum
from typing import Any

from sqlalchemy import Boolean, Column, DateTime, Enum as SQLEnum, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from shared.database.postgres import Base
from services.marketplace.models.base import isoformat, new_id, utcnow


class MessageType(str, Enum):
    """Message payload kinds."""

    TEXT = "TEXT"
    FILE = "FILE"


class NotificationType(str, Enum):
    """Notification kinds raised by marketplace activity."""

    NEW_MESSAGE = "NEW_MESSAGE"
    NEW_BID = "NEW_BID"
    BID_ACCEPTED = "BID_ACCEPTED"
    PAYMENT_RELEASED = "PAYMENT_RELEASED"
    MILESTONE_COMPLETED = "MILESTONE_COMPLETED"


class MessageModel(Base):
    """A message posted in a task conversation."""

    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    content = Column(Text, nullable=False)
    type = Column(SQLEnum(MessageType), nullable=False, default=MessageType.TEXT)
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True))

    sender_id = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    sender = relationship("UserModel", lazy="joined")
    attachments = relationship(
        "MessageAttachmentModel",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def to_dict(self) -> dict[str, Any]:
        sender = self.sender
        return {
            "id": self.id,
            "content": self.content,
            "type": self.type.value,
            "attachments": [a.url for a in self.attachments],
            "sender": {
                "id": sender.id,
                "firstName": sender.first_name,
                "lastName": sender.last_name,
                "avatar": sender.avatar,
            }
            if sender
            else None,
            "taskId": self.task_id,
            "createdAt": isoformat(self.created_at),
        }


class MessageAttachmentModel(Base):
    """A file linked from a message."""

    __tablename__ = "message_attachments"

    id = Column(String(36), primary_key=True, default=new_id)
    message_id = Column(String(36), ForeignKey("messages.id", ondelete="CASCADE"), nullable=False, index=True)
    filename = Column(String(255), nullable=False)
    url = Column(String(1000), nullable=False)


class NotificationModel(Base):
    """A persisted notification for a single recipient."""

    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    type = Column(SQLEnum(NotificationType), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    metadata_string = Column(Text)  # JSON document
    read_at = Column(DateTime(timezone=True))

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def details(self) -> dict[str, Any]:
        if not self.metadata_string:
            return {}
        return json.loads(self.metadata_string)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "isRead": bool(self.is_read),
            "metadata": self.details,
            "createdAt": isoformat(self.created_at),
        }
