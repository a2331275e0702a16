"""
Notification Service
====================

Persists notifications and relays them to the recipient's sockets.

Version: 0.1.0
"""

import json
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from shared.logging import get_logger
from services.marketplace.models import NotificationModel, NotificationType
from services.marketplace.models.base import isoformat, utcnow
from services.marketplace.realtime.manager import ConnectionManager, user_room


logger = get_logger(__name__)


class NotificationService:
    """Creates notification rows and emits ``notification:received``."""

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    async def notify(
        self,
        db: AsyncSession,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        details: dict[str, Any] | None = None,
        *,
        relay: dict[str, Any] | None = None,
    ) -> NotificationModel:
        """
        Store a notification for ``user_id`` and push it if they are connected.

        Args:
            db: Database session
            user_id: Recipient
            type: Notification kind
            title: Short headline
            message: Human-readable body
            details: Metadata stored with the row
            relay: Extra fields for the pushed frame (defaults to ``details``)

        Returns:
            The committed notification row
        """
        notification = NotificationModel(
            type=type,
            title=title,
            message=message,
            user_id=user_id,
            metadata_string=json.dumps(details) if details else None,
        )
        db.add(notification)
        await db.commit()

        frame = {
            "type": type.value,
            "title": title,
            "message": message,
            **(relay if relay is not None else details or {}),
            "createdAt": isoformat(notification.created_at or utcnow()),
        }
        delivered = await self.manager.emit_to_room(user_room(user_id), "notification:received", frame)

        logger.info(
            "notification_created",
            user_id=user_id,
            notification_type=type.value,
            delivered=delivered,
        )
        return notification
