"""
Realtime Notifier
=================

WebSocket connection registry, rooms and client event handlers.

Version: 0.1.0
"""

from services.marketplace.realtime.manager import (
    Connection,
    ConnectionManager,
    task_room,
    user_room,
)
from services.marketplace.realtime.notifications import NotificationService
from services.marketplace.realtime.handlers import (
    EVENT_HANDLERS,
    EventContext,
    dispatch,
    handle_connect,
    handle_disconnect,
)


__all__ = [
    "Connection",
    "ConnectionManager",
    "task_room",
    "user_room",
    "NotificationService",
    "EVENT_HANDLERS",
    "EventContext",
    "dispatch",
    "handle_connect",
    "handle_disconnect",
]
