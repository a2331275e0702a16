"""
Connection Manager
==================

Tracks authenticated WebSocket connections and the rooms they joined.

Rooms:
- ``user:<id>``: every socket of one user, joined on connect
- ``task:<id>``: participants of a task conversation

Delivery is best-effort and at most once: frames go only to sockets that
are connected at the time of the emit, and a socket that fails a send is
dropped.

Version: 0.1.0
"""

import uuid
from dataclasses import dataclass, field
from typing import Any

from fastapi import WebSocket

from shared.logging import get_logger


logger = get_logger(__name__)


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def task_room(task_id: str) -> str:
    return f"task:{task_id}"


@dataclass(eq=False)
class Connection:
    """One authenticated socket."""

    websocket: WebSocket
    user_id: str
    role: str
    first_name: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    rooms: set[str] = field(default_factory=set)


class ConnectionManager:
    """Room membership and fan-out for realtime events."""

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}
        self._rooms: dict[str, set[str]] = {}

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def register(self, connection: Connection) -> None:
        """Track an accepted socket and put it in its user room."""
        self._connections[connection.id] = connection
        self.join(connection, user_room(connection.user_id))
        logger.info("socket_registered", user_id=connection.user_id, connection_id=connection.id)

    def unregister(self, connection: Connection) -> None:
        """Forget a socket and its room memberships."""
        for room in list(connection.rooms):
            self.leave(connection, room)
        self._connections.pop(connection.id, None)
        logger.info("socket_unregistered", user_id=connection.user_id, connection_id=connection.id)

    def join(self, connection: Connection, room: str) -> None:
        self._rooms.setdefault(room, set()).add(connection.id)
        connection.rooms.add(room)

    def leave(self, connection: Connection, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(connection.id)
            if not members:
                del self._rooms[room]
        connection.rooms.discard(room)

    def room_members(self, room: str) -> list[Connection]:
        return [self._connections[cid] for cid in self._rooms.get(room, ()) if cid in self._connections]

    def is_online(self, user_id: str) -> bool:
        return bool(self._rooms.get(user_room(user_id)))

    async def send(self, connection: Connection, event: str, data: dict[str, Any]) -> bool:
        """Send one frame. A socket that fails is dropped."""
        try:
            await connection.websocket.send_json({"event": event, "data": data})
            return True
        except Exception as e:
            logger.debug(
                "socket_send_failed",
                connection_id=connection.id,
                socket_event=event,
                error_type=type(e).__name__,
            )
            self.unregister(connection)
            return False

    async def emit_to_room(
        self,
        room: str,
        event: str,
        data: dict[str, Any],
        exclude: Connection | None = None,
    ) -> int:
        """
        Send a frame to every socket in ``room``.

        Returns:
            Number of sockets the frame reached
        """
        delivered = 0
        for connection in self.room_members(room):
            if connection is exclude:
                continue
            if await self.send(connection, event, data):
                delivered += 1
        return delivered

    async def broadcast(
        self,
        event: str,
        data: dict[str, Any],
        exclude: Connection | None = None,
    ) -> int:
        """Send a frame to every connected socket except ``exclude``."""
        delivered = 0
        for connection in list(self._connections.values()):
            if connection is exclude:
                continue
            if await self.send(connection, event, data):
                delivered += 1
        return delivered
