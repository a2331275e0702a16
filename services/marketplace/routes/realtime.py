"""
Realtime Routes
===============

The ``/ws`` socket. Clients authenticate during the handshake with an
access token, either as ``?token=`` or an ``Authorization: Bearer``
header; a failed handshake is closed with code 4401.

Frames in both directions are JSON objects ``{"event": str, "data": {...}}``.

Version: 0.1.0
"""

import json

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from shared.auth import extract_bearer_token
from shared.database.postgres import postgres_session
from shared.logging import get_logger
from services.marketplace.dependencies import connection_manager_for, resolve_identity
from services.marketplace.errors import AuthenticationError
from services.marketplace.realtime.handlers import (
    EventContext,
    dispatch,
    handle_connect,
    handle_disconnect,
)
from services.marketplace.realtime.manager import Connection, ConnectionManager


logger = get_logger(__name__)

router = APIRouter()

WS_CLOSE_UNAUTHORIZED = 4401


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    token: str | None = Query(default=None),
) -> None:
    """Authenticated event socket for messages, presence and notifications."""
    token = token or extract_bearer_token(websocket.headers.get("authorization"))

    try:
        async with postgres_session() as db:
            identity = await resolve_identity(db, token)
    except AuthenticationError as e:
        logger.info("socket_rejected", reason=e.message)
        await websocket.close(code=WS_CLOSE_UNAUTHORIZED, reason=e.message)
        return

    await websocket.accept()

    manager = connection_manager_for(websocket.app)
    connection = Connection(
        websocket=websocket,
        user_id=identity.id,
        role=identity.role.value,
        first_name=identity.first_name,
    )
    await serve_connection(manager, connection)


async def serve_connection(manager: ConnectionManager, connection: Connection) -> None:
    """Run the frame loop for an accepted socket; always unregisters it."""
    websocket = connection.websocket
    try:
        async with postgres_session() as db:
            await handle_connect(manager, connection, db)

        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except ValueError:
                await manager.send(connection, "error", {"message": "Invalid JSON"})
                continue
            if not isinstance(frame, dict):
                await manager.send(connection, "error", {"message": "Invalid frame"})
                continue

            async with postgres_session() as db:
                ctx = EventContext(manager=manager, connection=connection, db=db)
                await dispatch(ctx, frame.get("event"), frame.get("data"))
    except WebSocketDisconnect:
        pass
    finally:
        async with postgres_session() as db:
            await handle_disconnect(manager, connection, db)
