"""Connection management helpers for notification websockets."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, DefaultDict, Set
from uuid import uuid4

from fastapi import WebSocket

logger = logging.getLogger(__name__)


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def tenant_room(tenant_id: str) -> str:
    return f"tenant:{tenant_id}"


class NotificationConnectionManager:
    """Track the websockets held by this process, grouped in rooms.

    The registry only describes local connections. It is rebuilt from scratch
    on restart and never shared with other instances.
    """

    def __init__(self) -> None:
        self._rooms: DefaultDict[str, Set[WebSocket]] = defaultdict(set)
        self._user_connections: DefaultDict[str, Set[str]] = defaultdict(set)
        self._connection_ids: dict[WebSocket, str] = {}
        self._memberships: dict[WebSocket, tuple[str, str]] = {}

    def connect(self, websocket: WebSocket, *, user_id: str, tenant_id: str) -> str:
        """Join ``websocket`` to the user and tenant rooms and return its id."""

        connection_id = uuid4().hex
        self._connection_ids[websocket] = connection_id
        self._memberships[websocket] = (user_id, tenant_id)
        self._rooms[user_room(user_id)].add(websocket)
        self._rooms[tenant_room(tenant_id)].add(websocket)
        self._user_connections[user_id].add(connection_id)
        return connection_id

    def disconnect(self, websocket: WebSocket) -> None:
        """Forget ``websocket``; drop the user entry with its last connection."""

        connection_id = self._connection_ids.pop(websocket, None)
        membership = self._memberships.pop(websocket, None)
        if connection_id is None or membership is None:
            return
        user_id, tenant_id = membership
        for room in (user_room(user_id), tenant_room(tenant_id)):
            members = self._rooms.get(room)
            if members is None:
                continue
            members.discard(websocket)
            if not members:
                self._rooms.pop(room, None)

        connections = self._user_connections.get(user_id)
        if connections is not None:
            connections.discard(connection_id)
            if not connections:
                self._user_connections.pop(user_id, None)

    async def emit_to_room(self, room: str, message: dict[str, Any]) -> int:
        """Send ``message`` to every local socket in ``room``.

        Returns the number of sockets that received it. Sockets that fail are
        logged and removed from the registry.
        """

        delivered = 0
        for websocket in list(self._rooms.get(room, set())):
            try:
                await websocket.send_json(message)
            except Exception:
                logger.warning(
                    "Dropping websocket %s in room %s after a failed send",
                    self._connection_ids.get(websocket),
                    room,
                    exc_info=True,
                )
                self.disconnect(websocket)
            else:
                delivered += 1
        return delivered

    def is_user_connected(self, user_id: str) -> bool:
        return bool(self._user_connections.get(user_id))

    def user_connection_count(self, user_id: str) -> int:
        return len(self._user_connections.get(user_id, ()))

    def connection_count(self) -> int:
        return len(self._connection_ids)


__all__ = ["NotificationConnectionManager", "tenant_room", "user_room"]
