"""Websocket gateway that delivers notification events to connected users."""

from __future__ import annotations

import logging
from typing import Any, Callable

import anyio
from fastapi import WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_api.domain.entities import Principal
from clinic_api.infrastructure.repositories import NotificationRepository
from clinic_api.infrastructure.security import decode_principal

from .manager import NotificationConnectionManager, tenant_room, user_room
from .relay import RedisNotificationRelay, RelayMessage, RelayMessageType

logger = logging.getLogger(__name__)

EVENT_NEW = "notification:new"
EVENT_COUNT = "notification:count"
EVENT_READ = "notification:read"
EVENT_MARK_READ = "notification:markRead"
EVENT_MARK_ALL_READ = "notification:markAllRead"
EVENT_PING = "ping"

_RELAY_EVENTS = {
    RelayMessageType.NEW_NOTIFICATION: EVENT_NEW,
    RelayMessageType.COUNT_UPDATE: EVENT_COUNT,
    RelayMessageType.MARK_READ: EVENT_READ,
}


class ClientMessage(BaseModel):
    """Frame sent by a websocket client."""

    type: str = Field(..., min_length=1)
    data: dict[str, Any] | None = None
    id: str | int | None = None


class MarkReadData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    notification_id: str = Field(..., alias="notificationId", min_length=1)


def extract_token(websocket: WebSocket) -> str | None:
    """Return the bearer token from the query, header or cookie, in that order."""

    token = websocket.query_params.get("token")
    if token:
        return token

    authorization = websocket.headers.get("authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()

    return websocket.cookies.get("access_token") or None


def _ack(event: str | None, message_id: str | int | None, error: str | None = None) -> dict[str, Any]:
    data: dict[str, Any] = {"success": error is None}
    if error is not None:
        data["error"] = error
    return {"type": "ack", "event": event, "id": message_id, "data": data}


class NotificationGateway:
    """Accept authenticated websockets and bridge them with the relay.

    Outbound events are never emitted straight to a socket from a write path.
    Writes publish through the relay and every instance, this one included,
    re-emits the envelope to the sockets it holds.
    """

    def __init__(
        self,
        manager: NotificationConnectionManager,
        relay: RedisNotificationRelay,
        session_factory: Callable[[], Session],
    ) -> None:
        self.manager = manager
        self.relay = relay
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------
    def authenticate(self, websocket: WebSocket) -> Principal | None:
        token = extract_token(websocket)
        if not token:
            logger.warning("Rejecting notification websocket without credentials")
            return None
        try:
            return decode_principal(token)
        except ValueError as exc:
            logger.warning("Rejecting notification websocket: %s", exc)
            return None

    async def serve(self, websocket: WebSocket) -> None:
        """Run one websocket session from handshake to disconnect."""

        principal = self.authenticate(websocket)
        if principal is None:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await websocket.accept()
        connection_id = self.manager.connect(
            websocket, user_id=principal.user_id, tenant_id=principal.tenant_id
        )
        logger.info(
            "Notification websocket %s connected for user %s (tenant %s)",
            connection_id,
            principal.user_id,
            principal.tenant_id,
        )
        try:
            unread = await anyio.to_thread.run_sync(self._count_unread, principal)
            await websocket.send_json({"type": EVENT_COUNT, "data": {"unreadCount": unread}})
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(frame.get("code", status.WS_1000_NORMAL_CLOSURE))
                raw = frame.get("text")
                if raw is None:
                    raw = frame.get("bytes") or b""
                reply = await self.handle_client_message(principal, raw)
                await websocket.send_json(reply)
        except WebSocketDisconnect:
            pass
        finally:
            self.manager.disconnect(websocket)
            logger.info(
                "Notification websocket %s disconnected for user %s",
                connection_id,
                principal.user_id,
            )

    # ------------------------------------------------------------------
    # Client to server messages
    # ------------------------------------------------------------------
    async def handle_client_message(
        self, principal: Principal, raw: str | bytes
    ) -> dict[str, Any]:
        """Process one client frame and return the reply to send back."""

        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError:
                return _ack(None, None, "Invalid message")
        try:
            message = ClientMessage.model_validate_json(raw)
        except ValidationError:
            return _ack(None, None, "Invalid message")

        if message.type == EVENT_PING:
            return {"type": "pong", "id": message.id}
        if message.type == EVENT_MARK_READ:
            try:
                payload = MarkReadData.model_validate(message.data or {})
            except ValidationError:
                return _ack(message.type, message.id, "notificationId is required")
            error = await self.mark_read(principal, payload.notification_id)
            return _ack(message.type, message.id, error)
        if message.type == EVENT_MARK_ALL_READ:
            error = await self.mark_all_read(principal)
            return _ack(message.type, message.id, error)
        return _ack(message.type, message.id, f"Unsupported event '{message.type}'")

    async def mark_read(self, principal: Principal, notification_id: str) -> str | None:
        """Mark one notification as read; return an error message on failure."""

        try:
            updated, unread = await anyio.to_thread.run_sync(
                self._mark_read, principal, notification_id
            )
        except SQLAlchemyError:
            logger.exception("Failed to mark notification %s as read", notification_id)
            return "Failed to mark notification as read"
        if not updated:
            return "Notification not found"

        try:
            await self.relay.publish_mark_read(
                principal.tenant_id, principal.user_id, notification_id
            )
            await self.relay.publish_count_update(
                principal.tenant_id, principal.user_id, unread
            )
        except (RedisError, OSError):
            logger.exception("Failed to publish read state for user %s", principal.user_id)
        return None

    async def mark_all_read(self, principal: Principal) -> str | None:
        try:
            await anyio.to_thread.run_sync(self._mark_all_read, principal)
        except SQLAlchemyError:
            logger.exception("Failed to mark notifications as read for %s", principal.user_id)
            return "Failed to mark notifications as read"

        try:
            await self.relay.publish_count_update(principal.tenant_id, principal.user_id, 0)
        except (RedisError, OSError):
            logger.exception("Failed to publish unread count for user %s", principal.user_id)
        return None

    # ------------------------------------------------------------------
    # Server to client delivery
    # ------------------------------------------------------------------
    async def handle_relay_message(self, message: RelayMessage) -> None:
        """Re-emit a relay envelope to the local sockets of its user."""

        event = _RELAY_EVENTS[message.type]
        await self.manager.emit_to_room(
            user_room(message.user_id), {"type": event, "data": message.data}
        )

    async def send_to_user(
        self,
        tenant_id: str,
        user_id: str,
        notification: dict[str, Any],
        unread_count: int,
    ) -> None:
        """Publish a new notification and the fresh unread count for a user."""

        await self.relay.publish_new_notification(tenant_id, user_id, notification)
        await self.relay.publish_count_update(tenant_id, user_id, unread_count)

    async def publish_count(self, tenant_id: str, user_id: str, unread_count: int) -> None:
        await self.relay.publish_count_update(tenant_id, user_id, unread_count)

    async def send_to_tenant(self, tenant_id: str, event: str, data: Any) -> int:
        """Emit ``event`` to every local socket of ``tenant_id``."""

        return await self.manager.emit_to_room(tenant_room(tenant_id), {"type": event, "data": data})

    def is_user_connected(self, user_id: str) -> bool:
        return self.manager.is_user_connected(user_id)

    def user_connection_count(self, user_id: str) -> int:
        return self.manager.user_connection_count(user_id)

    # ------------------------------------------------------------------
    # Blocking persistence helpers, run in worker threads
    # ------------------------------------------------------------------
    def _count_unread(self, principal: Principal) -> int:
        with self._session_factory() as session:
            return NotificationRepository(session).count_unread(
                tenant_id=principal.tenant_id, user_id=principal.user_id
            )

    def _mark_read(self, principal: Principal, notification_id: str) -> tuple[int, int]:
        with self._session_factory() as session:
            repository = NotificationRepository(session)
            updated = repository.mark_as_read(
                notification_id, tenant_id=principal.tenant_id, user_id=principal.user_id
            )
            unread = repository.count_unread(
                tenant_id=principal.tenant_id, user_id=principal.user_id
            )
        return updated, unread

    def _mark_all_read(self, principal: Principal) -> int:
        with self._session_factory() as session:
            return NotificationRepository(session).mark_all_as_read(
                tenant_id=principal.tenant_id, user_id=principal.user_id
            )


__all__ = [
    "ClientMessage",
    "EVENT_COUNT",
    "EVENT_MARK_ALL_READ",
    "EVENT_MARK_READ",
    "EVENT_NEW",
    "EVENT_READ",
    "MarkReadData",
    "NotificationGateway",
    "extract_token",
]
