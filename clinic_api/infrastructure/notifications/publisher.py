"""Utility helpers to push notifications to websocket subscribers."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from anyio import from_thread

from clinic_api.domain.entities import Notification

if TYPE_CHECKING:
    from .gateway import NotificationGateway

logger = logging.getLogger(__name__)


class NotificationPublisher:
    """Serialize notifications and schedule their delivery.

    Delivery is best effort. Scheduling problems and gateway failures are
    logged here and never reach the code that persisted the notification.
    """

    def __init__(self, gateway: "NotificationGateway") -> None:
        self._gateway = gateway
        self._pending: set[asyncio.Task[None]] = set()

    def dispatch(self, notification: Notification, unread_count: int) -> None:
        """Schedule ``notification`` to be delivered to its user."""

        payload = serialize_notification(notification)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._dispatch_from_thread(notification, payload, unread_count)
            return

        task = loop.create_task(self._deliver(notification, payload, unread_count))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _dispatch_from_thread(
        self, notification: Notification, payload: dict[str, Any], unread_count: int
    ) -> None:
        try:
            from_thread.run(self._deliver, notification, payload, unread_count)
        except RuntimeError:
            logger.warning(
                "No event loop available to deliver notification %s to user %s",
                notification.id,
                notification.user_id,
            )

    async def _deliver(
        self, notification: Notification, payload: dict[str, Any], unread_count: int
    ) -> None:
        try:
            await self._gateway.send_to_user(
                notification.tenant_id, notification.user_id, payload, unread_count
            )
        except Exception:
            logger.exception(
                "Realtime delivery of notification %s to user %s failed",
                notification.id,
                notification.user_id,
            )

    def publish_count(self, tenant_id: str, user_id: str, unread_count: int) -> None:
        """Schedule an unread count snapshot for ``user_id``."""

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                from_thread.run(self._deliver_count, tenant_id, user_id, unread_count)
            except RuntimeError:
                logger.warning(
                    "No event loop available to publish unread count for user %s",
                    user_id,
                )
            return

        task = loop.create_task(self._deliver_count(tenant_id, user_id, unread_count))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver_count(self, tenant_id: str, user_id: str, unread_count: int) -> None:
        try:
            await self._gateway.publish_count(tenant_id, user_id, unread_count)
        except Exception:
            logger.exception("Publishing unread count for user %s failed", user_id)


def serialize_notification(notification: Notification) -> dict[str, Any]:
    """Return the websocket payload representation for ``notification``."""

    return {
        "id": notification.id,
        "tenantId": notification.tenant_id,
        "userId": notification.user_id,
        "type": notification.type.value,
        "title": notification.title,
        "message": notification.message,
        "entityType": notification.entity_type,
        "entityId": notification.entity_id,
        "metadata": notification.metadata or {},
        "isRead": notification.is_read,
        "readAt": notification.read_at.isoformat() if notification.read_at else None,
        "createdAt": notification.created_at.isoformat()
        if notification.created_at
        else None,
    }


__all__ = ["NotificationPublisher", "serialize_notification"]
