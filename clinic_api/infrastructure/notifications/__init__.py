"""Realtime notification helpers for the infrastructure layer."""

from .gateway import NotificationGateway, extract_token
from .manager import NotificationConnectionManager, tenant_room, user_room
from .publisher import NotificationPublisher, serialize_notification
from .relay import RedisNotificationRelay, RelayHandler, RelayMessage, RelayMessageType

__all__ = [
    "NotificationConnectionManager",
    "NotificationGateway",
    "NotificationPublisher",
    "RedisNotificationRelay",
    "RelayHandler",
    "RelayMessage",
    "RelayMessageType",
    "extract_token",
    "serialize_notification",
    "tenant_room",
    "user_room",
]
