"""Public helpers for creating and dispatching notifications."""

from .events import (
    NotificationEventBus,
    NotificationEventHandlers,
    register_notification_handlers,
)
from .service import (
    NotificationNotFoundError,
    NotificationPage,
    NotificationService,
)

__all__ = [
    "NotificationEventBus",
    "NotificationEventHandlers",
    "NotificationNotFoundError",
    "NotificationPage",
    "NotificationService",
    "register_notification_handlers",
]
