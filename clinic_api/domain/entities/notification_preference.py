"""Per-user notification preferences and the type-to-category table."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable

from .notification import NotificationType


class PreferenceCategory(str, Enum):
    """User facing switches grouping one or more notification types."""

    APPOINTMENT_CREATED = "appointment_created"
    APPOINTMENT_CANCELLED = "appointment_cancelled"
    APPOINTMENT_RESCHEDULED = "appointment_rescheduled"
    TASK_ASSIGNED = "task_assigned"
    TASK_COMPLETED = "task_completed"
    LEAD_STAGE_CHANGED = "lead_stage_changed"
    INVOICE_PAID = "invoice_paid"
    INVOICE_OVERDUE = "invoice_overdue"
    MESSAGE_RECEIVED = "message_received"
    SYSTEM_NOTIFICATIONS = "system_notifications"


NOTIFICATION_TYPE_TO_CATEGORY: dict[NotificationType, PreferenceCategory] = {
    NotificationType.APPOINTMENT_CREATED: PreferenceCategory.APPOINTMENT_CREATED,
    NotificationType.APPOINTMENT_CANCELLED: PreferenceCategory.APPOINTMENT_CANCELLED,
    NotificationType.APPOINTMENT_RESCHEDULED: PreferenceCategory.APPOINTMENT_RESCHEDULED,
    NotificationType.PATIENT_ASSIGNED: PreferenceCategory.APPOINTMENT_CREATED,
    NotificationType.TASK_ASSIGNED: PreferenceCategory.TASK_ASSIGNED,
    NotificationType.TASK_COMPLETED: PreferenceCategory.TASK_COMPLETED,
    NotificationType.LEAD_STAGE_CHANGED: PreferenceCategory.LEAD_STAGE_CHANGED,
    NotificationType.INVOICE_PAID: PreferenceCategory.INVOICE_PAID,
    NotificationType.INVOICE_OVERDUE: PreferenceCategory.INVOICE_OVERDUE,
    NotificationType.MESSAGE_RECEIVED: PreferenceCategory.MESSAGE_RECEIVED,
    NotificationType.SYSTEM: PreferenceCategory.SYSTEM_NOTIFICATIONS,
    # Inventory
    NotificationType.LOW_STOCK_ALERT: PreferenceCategory.SYSTEM_NOTIFICATIONS,
    NotificationType.STOCK_EXPIRED: PreferenceCategory.SYSTEM_NOTIFICATIONS,
    NotificationType.PURCHASE_ORDER_APPROVED: PreferenceCategory.SYSTEM_NOTIFICATIONS,
    NotificationType.PURCHASE_ORDER_RECEIVED: PreferenceCategory.SYSTEM_NOTIFICATIONS,
    # Scheduling
    NotificationType.TIME_OFF_REQUESTED: PreferenceCategory.SYSTEM_NOTIFICATIONS,
    NotificationType.TIME_OFF_APPROVED: PreferenceCategory.SYSTEM_NOTIFICATIONS,
    NotificationType.TIME_OFF_REJECTED: PreferenceCategory.SYSTEM_NOTIFICATIONS,
    NotificationType.SCHEDULE_CHANGED: PreferenceCategory.SYSTEM_NOTIFICATIONS,
}


@dataclass
class NotificationPreference:
    """One row per user; every flag defaults to ``True``."""

    id: str | None
    tenant_id: str
    user_id: str
    appointment_created: bool = True
    appointment_cancelled: bool = True
    appointment_rescheduled: bool = True
    task_assigned: bool = True
    task_completed: bool = True
    lead_stage_changed: bool = True
    invoice_paid: bool = True
    invoice_overdue: bool = True
    message_received: bool = True
    system_notifications: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def allows(self, category: PreferenceCategory) -> bool:
        """Return the flag stored for ``category``."""

        return _CATEGORY_FLAGS[category](self)


_CATEGORY_FLAGS: dict[PreferenceCategory, Callable[[NotificationPreference], bool]] = {
    PreferenceCategory.APPOINTMENT_CREATED: lambda p: p.appointment_created,
    PreferenceCategory.APPOINTMENT_CANCELLED: lambda p: p.appointment_cancelled,
    PreferenceCategory.APPOINTMENT_RESCHEDULED: lambda p: p.appointment_rescheduled,
    PreferenceCategory.TASK_ASSIGNED: lambda p: p.task_assigned,
    PreferenceCategory.TASK_COMPLETED: lambda p: p.task_completed,
    PreferenceCategory.LEAD_STAGE_CHANGED: lambda p: p.lead_stage_changed,
    PreferenceCategory.INVOICE_PAID: lambda p: p.invoice_paid,
    PreferenceCategory.INVOICE_OVERDUE: lambda p: p.invoice_overdue,
    PreferenceCategory.MESSAGE_RECEIVED: lambda p: p.message_received,
    PreferenceCategory.SYSTEM_NOTIFICATIONS: lambda p: p.system_notifications,
}


def preference_category_for(notification_type: NotificationType) -> PreferenceCategory | None:
    """Return the preference category gating ``notification_type``."""

    return NOTIFICATION_TYPE_TO_CATEGORY.get(notification_type)


__all__ = [
    "NOTIFICATION_TYPE_TO_CATEGORY",
    "NotificationPreference",
    "PreferenceCategory",
    "preference_category_for",
]
