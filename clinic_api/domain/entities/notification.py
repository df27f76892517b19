"""Domain entity representing a user notification."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class NotificationType(str, Enum):
    """Kinds of notifications produced by the clinic domain modules."""

    APPOINTMENT_CREATED = "APPOINTMENT_CREATED"
    APPOINTMENT_CANCELLED = "APPOINTMENT_CANCELLED"
    APPOINTMENT_RESCHEDULED = "APPOINTMENT_RESCHEDULED"
    PATIENT_ASSIGNED = "PATIENT_ASSIGNED"
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_COMPLETED = "TASK_COMPLETED"
    LEAD_STAGE_CHANGED = "LEAD_STAGE_CHANGED"
    INVOICE_PAID = "INVOICE_PAID"
    INVOICE_OVERDUE = "INVOICE_OVERDUE"
    MESSAGE_RECEIVED = "MESSAGE_RECEIVED"
    SYSTEM = "SYSTEM"
    LOW_STOCK_ALERT = "LOW_STOCK_ALERT"
    STOCK_EXPIRED = "STOCK_EXPIRED"
    PURCHASE_ORDER_APPROVED = "PURCHASE_ORDER_APPROVED"
    PURCHASE_ORDER_RECEIVED = "PURCHASE_ORDER_RECEIVED"
    TIME_OFF_REQUESTED = "TIME_OFF_REQUESTED"
    TIME_OFF_APPROVED = "TIME_OFF_APPROVED"
    TIME_OFF_REJECTED = "TIME_OFF_REJECTED"
    SCHEDULE_CHANGED = "SCHEDULE_CHANGED"


@dataclass
class Notification:
    """Information message delivered to a specific user of a tenant."""

    id: str | None
    tenant_id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    entity_type: str | None = None
    entity_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    is_read: bool = False
    read_at: datetime | None = None
    created_at: datetime | None = None


@dataclass
class NotificationDraft:
    """Values required to create a notification for one recipient."""

    tenant_id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    entity_type: str | None = None
    entity_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


__all__ = ["Notification", "NotificationDraft", "NotificationType"]
