"""Domain events that may produce notifications.

Emitting modules decide who the recipients are and list them explicitly in
``recipient_user_ids``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any


class NotificationEvent(str, Enum):
    """Names under which domain events are published on the event bus."""

    APPOINTMENT_CREATED = "notification.appointment.created"
    APPOINTMENT_CANCELLED = "notification.appointment.cancelled"
    APPOINTMENT_RESCHEDULED = "notification.appointment.rescheduled"
    TASK_ASSIGNED = "notification.task.assigned"
    TASK_COMPLETED = "notification.task.completed"
    LEAD_STAGE_CHANGED = "notification.lead.stage_changed"
    INVOICE_PAID = "notification.invoice.paid"
    INVOICE_OVERDUE = "notification.invoice.overdue"
    MESSAGE_RECEIVED = "notification.message.received"
    SYSTEM = "notification.system"


@dataclass(kw_only=True)
class NotificationEventPayload:
    """Fields shared by every notification producing event."""

    tenant_id: str
    recipient_user_ids: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(kw_only=True)
class AppointmentCreatedEvent(NotificationEventPayload):
    appointment_id: str
    patient_name: str
    doctor_id: str
    doctor_name: str
    scheduled_at: datetime
    service_name: str


@dataclass(kw_only=True)
class AppointmentCancelledEvent(NotificationEventPayload):
    appointment_id: str
    patient_name: str
    doctor_id: str
    cancel_reason: str | None = None


@dataclass(kw_only=True)
class AppointmentRescheduledEvent(NotificationEventPayload):
    appointment_id: str
    new_appointment_id: str
    patient_name: str
    doctor_id: str
    old_scheduled_at: datetime
    new_scheduled_at: datetime
    reason: str | None = None


@dataclass(kw_only=True)
class TaskAssignedEvent(NotificationEventPayload):
    task_id: str
    task_title: str
    assigned_by_id: str
    assigned_by_name: str
    due_date: datetime | None = None


@dataclass(kw_only=True)
class TaskCompletedEvent(NotificationEventPayload):
    task_id: str
    task_title: str
    completed_by_id: str
    completed_by_name: str


@dataclass(kw_only=True)
class LeadStageChangedEvent(NotificationEventPayload):
    lead_id: str
    lead_name: str
    previous_stage: str
    new_stage: str
    changed_by_id: str
    changed_by_name: str


@dataclass(kw_only=True)
class InvoicePaidEvent(NotificationEventPayload):
    invoice_id: str
    invoice_number: str
    patient_name: str
    amount: Decimal | float


@dataclass(kw_only=True)
class InvoiceOverdueEvent(NotificationEventPayload):
    invoice_id: str
    invoice_number: str
    patient_name: str
    amount: Decimal | float
    due_date: datetime


@dataclass(kw_only=True)
class MessageReceivedEvent(NotificationEventPayload):
    conversation_id: str
    sender_name: str
    message_preview: str
    channel: str


@dataclass(kw_only=True)
class SystemNotificationEvent(NotificationEventPayload):
    title: str
    message: str
    entity_type: str | None = None
    entity_id: str | None = None


__all__ = [
    "AppointmentCancelledEvent",
    "AppointmentCreatedEvent",
    "AppointmentRescheduledEvent",
    "InvoiceOverdueEvent",
    "InvoicePaidEvent",
    "LeadStageChangedEvent",
    "MessageReceivedEvent",
    "NotificationEvent",
    "NotificationEventPayload",
    "SystemNotificationEvent",
    "TaskAssignedEvent",
    "TaskCompletedEvent",
]
