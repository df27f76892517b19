"""Domain entities exposed by the application."""

from .clinic import (
    REVENUE_INVOICE_STATUSES,
    AppointmentStatus,
    Gender,
    InvoiceStatus,
    PipelineStage,
)
from .notification import Notification, NotificationDraft, NotificationType
from .notification_event import (
    AppointmentCancelledEvent,
    AppointmentCreatedEvent,
    AppointmentRescheduledEvent,
    InvoiceOverdueEvent,
    InvoicePaidEvent,
    LeadStageChangedEvent,
    MessageReceivedEvent,
    NotificationEvent,
    NotificationEventPayload,
    SystemNotificationEvent,
    TaskAssignedEvent,
    TaskCompletedEvent,
)
from .notification_preference import (
    NOTIFICATION_TYPE_TO_CATEGORY,
    NotificationPreference,
    PreferenceCategory,
    preference_category_for,
)
from .principal import PRIVILEGED_ROLES, Principal, Role

__all__ = [
    "AppointmentCancelledEvent",
    "AppointmentCreatedEvent",
    "AppointmentRescheduledEvent",
    "AppointmentStatus",
    "Gender",
    "InvoiceOverdueEvent",
    "InvoicePaidEvent",
    "InvoiceStatus",
    "LeadStageChangedEvent",
    "MessageReceivedEvent",
    "NOTIFICATION_TYPE_TO_CATEGORY",
    "Notification",
    "NotificationDraft",
    "NotificationEvent",
    "NotificationEventPayload",
    "NotificationPreference",
    "NotificationType",
    "PRIVILEGED_ROLES",
    "PipelineStage",
    "PreferenceCategory",
    "Principal",
    "REVENUE_INVOICE_STATUSES",
    "Role",
    "SystemNotificationEvent",
    "TaskAssignedEvent",
    "TaskCompletedEvent",
    "preference_category_for",
]
