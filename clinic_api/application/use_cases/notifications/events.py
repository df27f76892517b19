"""In-process event bus and the handlers that turn domain events into notifications."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, DefaultDict

from clinic_api.domain.entities import (
    AppointmentCancelledEvent,
    AppointmentCreatedEvent,
    AppointmentRescheduledEvent,
    InvoiceOverdueEvent,
    InvoicePaidEvent,
    LeadStageChangedEvent,
    MessageReceivedEvent,
    Notification,
    NotificationDraft,
    NotificationEvent,
    NotificationEventPayload,
    NotificationType,
    SystemNotificationEvent,
    TaskAssignedEvent,
    TaskCompletedEvent,
)

from .service import NotificationService

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Any]


class NotificationEventBus:
    """Explicit registry mapping event names to their handlers.

    ``emit`` runs handlers synchronously in registration order. Exceptions
    raised by a handler propagate to the emitting module.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[NotificationEvent, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event: NotificationEvent, handler: EventHandler) -> None:
        self._handlers[event].append(handler)

    def unsubscribe(self, event: NotificationEvent, handler: EventHandler) -> None:
        handlers = self._handlers.get(event)
        if handlers and handler in handlers:
            handlers.remove(handler)

    def handlers_for(self, event: NotificationEvent) -> list[EventHandler]:
        return list(self._handlers.get(event, ()))

    def emit(self, event: NotificationEvent, payload: NotificationEventPayload) -> list[Any]:
        """Invoke every handler of ``event`` and return their results."""

        handlers = self.handlers_for(event)
        if not handlers:
            logger.debug("No handlers registered for %s", event.value)
        return [handler(payload) for handler in handlers]


def _json_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def _metadata(**values: Any) -> dict[str, Any]:
    return {key: _json_value(value) for key, value in values.items()}


class NotificationEventHandlers:
    """One handler per domain event.

    Each recipient is evaluated on its own: the preference gate runs per user
    and a notification row is created for every user that passes it.
    """

    def __init__(self, service: NotificationService) -> None:
        self.service = service

    def _notify_recipients(
        self,
        payload: NotificationEventPayload,
        notification_type: NotificationType,
        *,
        title: str,
        message: str,
        entity_type: str | None,
        entity_id: str | None,
        metadata: dict[str, Any],
    ) -> list[Notification]:
        created: list[Notification] = []
        for user_id in payload.recipient_user_ids:
            if not self.service.should_notify_user(user_id, notification_type):
                logger.debug(
                    "User %s opted out of %s notifications", user_id, notification_type.value
                )
                continue
            created.append(
                self.service.create_notification(
                    NotificationDraft(
                        tenant_id=payload.tenant_id,
                        user_id=user_id,
                        type=notification_type,
                        title=title,
                        message=message,
                        entity_type=entity_type,
                        entity_id=entity_id,
                        metadata={**payload.metadata, **metadata},
                    )
                )
            )
        return created

    def handle_appointment_created(self, payload: AppointmentCreatedEvent) -> list[Notification]:
        logger.debug("Handling appointment created event %s", payload.appointment_id)
        return self._notify_recipients(
            payload,
            NotificationType.APPOINTMENT_CREATED,
            title="New Appointment",
            message=(
                f"New appointment scheduled for {payload.patient_name} "
                f"with Dr. {payload.doctor_name}"
            ),
            entity_type="appointment",
            entity_id=payload.appointment_id,
            metadata=_metadata(
                patientName=payload.patient_name,
                doctorName=payload.doctor_name,
                scheduledAt=payload.scheduled_at,
                serviceName=payload.service_name,
            ),
        )

    def handle_appointment_cancelled(
        self, payload: AppointmentCancelledEvent
    ) -> list[Notification]:
        logger.debug("Handling appointment cancelled event %s", payload.appointment_id)
        reason = f": {payload.cancel_reason}" if payload.cancel_reason else ""
        return self._notify_recipients(
            payload,
            NotificationType.APPOINTMENT_CANCELLED,
            title="Appointment Cancelled",
            message=f"Appointment for {payload.patient_name} has been cancelled{reason}",
            entity_type="appointment",
            entity_id=payload.appointment_id,
            metadata=_metadata(
                patientName=payload.patient_name,
                cancelReason=payload.cancel_reason,
            ),
        )

    def handle_appointment_rescheduled(
        self, payload: AppointmentRescheduledEvent
    ) -> list[Notification]:
        logger.debug("Handling appointment rescheduled event %s", payload.appointment_id)
        return self._notify_recipients(
            payload,
            NotificationType.APPOINTMENT_RESCHEDULED,
            title="Appointment Rescheduled",
            message=f"Appointment for {payload.patient_name} has been rescheduled",
            entity_type="appointment",
            entity_id=payload.new_appointment_id,
            metadata=_metadata(
                patientName=payload.patient_name,
                oldScheduledAt=payload.old_scheduled_at,
                newScheduledAt=payload.new_scheduled_at,
                reason=payload.reason,
            ),
        )

    def handle_task_assigned(self, payload: TaskAssignedEvent) -> list[Notification]:
        return self._notify_recipients(
            payload,
            NotificationType.TASK_ASSIGNED,
            title="Task Assigned",
            message=f"{payload.assigned_by_name} assigned you a task: {payload.task_title}",
            entity_type="task",
            entity_id=payload.task_id,
            metadata=_metadata(
                taskTitle=payload.task_title,
                assignedByName=payload.assigned_by_name,
                dueDate=payload.due_date,
            ),
        )

    def handle_task_completed(self, payload: TaskCompletedEvent) -> list[Notification]:
        return self._notify_recipients(
            payload,
            NotificationType.TASK_COMPLETED,
            title="Task Completed",
            message=f"{payload.completed_by_name} completed task: {payload.task_title}",
            entity_type="task",
            entity_id=payload.task_id,
            metadata=_metadata(
                taskTitle=payload.task_title,
                completedByName=payload.completed_by_name,
            ),
        )

    def handle_lead_stage_changed(self, payload: LeadStageChangedEvent) -> list[Notification]:
        return self._notify_recipients(
            payload,
            NotificationType.LEAD_STAGE_CHANGED,
            title="Lead Stage Updated",
            message=(
                f"{payload.lead_name} moved from {payload.previous_stage} "
                f"to {payload.new_stage}"
            ),
            entity_type="lead",
            entity_id=payload.lead_id,
            metadata=_metadata(
                leadName=payload.lead_name,
                previousStage=payload.previous_stage,
                newStage=payload.new_stage,
                changedByName=payload.changed_by_name,
            ),
        )

    def handle_invoice_paid(self, payload: InvoicePaidEvent) -> list[Notification]:
        return self._notify_recipients(
            payload,
            NotificationType.INVOICE_PAID,
            title="Invoice Paid",
            message=(
                f"Invoice {payload.invoice_number} for {payload.patient_name} has been paid"
            ),
            entity_type="invoice",
            entity_id=payload.invoice_id,
            metadata=_metadata(
                invoiceNumber=payload.invoice_number,
                patientName=payload.patient_name,
                amount=payload.amount,
            ),
        )

    def handle_invoice_overdue(self, payload: InvoiceOverdueEvent) -> list[Notification]:
        return self._notify_recipients(
            payload,
            NotificationType.INVOICE_OVERDUE,
            title="Invoice Overdue",
            message=f"Invoice {payload.invoice_number} for {payload.patient_name} is overdue",
            entity_type="invoice",
            entity_id=payload.invoice_id,
            metadata=_metadata(
                invoiceNumber=payload.invoice_number,
                patientName=payload.patient_name,
                amount=payload.amount,
                dueDate=payload.due_date,
            ),
        )

    def handle_message_received(self, payload: MessageReceivedEvent) -> list[Notification]:
        return self._notify_recipients(
            payload,
            NotificationType.MESSAGE_RECEIVED,
            title="New Message",
            message=f"{payload.sender_name}: {payload.message_preview}",
            entity_type="conversation",
            entity_id=payload.conversation_id,
            metadata=_metadata(
                senderName=payload.sender_name,
                channel=payload.channel,
            ),
        )

    def handle_system(self, payload: SystemNotificationEvent) -> list[Notification]:
        return self._notify_recipients(
            payload,
            NotificationType.SYSTEM,
            title=payload.title,
            message=payload.message,
            entity_type=payload.entity_type,
            entity_id=payload.entity_id,
            metadata={},
        )


def register_notification_handlers(
    bus: NotificationEventBus, service: NotificationService
) -> NotificationEventHandlers:
    """Subscribe one handler per notification event on ``bus``."""

    handlers = NotificationEventHandlers(service)
    bus.subscribe(NotificationEvent.APPOINTMENT_CREATED, handlers.handle_appointment_created)
    bus.subscribe(NotificationEvent.APPOINTMENT_CANCELLED, handlers.handle_appointment_cancelled)
    bus.subscribe(
        NotificationEvent.APPOINTMENT_RESCHEDULED, handlers.handle_appointment_rescheduled
    )
    bus.subscribe(NotificationEvent.TASK_ASSIGNED, handlers.handle_task_assigned)
    bus.subscribe(NotificationEvent.TASK_COMPLETED, handlers.handle_task_completed)
    bus.subscribe(NotificationEvent.LEAD_STAGE_CHANGED, handlers.handle_lead_stage_changed)
    bus.subscribe(NotificationEvent.INVOICE_PAID, handlers.handle_invoice_paid)
    bus.subscribe(NotificationEvent.INVOICE_OVERDUE, handlers.handle_invoice_overdue)
    bus.subscribe(NotificationEvent.MESSAGE_RECEIVED, handlers.handle_message_received)
    bus.subscribe(NotificationEvent.SYSTEM, handlers.handle_system)
    return handlers


__all__ = [
    "EventHandler",
    "NotificationEventBus",
    "NotificationEventHandlers",
    "register_notification_handlers",
]
