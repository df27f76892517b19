"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from clinic_api.domain.entities import NotificationType


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class NotificationRead(CamelModel):
    """Representation of a notification delivered to the client."""

    id: str
    tenant_id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    entity_type: str | None = None
    entity_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime


class PaginationMeta(CamelModel):
    total: int = Field(..., description="Number of notifications matching the filters")
    page: int
    limit: int
    total_pages: int


class NotificationListRead(CamelModel):
    data: list[NotificationRead]
    meta: PaginationMeta


class UnreadCountRead(CamelModel):
    unread_count: int


class MarkAllReadResponse(CamelModel):
    count: int = Field(..., description="Notifications changed by this call")


class NotificationPreferenceRead(CamelModel):
    user_id: str
    appointment_created: bool
    appointment_cancelled: bool
    appointment_rescheduled: bool
    task_assigned: bool
    task_completed: bool
    lead_stage_changed: bool
    invoice_paid: bool
    invoice_overdue: bool
    message_received: bool
    system_notifications: bool


class NotificationPreferenceUpdate(CamelModel):
    """Partial preference update; omitted flags keep their current value."""

    appointment_created: bool | None = None
    appointment_cancelled: bool | None = None
    appointment_rescheduled: bool | None = None
    task_assigned: bool | None = None
    task_completed: bool | None = None
    lead_stage_changed: bool | None = None
    invoice_paid: bool | None = None
    invoice_overdue: bool | None = None
    message_received: bool | None = None
    system_notifications: bool | None = None


__all__ = [
    "CamelModel",
    "MarkAllReadResponse",
    "NotificationListRead",
    "NotificationPreferenceRead",
    "NotificationPreferenceUpdate",
    "NotificationRead",
    "PaginationMeta",
    "UnreadCountRead",
]
