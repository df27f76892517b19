"""Status vocabularies of the clinic records read by the analytics reports."""

from __future__ import annotations

from enum import Enum


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    ARRIVED = "ARRIVED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class InvoiceStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"


class PipelineStage(str, Enum):
    """Lead funnel stages, declared in funnel order."""

    INQUIRY = "INQUIRY"
    QUALIFIED = "QUALIFIED"
    BOOKED = "BOOKED"
    ARRIVED = "ARRIVED"
    FOLLOW_UP = "FOLLOW_UP"
    RE_ENGAGE = "RE_ENGAGE"
    CONVERTED = "CONVERTED"
    LOST = "LOST"


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


REVENUE_INVOICE_STATUSES: tuple[InvoiceStatus, ...] = (
    InvoiceStatus.PAID,
    InvoiceStatus.PARTIAL,
)


__all__ = [
    "AppointmentStatus",
    "Gender",
    "InvoiceStatus",
    "PipelineStage",
    "REVENUE_INVOICE_STATUSES",
]
