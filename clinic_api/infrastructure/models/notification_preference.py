"""SQLAlchemy model for per-user notification preferences."""

from sqlalchemy import Boolean, Column, DateTime, String
from sqlalchemy.sql import expression

from clinic_api.infrastructure.database import Base, generate_id
from clinic_api.utils import now_in_app_naive_datetime


def _flag() -> Column:
    return Column(Boolean, nullable=False, default=True, server_default=expression.true())


class NotificationPreferenceModel(Base):
    """One row per user holding the notification category switches."""

    __tablename__ = "notification_preference"

    id = Column(String(36), primary_key=True, default=generate_id)
    tenant_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, unique=True)
    appointment_created = _flag()
    appointment_cancelled = _flag()
    appointment_rescheduled = _flag()
    task_assigned = _flag()
    task_completed = _flag()
    lead_stage_changed = _flag()
    invoice_paid = _flag()
    invoice_overdue = _flag()
    message_received = _flag()
    system_notifications = _flag()
    created_at = Column(DateTime(), nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(
        DateTime(),
        nullable=True,
        default=now_in_app_naive_datetime,
        onupdate=now_in_app_naive_datetime,
    )


__all__ = ["NotificationPreferenceModel"]
