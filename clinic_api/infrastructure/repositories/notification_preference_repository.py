"""Persistence helpers for notification preferences."""

from __future__ import annotations

from sqlalchemy.orm import Session

from clinic_api.domain.entities import NotificationPreference, PreferenceCategory
from clinic_api.infrastructure.models import NotificationPreferenceModel
from clinic_api.utils import ensure_app_timezone


class NotificationPreferenceRepository:
    """Read and upsert the single preference row owned by a user."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_user(self, user_id: str) -> NotificationPreference | None:
        model = self._get_model(user_id)
        return self._to_entity(model) if model is not None else None

    def create_default(self, *, tenant_id: str, user_id: str) -> NotificationPreference:
        model = NotificationPreferenceModel(tenant_id=tenant_id, user_id=user_id)
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def upsert(
        self,
        *,
        tenant_id: str,
        user_id: str,
        changes: dict[PreferenceCategory, bool],
    ) -> NotificationPreference:
        """Apply ``changes`` to the user's row, creating it when missing."""

        model = self._get_model(user_id)
        if model is None:
            model = NotificationPreferenceModel(tenant_id=tenant_id, user_id=user_id)
            self.session.add(model)
        for category, enabled in changes.items():
            _apply_flag(model, category, bool(enabled))
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def _get_model(self, user_id: str) -> NotificationPreferenceModel | None:
        return (
            self.session.query(NotificationPreferenceModel)
            .filter(NotificationPreferenceModel.user_id == user_id)
            .first()
        )

    @staticmethod
    def _to_entity(model: NotificationPreferenceModel) -> NotificationPreference:
        return NotificationPreference(
            id=model.id,
            tenant_id=model.tenant_id,
            user_id=model.user_id,
            appointment_created=model.appointment_created,
            appointment_cancelled=model.appointment_cancelled,
            appointment_rescheduled=model.appointment_rescheduled,
            task_assigned=model.task_assigned,
            task_completed=model.task_completed,
            lead_stage_changed=model.lead_stage_changed,
            invoice_paid=model.invoice_paid,
            invoice_overdue=model.invoice_overdue,
            message_received=model.message_received,
            system_notifications=model.system_notifications,
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


def _apply_flag(
    model: NotificationPreferenceModel, category: PreferenceCategory, enabled: bool
) -> None:
    if category is PreferenceCategory.APPOINTMENT_CREATED:
        model.appointment_created = enabled
    elif category is PreferenceCategory.APPOINTMENT_CANCELLED:
        model.appointment_cancelled = enabled
    elif category is PreferenceCategory.APPOINTMENT_RESCHEDULED:
        model.appointment_rescheduled = enabled
    elif category is PreferenceCategory.TASK_ASSIGNED:
        model.task_assigned = enabled
    elif category is PreferenceCategory.TASK_COMPLETED:
        model.task_completed = enabled
    elif category is PreferenceCategory.LEAD_STAGE_CHANGED:
        model.lead_stage_changed = enabled
    elif category is PreferenceCategory.INVOICE_PAID:
        model.invoice_paid = enabled
    elif category is PreferenceCategory.INVOICE_OVERDUE:
        model.invoice_overdue = enabled
    elif category is PreferenceCategory.MESSAGE_RECEIVED:
        model.message_received = enabled
    elif category is PreferenceCategory.SYSTEM_NOTIFICATIONS:
        model.system_notifications = enabled


__all__ = ["NotificationPreferenceRepository"]
