"""Persistence helpers for notification entities."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import false, func, true
from sqlalchemy.orm import Query, Session

from clinic_api.domain.entities import Notification, NotificationType
from clinic_api.infrastructure.models import NotificationModel
from clinic_api.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


class NotificationRepository:
    """Provide owner scoped CRUD operations for :class:`Notification` objects.

    Every query is filtered by tenant and recipient; a notification is never
    visible to or mutable by another user.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def _owned(self, *, tenant_id: str, user_id: str) -> Query:
        return self.session.query(NotificationModel).filter(
            NotificationModel.tenant_id == tenant_id,
            NotificationModel.user_id == user_id,
        )

    def list_for_user(
        self,
        *,
        tenant_id: str,
        user_id: str,
        is_read: bool | None = None,
        notification_type: NotificationType | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[Sequence[Notification], int]:
        """Return one page of notifications, newest first, and the total count."""

        query = self._owned(tenant_id=tenant_id, user_id=user_id)
        if is_read is not None:
            query = query.filter(NotificationModel.is_read == (true() if is_read else false()))
        if notification_type is not None:
            query = query.filter(NotificationModel.type == notification_type.value)

        total = query.order_by(None).count()
        models = (
            query.order_by(
                NotificationModel.created_at.desc(), NotificationModel.id.desc()
            )
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [self._to_entity(model) for model in models], total

    def count_unread(self, *, tenant_id: str, user_id: str) -> int:
        return (
            self.session.query(func.count(NotificationModel.id))
            .filter(
                NotificationModel.tenant_id == tenant_id,
                NotificationModel.user_id == user_id,
                NotificationModel.is_read == false(),
            )
            .scalar()
        ) or 0

    def get_for_user(
        self, notification_id: str, *, tenant_id: str, user_id: str
    ) -> Notification | None:
        model = (
            self._owned(tenant_id=tenant_id, user_id=user_id)
            .filter(NotificationModel.id == notification_id)
            .first()
        )
        return self._to_entity(model) if model is not None else None

    def create(self, notification: Notification) -> Notification:
        model = NotificationModel()
        model.tenant_id = notification.tenant_id
        model.user_id = notification.user_id
        model.type = notification.type.value
        model.title = notification.title
        model.message = notification.message
        model.entity_type = notification.entity_type
        model.entity_id = notification.entity_id
        model.metadata_ = notification.metadata or {}
        model.is_read = notification.is_read
        model.read_at = ensure_app_naive_datetime(notification.read_at)
        model.created_at = ensure_app_naive_datetime(
            notification.created_at or now_in_app_timezone()
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def mark_as_read(
        self, notification_id: str, *, tenant_id: str, user_id: str
    ) -> int:
        """Mark one owned notification as read and return the affected row count."""

        updated = (
            self._owned(tenant_id=tenant_id, user_id=user_id)
            .filter(NotificationModel.id == notification_id)
            .update(
                {
                    NotificationModel.is_read: True,
                    NotificationModel.read_at: ensure_app_naive_datetime(
                        now_in_app_timezone()
                    ),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    def mark_all_as_read(self, *, tenant_id: str, user_id: str) -> int:
        """Mark every unread notification of the owner as read."""

        updated = (
            self._owned(tenant_id=tenant_id, user_id=user_id)
            .filter(NotificationModel.is_read == false())
            .update(
                {
                    NotificationModel.is_read: True,
                    NotificationModel.read_at: ensure_app_naive_datetime(
                        now_in_app_timezone()
                    ),
                },
                synchronize_session=False,
            )
        )
        self.session.commit()
        return updated

    def delete(self, notification_id: str, *, tenant_id: str, user_id: str) -> bool:
        deleted = (
            self._owned(tenant_id=tenant_id, user_id=user_id)
            .filter(NotificationModel.id == notification_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return bool(deleted)

    @staticmethod
    def _to_entity(model: NotificationModel) -> Notification:
        return Notification(
            id=model.id,
            tenant_id=model.tenant_id,
            user_id=model.user_id,
            type=NotificationType(model.type),
            title=model.title,
            message=model.message,
            entity_type=model.entity_type,
            entity_id=model.entity_id,
            metadata=model.metadata_ or {},
            is_read=bool(model.is_read),
            read_at=ensure_app_timezone(model.read_at),
            created_at=ensure_app_timezone(model.created_at),
        )


__all__ = ["NotificationRepository"]
