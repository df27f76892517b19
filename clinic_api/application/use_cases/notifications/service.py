"""Use cases around persisted notifications and per-user preferences."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.orm import Session

from clinic_api.domain.entities import (
    Notification,
    NotificationDraft,
    NotificationPreference,
    NotificationType,
    PreferenceCategory,
    Principal,
    preference_category_for,
)
from clinic_api.infrastructure.repositories import (
    NotificationPreferenceRepository,
    NotificationRepository,
)
from clinic_api.utils import now_in_app_timezone

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class NotificationNotFoundError(LookupError):
    """Raised when a notification does not exist or belongs to someone else."""

    def __init__(self, notification_id: str) -> None:
        super().__init__(f"Notification {notification_id} not found")
        self.notification_id = notification_id


class RealtimePublisher(Protocol):
    def dispatch(self, notification: Notification, unread_count: int) -> None: ...

    def publish_count(self, tenant_id: str, user_id: str, unread_count: int) -> None: ...


@dataclass
class NotificationPage:
    """One page of notifications plus pagination metadata."""

    items: Sequence[Notification]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


class NotificationService:
    """Decide, persist and trigger delivery of notifications.

    Persistence is authoritative. Realtime delivery goes through ``publisher``
    and its failures never undo or interrupt a write.
    """

    def __init__(self, session: Session, publisher: RealtimePublisher | None = None) -> None:
        self.session = session
        self.notifications = NotificationRepository(session)
        self.preferences = NotificationPreferenceRepository(session)
        self._publisher = publisher

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def find_all(
        self,
        principal: Principal,
        *,
        is_read: bool | None = None,
        notification_type: NotificationType | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> NotificationPage:
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        items, total = self.notifications.list_for_user(
            tenant_id=principal.tenant_id,
            user_id=principal.user_id,
            is_read=is_read,
            notification_type=notification_type,
            offset=(page - 1) * limit,
            limit=limit,
        )
        return NotificationPage(items=items, total=total, page=page, limit=limit)

    def get_unread_count(self, principal: Principal) -> int:
        return self.notifications.count_unread(
            tenant_id=principal.tenant_id, user_id=principal.user_id
        )

    # ------------------------------------------------------------------
    # Read state
    # ------------------------------------------------------------------
    def mark_as_read(self, principal: Principal, notification_id: str) -> Notification:
        updated = self.notifications.mark_as_read(
            notification_id, tenant_id=principal.tenant_id, user_id=principal.user_id
        )
        if not updated:
            raise NotificationNotFoundError(notification_id)
        notification = self.notifications.get_for_user(
            notification_id, tenant_id=principal.tenant_id, user_id=principal.user_id
        )
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        self._publish_count(principal, self.get_unread_count(principal))
        return notification

    def mark_all_as_read(self, principal: Principal) -> int:
        """Mark every unread notification as read and return how many changed."""

        count = self.notifications.mark_all_as_read(
            tenant_id=principal.tenant_id, user_id=principal.user_id
        )
        self._publish_count(principal, 0)
        return count

    def delete(self, principal: Principal, notification_id: str) -> None:
        deleted = self.notifications.delete(
            notification_id, tenant_id=principal.tenant_id, user_id=principal.user_id
        )
        if not deleted:
            raise NotificationNotFoundError(notification_id)

    # ------------------------------------------------------------------
    # Preferences
    # ------------------------------------------------------------------
    def get_preferences(self, principal: Principal) -> NotificationPreference:
        """Return the caller's preferences, creating the default row on first use."""

        preference = self.preferences.get_by_user(principal.user_id)
        if preference is None:
            preference = self.preferences.create_default(
                tenant_id=principal.tenant_id, user_id=principal.user_id
            )
        return preference

    def update_preferences(
        self, principal: Principal, changes: Mapping[PreferenceCategory, bool]
    ) -> NotificationPreference:
        return self.preferences.upsert(
            tenant_id=principal.tenant_id,
            user_id=principal.user_id,
            changes=dict(changes),
        )

    def should_notify_user(self, user_id: str, notification_type: NotificationType) -> bool:
        """Preference gate. Users without a preference row are always notified."""

        preference = self.preferences.get_by_user(user_id)
        if preference is None:
            return True
        category = preference_category_for(notification_type)
        if category is None:
            return True
        return preference.allows(category)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------
    def create_notification(self, draft: NotificationDraft) -> Notification:
        """Persist ``draft`` and hand the stored notification to the publisher.

        Persistence errors propagate to the caller.
        """

        saved = self.notifications.create(
            Notification(
                id=None,
                tenant_id=draft.tenant_id,
                user_id=draft.user_id,
                type=draft.type,
                title=draft.title,
                message=draft.message,
                entity_type=draft.entity_type,
                entity_id=draft.entity_id,
                metadata=dict(draft.metadata),
                created_at=now_in_app_timezone(),
            )
        )
        logger.debug("Created %s notification %s for user %s", saved.type.value, saved.id, saved.user_id)

        if self._publisher is not None:
            unread = self.notifications.count_unread(
                tenant_id=saved.tenant_id, user_id=saved.user_id
            )
            try:
                self._publisher.dispatch(saved, unread)
            except Exception:
                logger.exception("Could not schedule delivery of notification %s", saved.id)
        return saved

    def _publish_count(self, principal: Principal, unread_count: int) -> None:
        if self._publisher is None:
            return
        try:
            self._publisher.publish_count(principal.tenant_id, principal.user_id, unread_count)
        except Exception:
            logger.exception("Could not schedule unread count for user %s", principal.user_id)


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "NotificationNotFoundError",
    "NotificationPage",
    "NotificationService",
    "RealtimePublisher",
]
