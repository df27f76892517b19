from datetime import datetime

import pytest

from clinic_api.application.use_cases.notifications import (
    NotificationNotFoundError,
    NotificationService,
)
from clinic_api.domain.entities import (
    NOTIFICATION_TYPE_TO_CATEGORY,
    NotificationDraft,
    NotificationType,
    PreferenceCategory,
    Principal,
    Role,
)


class RecordingPublisher:
    def __init__(self, *, fail: bool = False) -> None:
        self.dispatched = []
        self.counts = []
        self.fail = fail

    def dispatch(self, notification, unread_count):
        if self.fail:
            raise RuntimeError("socket layer down")
        self.dispatched.append((notification, unread_count))

    def publish_count(self, tenant_id, user_id, unread_count):
        if self.fail:
            raise RuntimeError("socket layer down")
        self.counts.append((tenant_id, user_id, unread_count))


def _principal(user_id: str = "user-1", tenant_id: str = "tenant-1") -> Principal:
    return Principal(user_id=user_id, tenant_id=tenant_id, role=Role.DOCTOR)


def _draft(user_id: str = "user-1", **overrides) -> NotificationDraft:
    values = {
        "tenant_id": "tenant-1",
        "user_id": user_id,
        "type": NotificationType.TASK_ASSIGNED,
        "title": "Task Assigned",
        "message": "Review the lab results",
        "entity_type": "task",
        "entity_id": "task-1",
        "metadata": {"taskTitle": "Review the lab results"},
    }
    values.update(overrides)
    return NotificationDraft(**values)


def test_every_notification_type_has_a_preference_category():
    assert set(NOTIFICATION_TYPE_TO_CATEGORY) == set(NotificationType)


def test_should_notify_user_without_preferences_fails_open(session):
    service = NotificationService(session)

    for notification_type in NotificationType:
        assert service.should_notify_user("nobody", notification_type) is True


def test_should_notify_user_respects_disabled_category(session):
    service = NotificationService(session)
    service.update_preferences(_principal(), {PreferenceCategory.APPOINTMENT_CREATED: False})

    assert service.should_notify_user("user-1", NotificationType.APPOINTMENT_CREATED) is False
    assert service.should_notify_user("user-1", NotificationType.PATIENT_ASSIGNED) is False
    assert service.should_notify_user("user-1", NotificationType.APPOINTMENT_CANCELLED) is True


def test_inventory_types_follow_system_switch(session):
    service = NotificationService(session)
    service.update_preferences(_principal(), {PreferenceCategory.SYSTEM_NOTIFICATIONS: False})

    assert service.should_notify_user("user-1", NotificationType.LOW_STOCK_ALERT) is False
    assert service.should_notify_user("user-1", NotificationType.SCHEDULE_CHANGED) is False
    assert service.should_notify_user("user-1", NotificationType.INVOICE_PAID) is True


def test_get_preferences_creates_defaults_once(session):
    service = NotificationService(session)

    first = service.get_preferences(_principal())
    second = service.get_preferences(_principal())

    assert first.id is not None
    assert first.id == second.id
    assert all(first.allows(category) for category in PreferenceCategory)


def test_update_preferences_changes_only_given_flags(session):
    service = NotificationService(session)
    service.get_preferences(_principal())

    updated = service.update_preferences(
        _principal(), {PreferenceCategory.MESSAGE_RECEIVED: False}
    )

    assert updated.message_received is False
    assert updated.invoice_paid is True


def test_create_notification_persists_and_dispatches(session):
    publisher = RecordingPublisher()
    service = NotificationService(session, publisher)

    saved = service.create_notification(_draft())

    assert saved.id is not None
    assert saved.is_read is False
    assert saved.metadata == {"taskTitle": "Review the lab results"}
    assert [(item.id, count) for item, count in publisher.dispatched] == [(saved.id, 1)]


def test_create_notification_survives_publisher_failure(session):
    service = NotificationService(session, RecordingPublisher(fail=True))

    saved = service.create_notification(_draft())

    assert service.get_unread_count(_principal()) == 1
    assert saved.id is not None


def test_find_all_paginates_newest_first(session):
    service = NotificationService(session)
    for index in range(5):
        service.create_notification(_draft(title=f"Task {index}"))

    page = service.find_all(_principal(), page=2, limit=2)

    assert page.total == 5
    assert page.total_pages == 3
    assert len(page.items) == 2
    first_page = service.find_all(_principal(), page=1, limit=2)
    assert first_page.items[0].created_at >= page.items[0].created_at


def test_find_all_filters_by_read_state_and_type(session):
    service = NotificationService(session)
    read_me = service.create_notification(_draft())
    service.create_notification(_draft(type=NotificationType.INVOICE_PAID, title="Invoice Paid"))
    service.mark_as_read(_principal(), read_me.id)

    unread = service.find_all(_principal(), is_read=False)
    invoices = service.find_all(_principal(), notification_type=NotificationType.INVOICE_PAID)

    assert [item.type for item in unread.items] == [NotificationType.INVOICE_PAID]
    assert invoices.total == 1


def test_find_all_clamps_limit(session):
    service = NotificationService(session)

    page = service.find_all(_principal(), page=0, limit=1000)

    assert page.page == 1
    assert page.limit == 100


def test_mark_as_read_publishes_remaining_count(session):
    publisher = RecordingPublisher()
    service = NotificationService(session, publisher)
    first = service.create_notification(_draft())
    service.create_notification(_draft())

    notification = service.mark_as_read(_principal(), first.id)

    assert notification.is_read is True
    assert isinstance(notification.read_at, datetime)
    assert publisher.counts == [("tenant-1", "user-1", 1)]


def test_mark_as_read_rejects_foreign_notification(session):
    service = NotificationService(session)
    owned_by_other = service.create_notification(_draft(user_id="user-2"))

    with pytest.raises(NotificationNotFoundError):
        service.mark_as_read(_principal(), owned_by_other.id)

    assert service.get_unread_count(_principal("user-2")) == 1


def test_mark_all_as_read_is_idempotent(session):
    publisher = RecordingPublisher()
    service = NotificationService(session, publisher)
    service.create_notification(_draft())
    service.create_notification(_draft())

    assert service.mark_all_as_read(_principal()) == 2
    assert service.mark_all_as_read(_principal()) == 0
    assert service.get_unread_count(_principal()) == 0
    assert publisher.counts[-1] == ("tenant-1", "user-1", 0)


def test_unread_count_is_tenant_scoped(session):
    service = NotificationService(session)
    service.create_notification(_draft())
    service.create_notification(_draft(tenant_id="tenant-2"))

    assert service.get_unread_count(_principal()) == 1
    assert service.get_unread_count(_principal(tenant_id="tenant-2")) == 1


def test_delete_only_removes_owned_notification(session):
    service = NotificationService(session)
    mine = service.create_notification(_draft())
    theirs = service.create_notification(_draft(user_id="user-2"))

    with pytest.raises(NotificationNotFoundError):
        service.delete(_principal(), theirs.id)
    service.delete(_principal(), mine.id)

    assert service.find_all(_principal()).total == 0
    assert service.find_all(_principal("user-2")).total == 1
