"""
Tests for notification services.

Covers TargetMapService, NotificationService and SubscriptionService.
"""

import logging
import uuid
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone

from django.utils import timezone
from freezegun import freeze_time

from notifications.models import (
    Notification,
    NotificationTargetRule,
    NotificationTemplate,
    NotificationType,
    PushSubscription,
    ProjectSource,
)
from notifications.services import (
    INVALID_REQUEST,
    NotificationService,
    SubscriptionService,
    TargetMapService,
)
from notifications.tests.factories import (
    NotificationFactory,
    OrderNotificationFactory,
    ProjectNotificationFactory,
    PushSubscriptionFactory,
)


# =============================================================================
# TargetMapService
# =============================================================================


class TestTargetMapService:
    """
    Verifies:
    - The seeded map is the active version
    - store() writes a new version and deactivates older rows
    - The cached snapshot is replaced after store()
    """

    def test_seeded_map_is_active(self, db):
        target_map = TargetMapService.get_target_map()

        assert target_map.version == 1
        assert len(target_map) == 13
        rule = target_map.rule_for("order", "admin_approved")
        assert rule.notification_type == NotificationType.OWNER_APPROVED

    def test_store_creates_new_version(self, db, target_map):
        version = TargetMapService.store(target_map)

        assert version == 2
        assert TargetMapService.active_version() == 2
        assert not NotificationTargetRule.objects.filter(version=1, is_active=True).exists()
        assert not NotificationTemplate.objects.filter(version=1, is_active=True).exists()
        # History is kept
        assert NotificationTargetRule.objects.filter(version=1).count() == 13

    def test_store_invalidates_cache(self, db, target_map):
        assert TargetMapService.get_target_map().version == 1

        TargetMapService.store(target_map)

        cached = TargetMapService.get_target_map()
        assert cached.version == 2
        assert len(cached) == 3
        assert cached.rule_for("order", "closed") is None

    def test_empty_database_gives_empty_map(self, db):
        NotificationTargetRule.objects.update(is_active=False)

        target_map = TargetMapService.load_from_database()

        assert target_map.version == 0
        assert len(target_map) == 0

    def test_load_file_rejects_invalid_map(self, db, tmp_path, mocker):
        path = tmp_path / "map.json"
        path.write_text('{"rules": [{"domain": "order"}]}', encoding="utf-8")

        service_logger = mocker.patch.object(TargetMapService, "get_logger").return_value

        result = TargetMapService.load_file(path)

        assert not result.success
        assert result.error_code == "INVALID_TARGET_MAP"
        assert TargetMapService.active_version() == 1
        level, message = service_logger.log.call_args.args
        assert level == logging.WARNING
        assert message.startswith(f"Rejected target map file {path}")

    def test_load_file_stores_bundled_map(self, db):
        result = TargetMapService.load_file()

        assert result.success
        assert result.data == 2


# =============================================================================
# NotificationService
# =============================================================================


class TestCreateNotification:
    """
    Verifies:
    - Records are created with the payload validated
    - project_source is derived from the type when not given
    - Invalid payloads and empty titles fail without writing
    """

    def test_creates_order_notification(self, user, admin_user):
        result = NotificationService.create_notification(
            recipient_id=user.id,
            notification_type=NotificationType.OWNER_APPROVED,
            title="Purchase order approved",
            body="PO-42 was approved",
            data={"entity_id": "42", "new_status": "admin_approved", "url": "/orders/42"},
            related_entity_id="42",
            actor_id=admin_user.id,
        )

        assert result.success
        notification = result.data
        assert notification.recipient_id == user.id
        assert notification.actor_id == admin_user.id
        assert notification.project_source == ProjectSource.ORDERS
        assert notification.is_read is False

    def test_system_notification_has_blank_source(self, user):
        result = NotificationService.create_notification(
            recipient_id=user.id,
            notification_type=NotificationType.SYSTEM,
            title="Maintenance tonight",
        )

        assert result.data.project_source == ""

    def test_invalid_payload(self, user):
        result = NotificationService.create_notification(
            recipient_id=user.id,
            notification_type=NotificationType.PROJECT_COMPLETED,
            title="Project completed",
            data={"entity_id": "9"},
        )

        assert not result.success
        assert result.error_code == "INVALID_PAYLOAD"
        assert set(result.errors) == {"event", "url"}
        assert Notification.objects.count() == 0

    def test_empty_title(self, user):
        result = NotificationService.create_notification(
            recipient_id=user.id,
            notification_type=NotificationType.SYSTEM,
            title="",
        )

        assert not result.success
        assert result.error_code == "VALIDATION_ERROR"
        assert result.errors == {"title": ["This field is required."]}


class TestListNotifications:
    """
    Verifies:
    - Only the user's notifications are listed, newest first
    - total counts the filtered set, unread_count ignores unread_only
    - limit and page are clamped
    """

    def test_newest_first_and_scoped(self, user, other_user):
        older = NotificationFactory(recipient=user)
        newer = NotificationFactory(recipient=user)
        Notification.objects.filter(id=older.id).update(
            created_at=timezone.now() - timedelta(hours=1)
        )
        NotificationFactory(recipient=other_user)

        page = NotificationService.list_notifications(user)

        assert [n.id for n in page.items] == [newer.id, older.id]
        assert page.total == 2

    def test_unread_only(self, user):
        NotificationFactory.create_batch(2, recipient=user)
        NotificationFactory(recipient=user, is_read=True)

        page = NotificationService.list_notifications(user, unread_only=True)

        assert page.total == 2
        assert page.unread_count == 2
        assert all(not n.is_read for n in page.items)

    def test_unread_count_ignores_unread_only_filter(self, user):
        NotificationFactory(recipient=user)
        NotificationFactory(recipient=user, is_read=True)

        page = NotificationService.list_notifications(user)

        assert page.total == 2
        assert page.unread_count == 1

    def test_project_source_filter(self, user):
        OrderNotificationFactory(recipient=user)
        ProjectNotificationFactory.create_batch(2, recipient=user)

        page = NotificationService.list_notifications(
            user, project_source=ProjectSource.PROJECTS
        )

        assert page.total == 2
        assert page.unread_count == 2
        assert {n.project_source for n in page.items} == {ProjectSource.PROJECTS}

    def test_pagination(self, user):
        NotificationFactory.create_batch(5, recipient=user)

        page = NotificationService.list_notifications(user, page=2, limit=2)

        assert len(page.items) == 2
        assert page.total == 5
        assert page.page == 2

    def test_clamps_page_and_limit(self, user, settings):
        settings.NOTIFICATION_LIST_MAX_LIMIT = 3
        NotificationFactory.create_batch(4, recipient=user)

        page = NotificationService.list_notifications(user, page=0, limit=50)

        assert page.page == 1
        assert page.limit == 3
        assert len(page.items) == 3

        page = NotificationService.list_notifications(user, limit=0)
        assert page.limit == 1


class TestMarkRead:
    """
    Verifies:
    - Exactly one of ids / mark_all is required
    - Only the user's unread notifications change; counts are idempotent
    """

    def test_requires_ids_or_mark_all(self, user):
        result = NotificationService.mark_read(user)

        assert not result.success
        assert result.error_code == INVALID_REQUEST

    def test_rejects_both(self, user):
        notification = NotificationFactory(recipient=user)

        result = NotificationService.mark_read(
            user, ids=[str(notification.id)], mark_all=True
        )

        assert result.error_code == INVALID_REQUEST

    def test_empty_id_list_counts_as_missing(self, user):
        result = NotificationService.mark_read(user, ids=[])

        assert result.error_code == INVALID_REQUEST

    def test_mark_selected(self, user):
        first, second = NotificationFactory.create_batch(2, recipient=user)

        result = NotificationService.mark_read(user, ids=[str(first.id)])

        assert result.data == 1
        first.refresh_from_db()
        second.refresh_from_db()
        assert first.is_read is True
        assert second.is_read is False

    def test_skips_foreign_unknown_and_malformed_ids(self, user, other_user):
        mine = NotificationFactory(recipient=user)
        theirs = NotificationFactory(recipient=other_user)

        result = NotificationService.mark_read(
            user,
            ids=[str(mine.id), str(theirs.id), str(uuid.uuid4()), "not-a-uuid"],
        )

        assert result.data == 1
        theirs.refresh_from_db()
        assert theirs.is_read is False

    def test_mark_all_then_unread_is_zero(self, user, other_user):
        NotificationFactory.create_batch(3, recipient=user)
        NotificationFactory(recipient=user, is_read=True)
        NotificationFactory(recipient=other_user)

        assert NotificationService.unread_count(user) == 3

        result = NotificationService.mark_read(user, mark_all=True)

        assert result.data == 3
        assert NotificationService.unread_count(user) == 0
        assert NotificationService.unread_count(other_user) == 1

    def test_repeat_is_idempotent(self, user):
        notification = NotificationFactory(recipient=user)

        first = NotificationService.mark_read(user, ids=[str(notification.id)])
        second = NotificationService.mark_read(user, ids=[str(notification.id)])

        assert first.data == 1
        assert second.success
        assert second.data == 0
        notification.refresh_from_db()
        assert notification.is_read is True


class TestDeleteNotifications:
    """
    Verifies:
    - Deletes are scoped to the user
    - delete_all leaves the list empty
    """

    def test_requires_ids_or_delete_all(self, user):
        result = NotificationService.delete_notifications(user)

        assert result.error_code == INVALID_REQUEST

    def test_delete_selected(self, user, other_user):
        mine = NotificationFactory(recipient=user)
        keep = NotificationFactory(recipient=user)
        theirs = NotificationFactory(recipient=other_user)

        result = NotificationService.delete_notifications(
            user, ids=[str(mine.id), str(theirs.id)]
        )

        assert result.data == 1
        assert not Notification.objects.filter(id=mine.id).exists()
        assert Notification.objects.filter(id__in=[keep.id, theirs.id]).count() == 2

    def test_delete_all_leaves_empty_list(self, user, other_user):
        NotificationFactory.create_batch(3, recipient=user)
        NotificationFactory(recipient=other_user)

        result = NotificationService.delete_notifications(user, delete_all=True)

        assert result.data == 3
        page = NotificationService.list_notifications(user)
        assert page.items == []
        assert page.total == 0
        assert Notification.objects.filter(recipient=other_user).count() == 1


# =============================================================================
# SubscriptionService
# =============================================================================


class TestRegister:
    """
    Verifies:
    - Registration upserts by endpoint
    - An endpoint registered by another user moves to the new user
    - Empty keys are rejected
    """

    endpoint = "https://fcm.googleapis.com/fcm/send/abc123"

    def test_register_creates_subscription(self, user):
        result = SubscriptionService.register(
            user, self.endpoint, "p256dh-key", "auth-key", {"platform": "Linux"}
        )

        assert result.success
        subscription = result.data
        assert subscription.user_id == user.id
        assert subscription.device_info == {"platform": "Linux"}

    def test_reregister_replaces_keys(self, user):
        SubscriptionService.register(user, self.endpoint, "old-key", "old-auth")

        SubscriptionService.register(user, self.endpoint, "new-key", "new-auth")

        assert PushSubscription.objects.count() == 1
        subscription = PushSubscription.objects.get()
        assert subscription.p256dh == "new-key"
        assert subscription.auth == "new-auth"

    def test_endpoint_moves_to_new_user(self, user, other_user):
        SubscriptionService.register(other_user, self.endpoint, "key", "auth")

        SubscriptionService.register(user, self.endpoint, "key", "auth")

        assert PushSubscription.objects.get(endpoint=self.endpoint).user_id == user.id

    def test_missing_keys_rejected(self, user):
        result = SubscriptionService.register(user, self.endpoint, "", "auth")

        assert not result.success
        assert result.error_code == "VALIDATION_ERROR"
        assert "p256dh" in result.errors
        assert PushSubscription.objects.count() == 0


class TestUnregister:
    def test_unregister_removes_subscription(self, user):
        subscription = PushSubscriptionFactory(user=user)

        assert SubscriptionService.unregister(subscription.endpoint, user=user) == 1
        assert not PushSubscription.objects.exists()

    def test_missing_endpoint_is_not_an_error(self, db):
        assert SubscriptionService.unregister("https://push.example.com/none") == 0

    def test_scoped_to_user(self, user, other_user):
        subscription = PushSubscriptionFactory(user=other_user)

        assert SubscriptionService.unregister(subscription.endpoint, user=user) == 0
        assert PushSubscription.objects.filter(id=subscription.id).exists()


class TestSubscriptionQueries:
    def test_is_subscribed(self, user, other_user):
        subscription = PushSubscriptionFactory(user=user)

        assert SubscriptionService.is_subscribed(user, subscription.endpoint)
        assert not SubscriptionService.is_subscribed(other_user, subscription.endpoint)
        assert not SubscriptionService.is_subscribed(user, "")

    def test_list_active_for_user(self, user, other_user):
        mine = PushSubscriptionFactory.create_batch(2, user=user)
        PushSubscriptionFactory(user=other_user)

        subscriptions = SubscriptionService.list_active_for_user(user.id)

        assert {s.id for s in subscriptions} == {s.id for s in mine}

    def test_forget_and_touch(self, user):
        gone, alive = PushSubscriptionFactory.create_batch(2, user=user)

        SubscriptionService.forget(gone, reason="410")
        with freeze_time("2026-03-01 09:30:00"):
            SubscriptionService.touch(alive)

        assert not PushSubscription.objects.filter(id=gone.id).exists()
        alive.refresh_from_db()
        assert alive.last_used_at == datetime(2026, 3, 1, 9, 30, tzinfo=dt_timezone.utc)
