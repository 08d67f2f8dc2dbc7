"""
Tests for BadgeService.
"""

from notifications.badge import BadgeService, BadgeState
from notifications.models import ProjectSource
from notifications.tests.factories import (
    NotificationFactory,
    OrderNotificationFactory,
    ProjectNotificationFactory,
)


def three_pending(user, project_source=None):
    return 3


def broken_provider(user, project_source=None):
    raise RuntimeError("orders service down")


class TestBadgeState:
    def test_unread_wins(self):
        assert BadgeState(unread_count=2, pending_count=5).display_count == 2

    def test_pending_when_nothing_unread(self):
        assert BadgeState(unread_count=0, pending_count=5).display_count == 5

    def test_zero(self):
        assert BadgeState().display_count == 0


class TestBadgeService:
    """
    Verifies:
    - Display count falls back from unread to pending
    - A failing provider counts as 0
    - Counts honour project_source
    """

    def test_default_provider_has_no_pending_work(self, user):
        state = BadgeService.get_badge_state(user)

        assert state == BadgeState(unread_count=0, pending_count=0)

    def test_unread_shown_when_present(self, user, settings):
        settings.NOTIFICATION_PENDING_COUNT_PROVIDER = (
            "notifications.tests.test_badge.three_pending"
        )
        NotificationFactory.create_batch(2, recipient=user)

        assert BadgeService.display_count(user) == 2

    def test_falls_back_to_pending(self, user, settings):
        settings.NOTIFICATION_PENDING_COUNT_PROVIDER = (
            "notifications.tests.test_badge.three_pending"
        )
        NotificationFactory(recipient=user, is_read=True)

        assert BadgeService.display_count(user) == 3

    def test_failing_provider_counts_as_zero(self, user, settings):
        settings.NOTIFICATION_PENDING_COUNT_PROVIDER = (
            "notifications.tests.test_badge.broken_provider"
        )

        assert BadgeService.pending_count(user) == 0
        assert BadgeService.display_count(user) == 0

    def test_unimportable_provider_counts_as_zero(self, user, settings):
        settings.NOTIFICATION_PENDING_COUNT_PROVIDER = "notifications.nowhere.provider"

        assert BadgeService.pending_count(user) == 0

    def test_scoped_by_project_source(self, user):
        OrderNotificationFactory(recipient=user)
        ProjectNotificationFactory.create_batch(2, recipient=user)

        state = BadgeService.get_badge_state(user, ProjectSource.ORDERS)

        assert state.unread_count == 1
