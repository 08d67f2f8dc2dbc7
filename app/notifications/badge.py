"""
Badge aggregation.

The dashboard badge shows the unread notification count. When nothing is
unread it falls back to the number of items waiting on the user (pending
approvals and the like), which comes from a pluggable provider:

    NOTIFICATION_PENDING_COUNT_PROVIDER = "myapp.badges.pending_orders_for"

The provider is called as provider(user, project_source) and must return
an int. The badge is pull-based; clients poll the badge-count endpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils.module_loading import import_string

from core.services import BaseService

from notifications.services import NotificationService

if TYPE_CHECKING:
    from authentication.models import User

logger = logging.getLogger(__name__)


def no_pending_work(user, project_source=None) -> int:
    """Default pending-count provider."""
    return 0


@dataclass(frozen=True)
class BadgeState:
    unread_count: int = 0
    pending_count: int = 0

    @property
    def display_count(self) -> int:
        """Unread wins; pending only shows when nothing is unread."""
        return self.unread_count if self.unread_count > 0 else self.pending_count


class BadgeService(BaseService):
    """
    Methods:
        get_badge_state: Unread and pending counts for a user
        display_count: The number the badge shows
    """

    @classmethod
    def pending_count(cls, user: User, project_source: str | None = None) -> int:
        """Ask the configured provider; a failing provider counts as 0."""
        try:
            provider = import_string(settings.NOTIFICATION_PENDING_COUNT_PROVIDER)
            return max(0, int(provider(user, project_source)))
        except Exception:
            cls.get_logger().exception(
                f"Pending count provider failed for user {user.id}; using 0"
            )
            return 0

    @classmethod
    def get_badge_state(cls, user: User, project_source: str | None = None) -> BadgeState:
        return BadgeState(
            unread_count=NotificationService.unread_count(user, project_source),
            pending_count=cls.pending_count(user, project_source),
        )

    @classmethod
    def display_count(cls, user: User, project_source: str | None = None) -> int:
        return cls.get_badge_state(user, project_source).display_count
