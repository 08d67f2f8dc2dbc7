"""
Notification service layer.

Services:
    TargetMapService: Load, cache and version the notification target map
    NotificationService: Per-user notification store (create, list, mark read, delete)
    SubscriptionService: Web Push subscription registry

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - Database errors on writes propagate; callers decide whether to retry
    - Every query is scoped to the requesting user; bulk operations are a
      single UPDATE/DELETE with recipient in the WHERE clause

Usage:
    from notifications.services import NotificationService, SubscriptionService

    page = NotificationService.list_notifications(user, page=1, limit=20)
    NotificationService.mark_read(user, mark_all=True)

    SubscriptionService.register(user, endpoint, p256dh, auth, device_info)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.cache import cache
from django.db.models import Max
from django.utils import timezone

from core.exceptions import InvalidRequestError, ValidationError
from core.helpers import validate_uuid
from core.services import BaseService, ServiceResult

from notifications.models import (
    SOURCE_BY_DOMAIN,
    Notification,
    NotificationTargetRule,
    NotificationTemplate,
    NotificationType,
    PushSubscription,
)
from notifications.payloads import validate_payload
from notifications.targeting import (
    DEFAULT_TARGET_MAP_PATH,
    MessageTemplate,
    TargetMap,
    TargetRule,
    parse_target_map,
    read_target_map_file,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from authentication.models import User

logger = logging.getLogger(__name__)

INVALID_REQUEST = InvalidRequestError.default_error_code


# =============================================================================
# Target map
# =============================================================================


class TargetMapService(BaseService):
    """
    Loads the active target map version and caches it.

    Methods:
        get_target_map: Cached TargetMap snapshot of the active version
        load_from_database: Uncached read of the active version
        store: Write a new version and deactivate older ones
        load_file: Parse + store a JSON target map file
        invalidate_cache: Drop the cached snapshot
    """

    CACHE_KEY = "notifications:target_map"

    @classmethod
    def get_target_map(cls) -> TargetMap:
        target_map = cache.get(cls.CACHE_KEY)
        if target_map is None:
            target_map = cls.load_from_database()
            cache.set(
                cls.CACHE_KEY,
                target_map,
                timeout=settings.NOTIFICATION_TARGET_MAP_CACHE_SECONDS,
            )
        return target_map

    @classmethod
    def invalidate_cache(cls) -> None:
        cache.delete(cls.CACHE_KEY)

    @classmethod
    def active_version(cls) -> int:
        """Highest active version across rules, 0 when no map is loaded."""
        return (
            NotificationTargetRule.objects.filter(is_active=True).aggregate(
                version=Max("version")
            )["version"]
            or 0
        )

    @classmethod
    def load_from_database(cls) -> TargetMap:
        version = cls.active_version()
        if not version:
            cls.get_logger().warning("No active notification target map; nothing will be targeted")
            return TargetMap()

        rules = {
            (row.domain, row.status): TargetRule(
                domain=row.domain,
                status=row.status,
                notification_type=row.notification_type,
                roles=tuple(row.roles or ()),
                include_creator=row.include_creator,
            )
            for row in NotificationTargetRule.objects.filter(
                is_active=True, version=version
            )
        }
        templates = {
            row.notification_type: MessageTemplate(
                notification_type=row.notification_type,
                title=row.title_template,
                body=row.body_template,
            )
            for row in NotificationTemplate.objects.filter(
                is_active=True, version=version
            )
        }
        return TargetMap(version=version, rules=rules, templates=templates)

    @classmethod
    def store(cls, target_map: TargetMap) -> int:
        """
        Persist target_map as a new version.

        Older rows are deactivated, not deleted, so earlier versions stay
        inspectable in the admin.

        Returns:
            The new version number
        """
        with cls.atomic():
            latest = (
                NotificationTargetRule.objects.aggregate(version=Max("version"))["version"]
                or 0
            )
            version = latest + 1

            NotificationTargetRule.objects.filter(is_active=True).update(is_active=False)
            NotificationTemplate.objects.filter(is_active=True).update(is_active=False)

            NotificationTargetRule.objects.bulk_create(
                [
                    NotificationTargetRule(
                        domain=rule.domain,
                        status=rule.status,
                        notification_type=rule.notification_type,
                        roles=list(rule.roles),
                        include_creator=rule.include_creator,
                        version=version,
                    )
                    for rule in target_map.rules.values()
                ]
            )
            NotificationTemplate.objects.bulk_create(
                [
                    NotificationTemplate(
                        notification_type=template.notification_type,
                        title_template=template.title,
                        body_template=template.body,
                        version=version,
                    )
                    for template in target_map.templates.values()
                ]
            )

        cls.invalidate_cache()
        cls.get_logger().info(
            f"Stored notification target map v{version} "
            f"({len(target_map.rules)} rules, {len(target_map.templates)} templates)"
        )
        return version

    @classmethod
    def load_file(cls, path: Path | str = DEFAULT_TARGET_MAP_PATH) -> ServiceResult[int]:
        """
        Parse a JSON target map file and store it as a new version.

        Error codes:
            INVALID_TARGET_MAP: File unreadable as JSON or failed validation
        """
        try:
            target_map = parse_target_map(read_target_map_file(path))
        except ValidationError as e:
            return cls.handle_exception(
                e, context=f"Rejected target map file {path}", log_level=logging.WARNING
            )
        return ServiceResult.success(cls.store(target_map))


# =============================================================================
# Notification store
# =============================================================================


@dataclass
class NotificationPage:
    """One page of a user's notifications plus counters."""

    items: list[Notification] = field(default_factory=list)
    total: int = 0
    unread_count: int = 0
    page: int = 1
    limit: int = 20

    @classmethod
    def empty(cls, page: int = 1, limit: int = 20) -> NotificationPage:
        return cls(page=page, limit=limit)


class NotificationService(BaseService):
    """
    Per-user notification store.

    Methods:
        create_notification: Insert one notification for one recipient
        list_notifications: Newest-first page with total and unread counts
        unread_count: Unread notifications for a user (optionally per source)
        mark_read: Mark selected or all notifications as read
        delete_notifications: Hard-delete selected or all notifications
    """

    @classmethod
    def create_notification(
        cls,
        recipient_id: int,
        notification_type: str,
        title: str,
        body: str = "",
        data: dict | None = None,
        related_entity_id: str | None = None,
        project_source: str | None = None,
        actor_id: int | None = None,
    ) -> ServiceResult[Notification]:
        """
        Create a notification for a single recipient.

        When project_source is None it is derived from the type's domain
        (order types -> orders, project types -> projects, system -> blank).

        Args:
            recipient_id: User receiving the notification
            notification_type: NotificationType value
            title: Rendered title
            body: Rendered body
            data: Payload matching the type (see payloads.py)
            related_entity_id: Order/project id
            project_source: Inbox area override
            actor_id: User whose action produced the notification

        Returns:
            ServiceResult with the created Notification

        Error codes:
            VALIDATION_ERROR: Empty title
            INVALID_PAYLOAD: Unknown type or data does not match the type

        Raises:
            DatabaseError: Insert failures propagate to the caller
        """
        validation = cls.validate_required(title=title)
        if validation:
            return validation

        try:
            payload = validate_payload(notification_type, data)
        except ValidationError as e:
            cls.get_logger().warning(f"Rejected notification for user {recipient_id}: {e}")
            return ServiceResult.from_exception(e)

        if project_source is None:
            project_source = SOURCE_BY_DOMAIN.get(
                NotificationType.domain_of(notification_type), ""
            )

        notification = Notification.objects.create(
            recipient_id=recipient_id,
            actor_id=actor_id,
            notification_type=notification_type,
            title=title,
            body=body,
            data=payload,
            related_entity_id=related_entity_id,
            project_source=project_source,
        )

        cls.get_logger().info(
            f"Created notification {notification.id} ({notification_type}) "
            f"for user {recipient_id}"
        )
        return ServiceResult.success(notification)

    @classmethod
    def _scoped(cls, user: User, project_source: str | None = None):
        queryset = Notification.objects.filter(recipient=user)
        if project_source:
            queryset = queryset.filter(project_source=project_source)
        return queryset

    @classmethod
    def unread_count(cls, user: User, project_source: str | None = None) -> int:
        return cls._scoped(user, project_source).filter(is_read=False).count()

    @classmethod
    def list_notifications(
        cls,
        user: User,
        page: int = 1,
        limit: int = 20,
        unread_only: bool = False,
        project_source: str | None = None,
    ) -> NotificationPage:
        """
        Return one page of the user's notifications, newest first.

        page is clamped to >= 1 and limit to 1..NOTIFICATION_LIST_MAX_LIMIT.
        total counts the filtered set; unread_count ignores unread_only but
        honours project_source.
        """
        page = max(1, int(page))
        limit = max(1, min(int(limit), settings.NOTIFICATION_LIST_MAX_LIMIT))

        queryset = cls._scoped(user, project_source)
        if unread_only:
            queryset = queryset.filter(is_read=False)

        offset = (page - 1) * limit
        items = list(
            queryset.select_related("actor").order_by("-created_at", "-id")[
                offset : offset + limit
            ]
        )

        return NotificationPage(
            items=items,
            total=queryset.count(),
            unread_count=cls.unread_count(user, project_source),
            page=page,
            limit=limit,
        )

    @classmethod
    def _check_selection(cls, ids: Iterable[str] | None, select_all: bool, flag: str):
        if bool(ids) == bool(select_all):
            return ServiceResult.from_exception(
                InvalidRequestError(f"Provide either notification ids or {flag}, not both")
            )
        return None

    @classmethod
    def _selection(cls, user: User, ids: Iterable[str] | None):
        queryset = Notification.objects.filter(recipient=user)
        if ids:
            # Malformed ids can never match a UUID primary key
            queryset = queryset.filter(id__in=[i for i in ids if validate_uuid(i)])
        return queryset

    @classmethod
    def mark_read(
        cls,
        user: User,
        ids: Iterable[str] | None = None,
        mark_all: bool = False,
    ) -> ServiceResult[int]:
        """
        Mark notifications as read.

        Exactly one of ids or mark_all must be supplied. Unknown, foreign
        and malformed ids are skipped. Already-read notifications are not
        counted, so repeating a call returns 0.

        Returns:
            ServiceResult with the number of notifications that changed state

        Error codes:
            INVALID_REQUEST: Neither or both of ids / mark_all given
        """
        ids = list(ids or [])
        invalid = cls._check_selection(ids, mark_all, "mark_all")
        if invalid:
            return invalid

        count = cls._selection(user, ids).filter(is_read=False).update(is_read=True)

        cls.get_logger().info(f"Marked {count} notifications as read for user {user.id}")
        return ServiceResult.success(count)

    @classmethod
    def delete_notifications(
        cls,
        user: User,
        ids: Iterable[str] | None = None,
        delete_all: bool = False,
    ) -> ServiceResult[int]:
        """
        Hard-delete notifications.

        Same selection rules as mark_read.

        Returns:
            ServiceResult with the number of deleted notifications

        Error codes:
            INVALID_REQUEST: Neither or both of ids / delete_all given
        """
        ids = list(ids or [])
        invalid = cls._check_selection(ids, delete_all, "delete_all")
        if invalid:
            return invalid

        count, _ = cls._selection(user, ids).delete()

        cls.get_logger().info(f"Deleted {count} notifications for user {user.id}")
        return ServiceResult.success(count)


# =============================================================================
# Subscription registry
# =============================================================================


class SubscriptionService(BaseService):
    """
    Web Push subscription registry.

    Methods:
        register: Upsert a subscription by endpoint
        unregister: Remove a subscription by endpoint
        list_active_for_user: Subscriptions a push should go to
        is_subscribed: Whether a user owns an endpoint
        forget: Remove a subscription the push service reported as gone
    """

    @classmethod
    def register(
        cls,
        user: User,
        endpoint: str,
        p256dh: str,
        auth: str,
        device_info: dict | None = None,
    ) -> ServiceResult[PushSubscription]:
        """
        Register (or re-register) a push subscription.

        The endpoint is the identity: registering a known endpoint replaces
        its keys and device info, and moves it to this user if another user
        owned it (the browser profile changed hands).

        Error codes:
            VALIDATION_ERROR: Empty endpoint, p256dh or auth
        """
        validation = cls.validate_required(endpoint=endpoint, p256dh=p256dh, auth=auth)
        if validation:
            return validation

        endpoint = endpoint.strip()
        with cls.atomic():
            existing = (
                PushSubscription.objects.select_for_update()
                .filter(endpoint=endpoint)
                .first()
            )
            if existing is not None and existing.user_id != user.id:
                cls.get_logger().warning(
                    f"Push endpoint {existing.id} moved from user {existing.user_id} "
                    f"to user {user.id}"
                )

            subscription, created = PushSubscription.objects.update_or_create(
                endpoint=endpoint,
                defaults={
                    "user": user,
                    "p256dh": p256dh.strip(),
                    "auth": auth.strip(),
                    "device_info": device_info or {},
                },
            )

        cls.get_logger().info(
            f"{'Registered' if created else 'Refreshed'} push subscription "
            f"{subscription.id} for user {user.id}"
        )
        return ServiceResult.success(subscription)

    @classmethod
    def unregister(cls, endpoint: str, user: User | None = None) -> int:
        """
        Delete the subscription for endpoint. Missing endpoints are not an error.

        When user is given only that user's subscription is removed.

        Returns:
            Number of deleted subscriptions (0 or 1)
        """
        queryset = PushSubscription.objects.filter(endpoint=endpoint)
        if user is not None:
            queryset = queryset.filter(user=user)
        count, _ = queryset.delete()
        if count:
            cls.get_logger().info(f"Removed push subscription for endpoint {endpoint[:40]}...")
        return count

    @classmethod
    def list_active_for_user(cls, user_id: int) -> list[PushSubscription]:
        return list(PushSubscription.objects.filter(user_id=user_id))

    @classmethod
    def is_subscribed(cls, user: User, endpoint: str) -> bool:
        if not endpoint:
            return False
        return PushSubscription.objects.filter(user=user, endpoint=endpoint).exists()

    @classmethod
    def forget(cls, subscription: PushSubscription, reason: str = "") -> None:
        """Remove a subscription after a permanent delivery failure."""
        cls.get_logger().info(
            f"Forgetting push subscription {subscription.id} of user "
            f"{subscription.user_id}: {reason or 'gone'}"
        )
        PushSubscription.objects.filter(id=subscription.id).delete()

    @classmethod
    def touch(cls, subscription: PushSubscription) -> None:
        """Record a successful send."""
        PushSubscription.objects.filter(id=subscription.id).update(
            last_used_at=timezone.now()
        )
