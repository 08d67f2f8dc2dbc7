"""
Notification dispatcher.

Turns a DomainEvent into stored notifications and queued pushes:

    1. Resolve the event against the active target map
    2. Map roles to active users and add the explicit recipients
    3. Per recipient: create the notification (errors propagate), then
       queue one send_web_push task per subscription (errors are logged)

There is no transaction around the whole fan-out; each recipient's
record is written independently. A failure half way leaves the earlier
records in place and the caller may re-dispatch.

Usage:
    from notifications.dispatcher import NotificationDispatcher
    from notifications.targeting import DomainEvent

    report = NotificationDispatcher().dispatch(
        DomainEvent(domain="order", status="admin_approved", entity_id="42",
                    entity_name="PO-42", actor_user_id=7, actor_role="admin")
    )
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

from django.conf import settings

from authentication.services import UserDirectoryService
from core.exceptions import ValidationError

from notifications.models import DOMAIN_BY_SOURCE
from notifications.payloads import (
    OrderStatusPayload,
    ProjectEventPayload,
    SystemPayload,
    detail_path,
    payload_class_for,
)
from notifications.services import (
    NotificationService,
    SubscriptionService,
    TargetMapService,
)
from notifications.targeting import NotificationTargetResolver

if TYPE_CHECKING:
    from collections.abc import Callable

    from notifications.models import Notification
    from notifications.targeting import DomainEvent, TargetMap

logger = logging.getLogger(__name__)


@dataclass
class DispatchReport:
    """What a dispatch produced; returned to callers and Celery results."""

    notification_type: str | None = None
    notification_ids: list[str] = field(default_factory=list)
    recipient_ids: list[int] = field(default_factory=list)
    pushes_queued: int = 0
    pushes_failed: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def build_push_payload(notification: Notification) -> dict:
    """
    Build the JSON body sent to the browser's push service.

    The tag groups pushes about the same entity so a newer one replaces
    the older on the device.
    """
    data = notification.data or {}
    entity_id = notification.related_entity_id
    url = data.get("url") or detail_path(
        DOMAIN_BY_SOURCE.get(notification.project_source), entity_id
    )
    tag = (
        f"{notification.notification_type}-{entity_id}"
        if entity_id
        else f"notification-{notification.id}"
    )
    return {
        "title": notification.title,
        "body": notification.body,
        "icon": settings.WEBPUSH_ICON,
        "badge": settings.WEBPUSH_BADGE,
        "tag": tag,
        "data": {
            "url": url,
            "entityId": entity_id,
            "type": notification.notification_type,
            "notificationId": str(notification.id),
        },
    }


def _queue_web_push(subscription_id: str, payload: dict) -> None:
    from notifications import tasks

    tasks.send_web_push.delay(subscription_id, payload)


class NotificationDispatcher:
    """
    Fans a domain event out to notification records and push tasks.

    Args:
        target_map: Map to resolve against (defaults to the cached active map)
        directory: Role -> user lookup (defaults to UserDirectoryService)
        queue_push: callable(subscription_id, payload) that schedules a send
    """

    def __init__(
        self,
        target_map: TargetMap | None = None,
        directory=UserDirectoryService,
        queue_push: Callable[[str, dict], None] | None = None,
    ):
        self._target_map = target_map
        self.directory = directory
        self.queue_push = queue_push or _queue_web_push

    @property
    def target_map(self) -> TargetMap:
        if self._target_map is None:
            self._target_map = TargetMapService.get_target_map()
        return self._target_map

    def recipients_for(self, resolution) -> list[int]:
        role_ids = self.directory.active_user_ids_for_roles(resolution.recipient_roles)
        explicit_ids = self.directory.active_user_ids(
            resolution.explicit_recipient_user_ids
        )
        return sorted(role_ids | explicit_ids)

    def build_payload(self, event: DomainEvent, notification_type: str) -> dict:
        """Build the typed data payload for the type the event resolved to."""
        url = detail_path(event.domain, event.entity_id)
        payload_class = payload_class_for(notification_type)
        if payload_class is SystemPayload:
            return SystemPayload(url=url, entity_id=event.entity_id).to_dict()
        if payload_class is OrderStatusPayload:
            return OrderStatusPayload(
                entity_id=event.entity_id,
                new_status=event.status,
                url=url,
                old_status=event.old_status,
            ).to_dict()
        return ProjectEventPayload(
            entity_id=event.entity_id,
            event=event.status,
            url=url,
            project_name=event.entity_name or None,
        ).to_dict()

    def dispatch(self, event: DomainEvent) -> DispatchReport:
        """
        Create notifications for everyone the event targets and queue pushes.

        Raises:
            DatabaseError: A notification insert failed
            ValidationError: The target map produced an invalid notification
        """
        resolution = NotificationTargetResolver(self.target_map).resolve(event)
        if resolution.is_empty:
            logger.info(
                f"No recipients for {event.domain}:{event.status} "
                f"(target map v{resolution.version})"
            )
            return DispatchReport(notification_type=resolution.notification_type)

        report = DispatchReport(notification_type=resolution.notification_type)
        data = self.build_payload(event, resolution.notification_type)
        # Unknown or deactivated actors are not linked
        actor_id = next(iter(self.directory.active_user_ids([event.actor_user_id])), None)

        for recipient_id in self.recipients_for(resolution):
            result = NotificationService.create_notification(
                recipient_id=recipient_id,
                notification_type=resolution.notification_type,
                title=resolution.title,
                body=resolution.body,
                data=data,
                related_entity_id=event.entity_id,
                project_source=event.project_source,
                actor_id=actor_id,
            )
            if not result:
                raise ValidationError(
                    result.error or "Notification rejected",
                    error_code=result.error_code,
                    details=result.errors,
                )

            report.recipient_ids.append(recipient_id)
            report.notification_ids.append(str(result.data.id))
            self.deliver(result.data, report)

        logger.info(
            f"Dispatched {event.domain}:{event.status} as {resolution.notification_type} "
            f"to {len(report.recipient_ids)} users, {report.pushes_queued} pushes queued, "
            f"{report.pushes_failed} failed"
        )
        return report

    def deliver(
        self, notification: Notification, report: DispatchReport | None = None
    ) -> DispatchReport:
        """
        Queue one push per subscription of the notification's recipient.

        Queueing failures are logged and counted; they never raise.
        """
        report = report or DispatchReport(notification_type=notification.notification_type)
        subscriptions = SubscriptionService.list_active_for_user(notification.recipient_id)
        if not subscriptions:
            return report

        payload = build_push_payload(notification)
        for subscription in subscriptions:
            try:
                self.queue_push(str(subscription.id), payload)
                report.pushes_queued += 1
            except Exception:
                logger.exception(
                    f"Could not queue push {notification.id} to subscription {subscription.id}"
                )
                report.pushes_failed += 1
        return report
