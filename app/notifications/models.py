"""
Notification system models.

This module defines the models for the notification subsystem:
- NotificationTargetRule: Versioned "(domain, status) -> type + roles" map rows
- NotificationTemplate: Versioned title/body templates per notification type
- Notification: Per-user notification record (the inbox)
- PushSubscription: A browser/device Web Push subscription

Design Decisions:
    - Notification and PushSubscription use UUID PKs (ids travel to browsers)
    - Notification.notification_type is a choice string, not a FK; the
      target map is configuration and may be reloaded at any time
    - Target map rows are never edited in place: loading a map writes a new
      version and deactivates the previous one (see targeting.py)
    - Notification is immutable apart from is_read; deletes are hard deletes
    - PushSubscription.endpoint is globally unique; re-registering an
      endpoint replaces the row

Usage:
    from notifications.models import Notification, NotificationType

    Notification.objects.filter(recipient=user, is_read=False).count()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


# =============================================================================
# Enums
# =============================================================================


class NotificationDomain(models.TextChoices):
    """Lifecycle domains that emit notification-worthy status changes."""

    ORDER = "order", "Purchase order"
    PROJECT = "project", "Project"


class ProjectSource(models.TextChoices):
    """
    UI area a notification belongs to.

    The dashboard filters the inbox and the badge by source.
    """

    ORDERS = "orders", "Orders"
    PROJECTS = "projects", "Projects"


class NotificationType(models.TextChoices):
    """
    Notification types.

    Order types map to order status transitions, project types to project
    events. SYSTEM is for manual and operational messages.
    """

    # Order domain
    ORDER_CREATED = "order_created", "Order created"
    ENGINEERING_REVIEW = "engineering_review", "Engineering review done"
    ADMIN_REVIEW = "admin_review", "Returned by administration"
    OWNER_APPROVED = "owner_approved", "Approved by administration"
    OWNER_REJECTED = "owner_rejected", "Rejected by administration"
    PURCHASING_STARTED = "purchasing_started", "Purchasing started"
    ORDER_CLOSED = "order_closed", "Order closed"
    ITEM_STATUS_CHANGED = "item_status_changed", "Item status changed"

    # Project domain
    PROJECT_CREATED = "project_created", "Project created"
    PROJECT_ASSIGNED = "project_assigned", "Project assigned"
    PROJECT_STEP_COMPLETED = "project_step_completed", "Project step completed"
    PROJECT_COMPLETED = "project_completed", "Project completed"
    PROJECT_OVERDUE = "project_overdue", "Project overdue"

    SYSTEM = "system", "System"

    @classmethod
    def domain_of(cls, value: str) -> str | None:
        """Return the NotificationDomain value a type belongs to, or None for system/unknown."""
        if value in ORDER_NOTIFICATION_TYPES:
            return NotificationDomain.ORDER
        if value in PROJECT_NOTIFICATION_TYPES:
            return NotificationDomain.PROJECT
        return None


ORDER_NOTIFICATION_TYPES = frozenset(
    {
        NotificationType.ORDER_CREATED,
        NotificationType.ENGINEERING_REVIEW,
        NotificationType.ADMIN_REVIEW,
        NotificationType.OWNER_APPROVED,
        NotificationType.OWNER_REJECTED,
        NotificationType.PURCHASING_STARTED,
        NotificationType.ORDER_CLOSED,
        NotificationType.ITEM_STATUS_CHANGED,
    }
)

PROJECT_NOTIFICATION_TYPES = frozenset(
    {
        NotificationType.PROJECT_CREATED,
        NotificationType.PROJECT_ASSIGNED,
        NotificationType.PROJECT_STEP_COMPLETED,
        NotificationType.PROJECT_COMPLETED,
        NotificationType.PROJECT_OVERDUE,
    }
)

# Which inbox area each domain's notifications land in
SOURCE_BY_DOMAIN = {
    NotificationDomain.ORDER: ProjectSource.ORDERS,
    NotificationDomain.PROJECT: ProjectSource.PROJECTS,
}
DOMAIN_BY_SOURCE = {source: domain for domain, source in SOURCE_BY_DOMAIN.items()}


# =============================================================================
# Configuration Models
# =============================================================================


class NotificationTargetRule(BaseModel):
    """
    One row of the notification target map.

    Maps a domain status to the notification type and the roles that
    receive it. The effective map is every active row at the highest
    active version.

    Fields:
        domain: Lifecycle domain (order/project)
        status: Domain status string the rule matches exactly
        notification_type: Type of the notifications produced
        roles: List of role strings to fan out to
        include_creator: Also notify the actor when their role is not targeted
        version: Map version this row belongs to
        is_active: Only active rows are considered

    Note:
        Rows are written by the seed migration, the load_target_map
        management command, or the admin. Edits through the admin are
        picked up once the cached map expires or is invalidated.
    """

    domain = models.CharField(
        max_length=20,
        choices=NotificationDomain.choices,
        help_text="Lifecycle domain this rule applies to",
    )
    status = models.CharField(
        max_length=100,
        help_text="Domain status string matched exactly",
    )
    notification_type = models.CharField(
        max_length=50,
        choices=NotificationType.choices,
        help_text="Notification type produced for this status",
    )
    roles = models.JSONField(
        default=list,
        blank=True,
        help_text="Role strings that receive the notification",
    )
    include_creator = models.BooleanField(
        default=False,
        help_text="Also notify the user who caused the status change",
    )
    version = models.PositiveIntegerField(
        default=1,
        db_index=True,
        help_text="Target map version this rule belongs to",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive rows are kept for history only",
    )

    class Meta:
        db_table = "notifications_target_rule"
        ordering = ["-version", "domain", "status"]
        constraints = [
            models.UniqueConstraint(
                fields=["domain", "status", "version"],
                name="notif_target_rule_unique_per_version",
            ),
        ]
        indexes = [
            models.Index(
                fields=["is_active", "version"],
                name="notif_rule_active_version_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"v{self.version} {self.domain}:{self.status} -> {self.notification_type}"


class NotificationTemplate(BaseModel):
    """
    Title/body templates for a notification type.

    Templates are str.format strings. Allowed placeholders are
    {entity_name}, {entity_id}, {status} and {old_status}.

    Fields:
        notification_type: Type this template renders
        title_template: Title format string
        body_template: Body format string
        version: Map version this row belongs to
        is_active: Only active rows are considered
    """

    notification_type = models.CharField(
        max_length=50,
        choices=NotificationType.choices,
        help_text="Notification type rendered by this template",
    )
    title_template = models.CharField(
        max_length=255,
        help_text="Title format string, e.g. 'Order {entity_name} approved'",
    )
    body_template = models.TextField(
        blank=True,
        default="",
        help_text="Body format string",
    )
    version = models.PositiveIntegerField(
        default=1,
        db_index=True,
        help_text="Target map version this template belongs to",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Inactive rows are kept for history only",
    )

    class Meta:
        db_table = "notifications_template"
        ordering = ["-version", "notification_type"]
        constraints = [
            models.UniqueConstraint(
                fields=["notification_type", "version"],
                name="notif_template_unique_per_version",
            ),
        ]

    def __str__(self) -> str:
        return f"v{self.version} {self.notification_type}"


# =============================================================================
# Notification
# =============================================================================


class Notification(UUIDPrimaryKeyMixin, BaseModel):
    """
    Individual notification record for a user.

    Title and body are fully rendered strings; the record is immutable
    except for is_read.

    Fields:
        recipient: User receiving the notification (scopes all queries)
        actor: User whose action produced it (optional)
        related_entity_id: Id of the order/project the notification is about
        title: Fully rendered title
        body: Fully rendered body
        notification_type: One of NotificationType
        data: Validated payload, shape depends on notification_type (payloads.py)
        is_read: Whether the recipient has read it
        project_source: Inbox area (orders/projects), blank for system messages

    Note:
        - recipient CASCADE: Notifications deleted when user deleted
        - actor SET_NULL: Notification preserved when actor deleted
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        help_text="User receiving this notification",
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="triggered_notifications",
        help_text="User who triggered this notification (optional)",
    )
    related_entity_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        help_text="Id of the order or project this notification is about",
    )
    title = models.CharField(
        max_length=500,
        help_text="Fully rendered notification title",
    )
    body = models.TextField(
        blank=True,
        default="",
        help_text="Fully rendered notification body",
    )
    notification_type = models.CharField(
        max_length=50,
        choices=NotificationType.choices,
        default=NotificationType.SYSTEM,
        help_text="Type of this notification",
    )
    data = models.JSONField(
        default=dict,
        blank=True,
        help_text="Validated payload for the notification type (deep link, statuses)",
    )
    is_read = models.BooleanField(
        default=False,
        help_text="Whether recipient has read this notification",
    )
    project_source = models.CharField(
        max_length=20,
        choices=ProjectSource.choices,
        blank=True,
        default="",
        help_text="Inbox area this notification belongs to",
    )

    class Meta:
        db_table = "notifications_notification"
        ordering = ["-created_at"]
        indexes = [
            # Primary query: user's unread notifications, newest first
            models.Index(
                fields=["recipient", "is_read", "-created_at"],
                name="notif_recipient_unread_idx",
            ),
            models.Index(
                fields=["recipient", "project_source", "-created_at"],
                name="notif_recipient_source_idx",
            ),
        ]

    def __str__(self) -> str:
        read_status = "read" if self.is_read else "unread"
        return (
            f"Notification({self.notification_type}) -> "
            f"User {self.recipient_id} [{read_status}]"
        )


# =============================================================================
# Push Subscriptions
# =============================================================================


class PushSubscription(UUIDPrimaryKeyMixin, BaseModel):
    """
    A Web Push subscription registered by a browser or device.

    Fields:
        user: Owner of the subscription
        endpoint: Push service URL (globally unique)
        p256dh: Client public key (base64url)
        auth: Client auth secret (base64url)
        device_info: userAgent, platform, language, screenWidth, screenHeight
        last_used_at: Last successful push to this endpoint

    Lifecycle:
        Created on opt-in, replaced on re-registration of the same endpoint,
        deleted on unsubscribe or when the push service answers 404/410.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="push_subscriptions",
        help_text="User who owns this subscription",
    )
    endpoint = models.CharField(
        max_length=1024,
        unique=True,
        help_text="Push service endpoint URL",
    )
    p256dh = models.CharField(
        max_length=255,
        help_text="Client ECDH public key (base64url)",
    )
    auth = models.CharField(
        max_length=255,
        help_text="Client auth secret (base64url)",
    )
    device_info = models.JSONField(
        default=dict,
        blank=True,
        help_text="Browser/device details reported at subscription time",
    )
    last_used_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When a push was last accepted for this endpoint",
    )

    class Meta:
        db_table = "notifications_push_subscription"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["user", "-created_at"],
                name="notif_push_sub_user_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"PushSubscription(user={self.user_id}, endpoint={self.endpoint[:40]}...)"

    def to_subscription_info(self) -> dict:
        """Return the subscription in the shape pywebpush expects."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh, "auth": self.auth},
        }
