"""
Serializers for the notification and push API.

The dashboard client speaks camelCase, so request and response fields
are camelCase and mapped onto snake_case with source=.

Serializers:
    NotificationSerializer: Read-only notification record
    NotificationListQuerySerializer: Query params of the inbox list
    NotificationListResponseSerializer: Inbox page
    MarkReadRequestSerializer / DeleteRequestSerializer: Bulk selection bodies
    BadgeCountSerializer: Badge counters
    PushSubscribeRequestSerializer: Browser PushSubscription JSON plus device info
    PushUnsubscribeRequestSerializer: Endpoint to remove
    SendNotificationRequestSerializer: Manual send by an admin

Usage:
    from notifications.serializers import NotificationSerializer

    serializer = NotificationSerializer(page.items, many=True)
"""

from __future__ import annotations

from rest_framework import serializers

from notifications.models import Notification, NotificationType, ProjectSource


# =============================================================================
# Inbox
# =============================================================================


class NotificationSerializer(serializers.ModelSerializer):
    """
    Read-only serializer for Notification.

    actorName is None for system notifications and when the actor was
    deleted (SET_NULL).
    """

    type = serializers.CharField(source="notification_type", read_only=True)
    isRead = serializers.BooleanField(source="is_read", read_only=True)
    relatedEntityId = serializers.CharField(
        source="related_entity_id", read_only=True, allow_null=True
    )
    projectSource = serializers.CharField(source="project_source", read_only=True)
    actorName = serializers.SerializerMethodField()
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = Notification
        fields = [
            "id",
            "type",
            "title",
            "body",
            "data",
            "isRead",
            "relatedEntityId",
            "projectSource",
            "actorName",
            "createdAt",
        ]
        read_only_fields = fields

    def get_actorName(self, obj: Notification) -> str | None:
        if obj.actor is None:
            return None
        return obj.actor.full_name or obj.actor.email


class NotificationListQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, default=1)
    limit = serializers.IntegerField(required=False, default=20)
    unreadOnly = serializers.BooleanField(
        source="unread_only", required=False, default=False
    )
    project_source = serializers.ChoiceField(
        choices=ProjectSource.choices, required=False, allow_blank=True
    )


class NotificationListResponseSerializer(serializers.Serializer):
    notifications = NotificationSerializer(many=True)
    unreadCount = serializers.IntegerField()
    total = serializers.IntegerField()
    page = serializers.IntegerField()
    limit = serializers.IntegerField()


class MarkReadRequestSerializer(serializers.Serializer):
    """
    Body of PATCH /notifications/.

    Whether exactly one of notificationIds / markAll was given is decided
    by NotificationService so the error code stays INVALID_REQUEST.
    """

    notificationIds = serializers.ListField(
        source="ids",
        child=serializers.CharField(),
        required=False,
        allow_empty=True,
    )
    markAll = serializers.BooleanField(source="mark_all", required=False, default=False)


class DeleteRequestSerializer(serializers.Serializer):
    """Body of DELETE /notifications/."""

    notificationIds = serializers.ListField(
        source="ids",
        child=serializers.CharField(),
        required=False,
        allow_empty=True,
    )
    deleteAll = serializers.BooleanField(
        source="delete_all", required=False, default=False
    )


class UpdatedCountSerializer(serializers.Serializer):
    updated = serializers.IntegerField()


class DeletedCountSerializer(serializers.Serializer):
    deleted = serializers.IntegerField()


class BadgeCountSerializer(serializers.Serializer):
    displayCount = serializers.IntegerField()
    unreadCount = serializers.IntegerField()
    pendingCount = serializers.IntegerField()


class ErrorResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    error = serializers.CharField()
    error_code = serializers.CharField(required=False)
    errors = serializers.DictField(required=False)


# =============================================================================
# Push subscriptions
# =============================================================================


class PushKeysSerializer(serializers.Serializer):
    p256dh = serializers.CharField(max_length=255)
    auth = serializers.CharField(max_length=255)


class PushSubscriptionInfoSerializer(serializers.Serializer):
    """The browser's PushSubscription.toJSON() shape."""

    endpoint = serializers.URLField(max_length=1024)
    keys = PushKeysSerializer()


class DeviceInfoSerializer(serializers.Serializer):
    userAgent = serializers.CharField(required=False, allow_blank=True)
    platform = serializers.CharField(required=False, allow_blank=True)
    language = serializers.CharField(required=False, allow_blank=True)
    screenWidth = serializers.IntegerField(required=False, allow_null=True)
    screenHeight = serializers.IntegerField(required=False, allow_null=True)


class PushSubscribeRequestSerializer(serializers.Serializer):
    subscription = PushSubscriptionInfoSerializer()
    deviceInfo = DeviceInfoSerializer(source="device_info", required=False)


class PushSubscriptionResponseSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    endpoint = serializers.CharField()
    deviceInfo = serializers.DictField(source="device_info")
    createdAt = serializers.DateTimeField(source="created_at")


class PushUnsubscribeRequestSerializer(serializers.Serializer):
    endpoint = serializers.CharField(max_length=1024)


class PushStatusSerializer(serializers.Serializer):
    isSubscribed = serializers.BooleanField()


class UnsubscribedSerializer(serializers.Serializer):
    unsubscribed = serializers.BooleanField()


class VapidPublicKeySerializer(serializers.Serializer):
    publicKey = serializers.CharField()


# =============================================================================
# Manual send
# =============================================================================


class SendNotificationRequestSerializer(serializers.Serializer):
    userId = serializers.IntegerField(source="user_id")
    title = serializers.CharField(max_length=500)
    body = serializers.CharField(required=False, allow_blank=True, default="")
    type = serializers.ChoiceField(
        source="notification_type",
        choices=NotificationType.choices,
        required=False,
        default=NotificationType.SYSTEM,
    )
    entityId = serializers.CharField(
        source="entity_id", max_length=64, required=False, allow_null=True
    )
    data = serializers.DictField(required=False, default=dict)


class SendNotificationResponseSerializer(serializers.Serializer):
    notificationId = serializers.UUIDField()
    queued = serializers.IntegerField()
    failed = serializers.IntegerField()
