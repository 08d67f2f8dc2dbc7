"""
URL configuration for notifications and Web Push.

Included under /api/v1/ by config.urls.
"""

from django.urls import path

from notifications.views import (
    BadgeCountView,
    NotificationView,
    PushSubscriptionView,
    SendNotificationView,
    VapidPublicKeyView,
)
from notifications.webhooks import DomainEventWebhookView

app_name = "notifications"

urlpatterns = [
    path("notifications/", NotificationView.as_view(), name="notification-list"),
    path(
        "notifications/badge-count/",
        BadgeCountView.as_view(),
        name="badge-count",
    ),
    path(
        "notifications/webhooks/domain-events/",
        DomainEventWebhookView.as_view(),
        name="domain-event-webhook",
    ),
    path("push/subscribe/", PushSubscriptionView.as_view(), name="push-subscribe"),
    path(
        "push/vapid-public-key/",
        VapidPublicKeyView.as_view(),
        name="push-vapid-public-key",
    ),
    path("push/send/", SendNotificationView.as_view(), name="push-send"),
]
