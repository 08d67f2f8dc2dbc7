"""
Factory Boy factories for notification models.

Usage:
    from notifications.tests.factories import (
        NotificationFactory,
        OrderNotificationFactory,
        PushSubscriptionFactory,
    )

    # System notification for a user
    notification = NotificationFactory(recipient=user)

    # Read order notification in the orders inbox
    notification = OrderNotificationFactory(recipient=user, is_read=True)

    # Two devices for the same user
    PushSubscriptionFactory.create_batch(2, user=user)
"""

import factory

from authentication.tests.factories import UserFactory
from notifications.models import NotificationType, ProjectSource


class NotificationFactory(factory.django.DjangoModelFactory):
    """
    Factory for Notification model.

    Creates unread system notifications without actor by default.
    """

    class Meta:
        model = "notifications.Notification"

    recipient = factory.SubFactory(UserFactory)
    actor = None  # System notification by default
    notification_type = NotificationType.SYSTEM
    title = factory.Faker("sentence", nb_words=5)
    body = factory.Faker("paragraph", nb_sentences=2)
    data = factory.LazyFunction(dict)
    is_read = False
    project_source = ""


class OrderNotificationFactory(NotificationFactory):
    """Order status notification with a valid OrderStatusPayload."""

    notification_type = NotificationType.OWNER_APPROVED
    related_entity_id = factory.Sequence(lambda n: str(1000 + n))
    project_source = ProjectSource.ORDERS
    data = factory.LazyAttribute(
        lambda o: {
            "entity_id": o.related_entity_id,
            "new_status": "admin_approved",
            "url": f"/orders/{o.related_entity_id}",
        }
    )


class ProjectNotificationFactory(NotificationFactory):
    """Project event notification with a valid ProjectEventPayload."""

    notification_type = NotificationType.PROJECT_ASSIGNED
    related_entity_id = factory.Sequence(lambda n: str(500 + n))
    project_source = ProjectSource.PROJECTS
    data = factory.LazyAttribute(
        lambda o: {
            "entity_id": o.related_entity_id,
            "event": "assigned",
            "url": f"/projects/{o.related_entity_id}",
        }
    )


class PushSubscriptionFactory(factory.django.DjangoModelFactory):
    """
    Factory for PushSubscription model.

    Endpoints are unique, mimicking FCM push service URLs.
    """

    class Meta:
        model = "notifications.PushSubscription"

    user = factory.SubFactory(UserFactory)
    endpoint = factory.Sequence(
        lambda n: f"https://fcm.googleapis.com/fcm/send/device-token-{n}"
    )
    p256dh = "BNcRdreALRFXTkOOUHK1EtK2wtaz5Ry4YfYCA_0QTpQtUbVlUls0VJXg7A8u-Ts1XbjhazAkj7I99e8QcYP7DkM"
    auth = "tBHItJI5svbpez7KI4CCXg"
    device_info = factory.LazyFunction(
        lambda: {"userAgent": "Mozilla/5.0 (X11; Linux x86_64)", "platform": "Linux"}
    )
