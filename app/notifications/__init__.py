"""
Notifications app for the inbox, targeting and Web Push delivery.

This app provides:
- NotificationTargetRule / NotificationTemplate models holding the versioned target map
- Notification model for the per-user inbox
- PushSubscription model for registered browser devices
- NotificationDispatcher for turning domain events into notifications and pushes
- Celery tasks for async dispatch and Web Push sends
- REST API for the inbox, badge count and push subscriptions

Usage:
    from notifications.dispatcher import NotificationDispatcher
    from notifications.targeting import DomainEvent

    report = NotificationDispatcher().dispatch(
        DomainEvent(
            domain="order",
            status="admin_approved",
            entity_id="42",
            entity_name="PO-42",
            actor_user_id=admin.id,
            actor_role="admin",
        )
    )
"""
