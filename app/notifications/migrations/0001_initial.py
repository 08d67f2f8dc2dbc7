import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

NOTIFICATION_TYPE_CHOICES = [
    ("order_created", "Order created"),
    ("engineering_review", "Engineering review done"),
    ("admin_review", "Returned by administration"),
    ("owner_approved", "Approved by administration"),
    ("owner_rejected", "Rejected by administration"),
    ("purchasing_started", "Purchasing started"),
    ("order_closed", "Order closed"),
    ("item_status_changed", "Item status changed"),
    ("project_created", "Project created"),
    ("project_assigned", "Project assigned"),
    ("project_step_completed", "Project step completed"),
    ("project_completed", "Project completed"),
    ("project_overdue", "Project overdue"),
    ("system", "System"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="NotificationTargetRule",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("domain", models.CharField(choices=[("order", "Purchase order"), ("project", "Project")], help_text="Lifecycle domain this rule applies to", max_length=20)),
                ("status", models.CharField(help_text="Domain status string matched exactly", max_length=100)),
                ("notification_type", models.CharField(choices=NOTIFICATION_TYPE_CHOICES, help_text="Notification type produced for this status", max_length=50)),
                ("roles", models.JSONField(blank=True, default=list, help_text="Role strings that receive the notification")),
                ("include_creator", models.BooleanField(default=False, help_text="Also notify the user who caused the status change")),
                ("version", models.PositiveIntegerField(db_index=True, default=1, help_text="Target map version this rule belongs to")),
                ("is_active", models.BooleanField(default=True, help_text="Inactive rows are kept for history only")),
            ],
            options={
                "db_table": "notifications_target_rule",
                "ordering": ["-version", "domain", "status"],
                "indexes": [models.Index(fields=["is_active", "version"], name="notif_rule_active_version_idx")],
                "constraints": [models.UniqueConstraint(fields=("domain", "status", "version"), name="notif_target_rule_unique_per_version")],
            },
        ),
        migrations.CreateModel(
            name="NotificationTemplate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("notification_type", models.CharField(choices=NOTIFICATION_TYPE_CHOICES, help_text="Notification type rendered by this template", max_length=50)),
                ("title_template", models.CharField(help_text="Title format string, e.g. 'Order {entity_name} approved'", max_length=255)),
                ("body_template", models.TextField(blank=True, default="", help_text="Body format string")),
                ("version", models.PositiveIntegerField(db_index=True, default=1, help_text="Target map version this template belongs to")),
                ("is_active", models.BooleanField(default=True, help_text="Inactive rows are kept for history only")),
            ],
            options={
                "db_table": "notifications_template",
                "ordering": ["-version", "notification_type"],
                "constraints": [models.UniqueConstraint(fields=("notification_type", "version"), name="notif_template_unique_per_version")],
            },
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("related_entity_id", models.CharField(blank=True, help_text="Id of the order or project this notification is about", max_length=64, null=True)),
                ("title", models.CharField(help_text="Fully rendered notification title", max_length=500)),
                ("body", models.TextField(blank=True, default="", help_text="Fully rendered notification body")),
                ("notification_type", models.CharField(choices=NOTIFICATION_TYPE_CHOICES, default="system", help_text="Type of this notification", max_length=50)),
                ("data", models.JSONField(blank=True, default=dict, help_text="Validated payload for the notification type (deep link, statuses)")),
                ("is_read", models.BooleanField(default=False, help_text="Whether recipient has read this notification")),
                ("project_source", models.CharField(blank=True, choices=[("orders", "Orders"), ("projects", "Projects")], default="", help_text="Inbox area this notification belongs to", max_length=20)),
                ("actor", models.ForeignKey(blank=True, help_text="User who triggered this notification (optional)", null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="triggered_notifications", to=settings.AUTH_USER_MODEL)),
                ("recipient", models.ForeignKey(help_text="User receiving this notification", on_delete=django.db.models.deletion.CASCADE, related_name="notifications", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "notifications_notification",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["recipient", "is_read", "-created_at"], name="notif_recipient_unread_idx"),
                    models.Index(fields=["recipient", "project_source", "-created_at"], name="notif_recipient_source_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PushSubscription",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("endpoint", models.CharField(help_text="Push service endpoint URL", max_length=1024, unique=True)),
                ("p256dh", models.CharField(help_text="Client ECDH public key (base64url)", max_length=255)),
                ("auth", models.CharField(help_text="Client auth secret (base64url)", max_length=255)),
                ("device_info", models.JSONField(blank=True, default=dict, help_text="Browser/device details reported at subscription time")),
                ("last_used_at", models.DateTimeField(blank=True, help_text="When a push was last accepted for this endpoint", null=True)),
                ("user", models.ForeignKey(help_text="User who owns this subscription", on_delete=django.db.models.deletion.CASCADE, related_name="push_subscriptions", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "db_table": "notifications_push_subscription",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["user", "-created_at"], name="notif_push_sub_user_idx")],
            },
        ),
    ]
