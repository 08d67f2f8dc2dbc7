"""
Seed version 1 of the notification target map.

The rows are frozen here; notifications/data/target_map.json may move on
and is loaded as a new version with the load_target_map management command.
"""

from django.db import migrations

SEED_VERSION = 1

# (domain, status, notification_type, roles, include_creator)
SEED_RULES = [
    ("order", "created", "order_created", ["engineering"], False),
    ("order", "engineering_reviewed", "engineering_review", ["admin", "sub-admin"], True),
    ("order", "admin_review", "admin_review", ["engineering"], True),
    ("order", "admin_approved", "owner_approved", ["purchasing", "engineering"], True),
    ("order", "admin_rejected", "owner_rejected", ["engineering"], True),
    ("order", "purchasing", "purchasing_started", ["admin", "sub-admin", "engineering", "site"], True),
    ("order", "closed", "order_closed", ["admin", "sub-admin", "engineering", "site"], True),
    ("order", "item_updated", "item_status_changed", ["engineering"], True),
    ("project", "created", "project_created", ["admin", "sub-admin", "engineering"], False),
    ("project", "assigned", "project_assigned", ["engineering", "site"], False),
    ("project", "step_completed", "project_step_completed", ["admin", "sub-admin"], True),
    ("project", "completed", "project_completed", ["admin", "sub-admin", "engineering", "site"], True),
    ("project", "overdue", "project_overdue", ["admin", "sub-admin"], True),
]

# (notification_type, title, body)
SEED_TEMPLATES = [
    (
        "order_created",
        "New purchase order",
        'Purchase order "{entity_name}" was created and is waiting for engineering review.',
    ),
    (
        "engineering_review",
        "Engineering review completed",
        'Purchase order "{entity_name}" passed engineering review and needs administration approval.',
    ),
    (
        "admin_review",
        "Order returned for review",
        'Administration sent purchase order "{entity_name}" back for review.',
    ),
    (
        "owner_approved",
        "Purchase order approved",
        'Purchase order "{entity_name}" was approved by administration.',
    ),
    (
        "owner_rejected",
        "Purchase order rejected",
        'Purchase order "{entity_name}" was rejected by administration.',
    ),
    (
        "purchasing_started",
        "Purchasing started",
        'Purchasing for order "{entity_name}" is in progress.',
    ),
    (
        "order_closed",
        "Purchase order closed",
        'Purchase order "{entity_name}" was closed.',
    ),
    (
        "item_status_changed",
        "Order item updated",
        'An item in purchase order "{entity_name}" changed from {old_status} to {status}.',
    ),
    ("project_created", "New project", 'Project "{entity_name}" was created.'),
    ("project_assigned", "Project assigned", 'Project "{entity_name}" was assigned to your team.'),
    (
        "project_step_completed",
        "Project step completed",
        'A step of project "{entity_name}" was completed.',
    ),
    ("project_completed", "Project completed", 'Project "{entity_name}" is complete.'),
    ("project_overdue", "Project overdue", 'Project "{entity_name}" is past its due date.'),
]


def seed_target_map(apps, schema_editor):
    NotificationTargetRule = apps.get_model("notifications", "NotificationTargetRule")
    NotificationTemplate = apps.get_model("notifications", "NotificationTemplate")

    NotificationTargetRule.objects.bulk_create(
        [
            NotificationTargetRule(
                domain=domain,
                status=status,
                notification_type=notification_type,
                roles=roles,
                include_creator=include_creator,
                version=SEED_VERSION,
            )
            for domain, status, notification_type, roles, include_creator in SEED_RULES
        ]
    )
    NotificationTemplate.objects.bulk_create(
        [
            NotificationTemplate(
                notification_type=notification_type,
                title_template=title,
                body_template=body,
                version=SEED_VERSION,
            )
            for notification_type, title, body in SEED_TEMPLATES
        ]
    )


def remove_seed(apps, schema_editor):
    apps.get_model("notifications", "NotificationTargetRule").objects.filter(
        version=SEED_VERSION
    ).delete()
    apps.get_model("notifications", "NotificationTemplate").objects.filter(
        version=SEED_VERSION
    ).delete()


class Migration(migrations.Migration):

    dependencies = [
        ("notifications", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_target_map, remove_seed),
    ]
