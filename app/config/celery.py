"""
Celery configuration for the orderflow backend.

Celery runs the notification side effects that must not block a request:
- Per-device Web Push sends (notifications.tasks.send_web_push)
- Fire-and-forget dispatch of domain events (notifications.tasks.dispatch_domain_event)

Redis is both the message broker and the result backend. Tasks are
auto-discovered from all installed Django apps.

Usage:
    from notifications.tasks import dispatch_domain_event

    dispatch_domain_event.delay(event.to_dict())

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
