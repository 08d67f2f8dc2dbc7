"""
Celery tasks for notification delivery.

Tasks:
    send_web_push: Deliver one push to one subscription (at most once)
    dispatch_domain_event: Run NotificationDispatcher.dispatch off the request path

Design:
    - send_web_push never retries. 404/410 deletes the subscription and
      every other failure is logged and dropped.
    - dispatch_domain_event retries on database errors. Records created
      before the failure may be duplicated by the retry.

Usage:
    from notifications.tasks import dispatch_domain_event

    dispatch_domain_event.delay(event.to_dict())
"""

from __future__ import annotations

import logging

from celery import shared_task
from django.db import DatabaseError

from notifications.dispatcher import NotificationDispatcher
from notifications.models import PushSubscription
from notifications.push import PushDeliveryError, PushGoneError, WebPushTransport
from notifications.services import SubscriptionService
from notifications.targeting import DomainEvent

logger = logging.getLogger(__name__)


@shared_task(ignore_result=True)
def send_web_push(subscription_id: str, payload: dict) -> bool:
    """
    Send a push payload to one subscription.

    Args:
        subscription_id: UUID string of the PushSubscription
        payload: JSON-safe push body (see dispatcher.build_push_payload)

    Returns:
        True if the push service accepted the message
    """
    subscription = PushSubscription.objects.filter(id=subscription_id).first()
    if subscription is None:
        logger.info(f"Push subscription {subscription_id} no longer exists, skipping")
        return False

    try:
        WebPushTransport.from_settings().send(subscription, payload)
    except PushGoneError as e:
        SubscriptionService.forget(subscription, reason=str(e))
        return False
    except PushDeliveryError as e:
        logger.warning(
            f"Push to subscription {subscription_id} failed "
            f"(status={e.status_code}): {e}"
        )
        return False

    SubscriptionService.touch(subscription)
    logger.debug(f"Push delivered to subscription {subscription_id}")
    return True


@shared_task(
    autoretry_for=(DatabaseError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
)
def dispatch_domain_event(event: dict) -> dict:
    """
    Dispatch a domain event given in DomainEvent.to_dict() form.

    Returns:
        DispatchReport as a dict
    """
    report = NotificationDispatcher().dispatch(DomainEvent.from_dict(event))
    return report.to_dict()
