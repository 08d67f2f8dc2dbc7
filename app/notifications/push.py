"""
Web Push transport.

Thin wrapper around pywebpush that classifies failures:

    PushGoneError       404/410 from the push service; the subscription is dead
    PushDeliveryError   anything else (5xx, 429, timeouts, missing VAPID key)

Nothing is retried here. Callers send each subscription at most once
and treat PushDeliveryError as a lost message.

Usage:
    transport = WebPushTransport.from_settings()
    try:
        transport.send(subscription, payload)
    except PushGoneError:
        SubscriptionService.forget(subscription)
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import requests
from django.conf import settings
from pywebpush import WebPushException, webpush

from core.exceptions import ExternalServiceError

if TYPE_CHECKING:
    from notifications.models import PushSubscription

logger = logging.getLogger(__name__)

GONE_STATUS_CODES = frozenset({404, 410})


class PushDeliveryError(ExternalServiceError):
    """A push could not be delivered; the subscription may still be valid."""

    default_error_code = "PUSH_DELIVERY_FAILED"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(
            message,
            details={"status_code": status_code} if status_code is not None else None,
        )
        self.status_code = status_code


class PushGoneError(PushDeliveryError):
    """The push service no longer knows this subscription."""

    default_error_code = "PUSH_SUBSCRIPTION_GONE"


class WebPushTransport:
    """
    Sends encrypted Web Push messages with VAPID authentication.

    Args:
        vapid_private_key: VAPID private key (PEM or base64url DER)
        vapid_subject: "mailto:" or https URI for the VAPID sub claim
        ttl: Seconds the push service keeps an undelivered message
        timeout: Seconds before the HTTP call is abandoned
    """

    def __init__(
        self,
        vapid_private_key: str,
        vapid_subject: str,
        ttl: int = 86400,
        timeout: int = 10,
    ):
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.ttl = ttl
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> WebPushTransport:
        return cls(
            vapid_private_key=settings.WEBPUSH_VAPID_PRIVATE_KEY,
            vapid_subject=settings.WEBPUSH_VAPID_SUBJECT,
            ttl=settings.WEBPUSH_TTL_SECONDS,
            timeout=settings.WEBPUSH_TIMEOUT_SECONDS,
        )

    def send(self, subscription: PushSubscription, payload: dict) -> None:
        """
        Deliver payload to one subscription.

        Raises:
            PushGoneError: Push service answered 404 or 410
            PushDeliveryError: Any other failure, including timeouts
        """
        if not self.vapid_private_key:
            raise PushDeliveryError("WEBPUSH_VAPID_PRIVATE_KEY is not configured")

        try:
            webpush(
                subscription_info=subscription.to_subscription_info(),
                data=json.dumps(payload, ensure_ascii=False),
                vapid_private_key=self.vapid_private_key,
                # pywebpush adds aud/exp to the claims dict, so pass a fresh one
                vapid_claims={"sub": self.vapid_subject},
                ttl=self.ttl,
                timeout=self.timeout,
                headers={"Urgency": "high"},
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            if status_code in GONE_STATUS_CODES:
                raise PushGoneError(
                    f"Subscription gone ({status_code})", status_code=status_code
                ) from e
            raise PushDeliveryError(str(e), status_code=status_code) from e
        except requests.RequestException as e:
            raise PushDeliveryError(f"Push service unreachable: {e}") from e
        except ValueError as e:
            # Undecodable subscription keys or VAPID key
            raise PushDeliveryError(f"Cannot encrypt push message: {e}") from e
