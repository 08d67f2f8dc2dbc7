"""
Tests for WebPushTransport error classification.
"""

import json

import pytest
import requests
from pywebpush import WebPushException

from notifications.push import PushDeliveryError, PushGoneError, WebPushTransport
from notifications.tests.factories import PushSubscriptionFactory


@pytest.fixture
def transport():
    return WebPushTransport(
        vapid_private_key="private-key",
        vapid_subject="mailto:ops@example.com",
        ttl=60,
        timeout=5,
    )


def _push_error(mocker, status_code):
    response = mocker.Mock(status_code=status_code)
    return WebPushException("Push failed", response=response)


class TestWebPushTransport:
    """
    Verifies:
    - pywebpush is called with the subscription, JSON body and VAPID claims
    - 404/410 become PushGoneError, every other failure PushDeliveryError
    """

    def test_sends_with_vapid(self, transport, user, mocker):
        subscription = PushSubscriptionFactory(user=user)
        webpush = mocker.patch("notifications.push.webpush")

        transport.send(subscription, {"title": "Hi", "body": "Jasmine"})

        kwargs = webpush.call_args.kwargs
        assert kwargs["subscription_info"] == subscription.to_subscription_info()
        assert json.loads(kwargs["data"]) == {"title": "Hi", "body": "Jasmine"}
        assert kwargs["vapid_private_key"] == "private-key"
        assert kwargs["vapid_claims"] == {"sub": "mailto:ops@example.com"}
        assert kwargs["ttl"] == 60
        assert kwargs["timeout"] == 5

    @pytest.mark.parametrize("status_code", [404, 410])
    def test_gone(self, transport, user, mocker, status_code):
        subscription = PushSubscriptionFactory(user=user)
        mocker.patch(
            "notifications.push.webpush",
            side_effect=_push_error(mocker, status_code),
        )

        with pytest.raises(PushGoneError) as exc_info:
            transport.send(subscription, {})

        assert exc_info.value.status_code == status_code

    @pytest.mark.parametrize("status_code", [400, 429, 500, 503])
    def test_other_http_errors(self, transport, user, mocker, status_code):
        subscription = PushSubscriptionFactory(user=user)
        mocker.patch(
            "notifications.push.webpush",
            side_effect=_push_error(mocker, status_code),
        )

        with pytest.raises(PushDeliveryError) as exc_info:
            transport.send(subscription, {})

        assert not isinstance(exc_info.value, PushGoneError)
        assert exc_info.value.status_code == status_code

    def test_timeout(self, transport, user, mocker):
        subscription = PushSubscriptionFactory(user=user)
        mocker.patch(
            "notifications.push.webpush",
            side_effect=requests.exceptions.Timeout("read timed out"),
        )

        with pytest.raises(PushDeliveryError):
            transport.send(subscription, {})

    def test_missing_private_key(self, user, mocker):
        subscription = PushSubscriptionFactory(user=user)
        webpush = mocker.patch("notifications.push.webpush")

        with pytest.raises(PushDeliveryError):
            WebPushTransport("", "mailto:ops@example.com").send(subscription, {})

        webpush.assert_not_called()
