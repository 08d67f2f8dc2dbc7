"""
Inbound webhook for domain events.

The order and project services report status changes here. Each request
is verified with an HMAC-SHA256 signature over the raw body:

    X-Webhook-Signature: sha256=<hex digest>

using DOMAIN_EVENT_WEBHOOK_SECRET. Verified events are handed to the
dispatch_domain_event Celery task and acknowledged with 202; the sender
does not wait for fan-out or delivery. Events whose old_status equals
their status are acknowledged with 200 and {"queued": false}.

The view is not rate limited; the upstream backend sends every status
change from one address.

Endpoints:
    POST /api/v1/notifications/webhooks/domain-events/
"""

from __future__ import annotations

import logging

from django.conf import settings
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import serializers, status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.services import UserDirectoryService
from core.helpers import verify_signature

from notifications.models import NotificationDomain
from notifications.targeting import DomainEvent
from notifications.tasks import dispatch_domain_event

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Webhook-Signature"


# =============================================================================
# Serializers
# =============================================================================


class DomainEventRequestSerializer(serializers.Serializer):
    """A status change in the order or project domain."""

    domain = serializers.ChoiceField(choices=NotificationDomain.choices)
    status = serializers.CharField(max_length=100)
    entity_id = serializers.CharField(max_length=64)
    entity_name = serializers.CharField(
        max_length=255, required=False, allow_blank=True, default=""
    )
    actor_user_id = serializers.IntegerField(required=False, allow_null=True)
    actor_role = serializers.CharField(
        max_length=20, required=False, allow_null=True, allow_blank=True
    )
    old_status = serializers.CharField(
        max_length=100, required=False, allow_null=True, allow_blank=True
    )


class WebhookAcceptedResponseSerializer(serializers.Serializer):
    queued = serializers.BooleanField()


class WebhookErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()
    details = serializers.DictField(required=False)


# =============================================================================
# Webhook Views
# =============================================================================


class DomainEventWebhookView(APIView):
    """
    Domain event webhook.

    Requires HMAC-SHA256 signature verification via X-Webhook-Signature.
    """

    permission_classes = [AllowAny]
    authentication_classes = []  # Signature-based validation
    throttle_classes = []

    @extend_schema(
        operation_id="domain_event_webhook",
        summary="Report a domain status change",
        description=(
            "Queue notifications for an order or project status change. "
            "Requires an HMAC-SHA256 signature of the raw body in the "
            "X-Webhook-Signature header. Events whose old_status equals "
            "status are acknowledged without queueing anything."
        ),
        request=DomainEventRequestSerializer,
        responses={
            200: OpenApiResponse(
                response=WebhookAcceptedResponseSerializer,
                description="Status unchanged, nothing queued",
            ),
            202: WebhookAcceptedResponseSerializer,
            400: OpenApiResponse(
                response=WebhookErrorResponseSerializer,
                description="Invalid request payload",
            ),
            401: OpenApiResponse(
                response=WebhookErrorResponseSerializer,
                description="Invalid or missing signature",
            ),
        },
        tags=["Notifications - Webhooks"],
    )
    def post(self, request):
        signature = request.headers.get(SIGNATURE_HEADER, "")
        secret = settings.DOMAIN_EVENT_WEBHOOK_SECRET

        if not verify_signature(request.body, signature, secret):
            logger.warning("Domain event webhook signature verification failed")
            return Response(
                {"error": "Invalid signature"},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        serializer = DomainEventRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"error": "Invalid payload", "details": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        data = serializer.validated_data
        if data.get("old_status") and data["old_status"] == data["status"]:
            logger.info(
                f"Skipped {data['domain']}:{data['status']} for entity "
                f"{data['entity_id']}, status unchanged"
            )
            return Response({"queued": False}, status=status.HTTP_200_OK)

        actor_role = data.get("actor_role") or None
        if actor_role is None and data.get("actor_user_id") is not None:
            actor_role = UserDirectoryService.role_of(data["actor_user_id"])

        event = DomainEvent(
            domain=data["domain"],
            status=data["status"],
            entity_id=data["entity_id"],
            entity_name=data["entity_name"],
            actor_user_id=data.get("actor_user_id"),
            actor_role=actor_role,
            old_status=data.get("old_status") or None,
        )
        dispatch_domain_event.delay(event.to_dict())

        logger.info(
            f"Queued {event.domain}:{event.status} for entity {event.entity_id}"
        )
        return Response({"queued": True}, status=status.HTTP_202_ACCEPTED)
