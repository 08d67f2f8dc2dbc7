"""
Views for the notification and push API.

Views:
    NotificationView: Inbox list, bulk mark-read and bulk delete
    BadgeCountView: Badge counters for the dashboard
    PushSubscriptionView: Register, check and remove a Web Push subscription
    VapidPublicKeyView: VAPID application server key for PushManager.subscribe
    SendNotificationView: Manual notification by an administrator

Endpoints:
    GET    /api/v1/notifications/ - Page of the user's notifications
    PATCH  /api/v1/notifications/ - Mark selected or all notifications read
    DELETE /api/v1/notifications/ - Delete selected or all notifications
    GET    /api/v1/notifications/badge-count/ - Badge counters

    POST   /api/v1/push/subscribe/ - Register a subscription
    GET    /api/v1/push/subscribe/?endpoint=... - Is this endpoint registered
    DELETE /api/v1/push/subscribe/ - Remove a subscription
    GET    /api/v1/push/vapid-public-key/ - VAPID public key
    POST   /api/v1/push/send/ - Send a notification to one user (admins)

Reads degrade: a database failure while listing or counting is logged
and answered with an empty result, so the dashboard keeps rendering.
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.db import DatabaseError
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.services import UserDirectoryService
from core.exceptions import NotFoundError

from notifications.badge import BadgeService
from notifications.dispatcher import NotificationDispatcher
from notifications.permissions import IsNotificationSender
from notifications.serializers import (
    BadgeCountSerializer,
    DeletedCountSerializer,
    DeleteRequestSerializer,
    ErrorResponseSerializer,
    MarkReadRequestSerializer,
    NotificationListQuerySerializer,
    NotificationListResponseSerializer,
    NotificationSerializer,
    PushStatusSerializer,
    PushSubscribeRequestSerializer,
    PushSubscriptionResponseSerializer,
    PushUnsubscribeRequestSerializer,
    SendNotificationRequestSerializer,
    SendNotificationResponseSerializer,
    UnsubscribedSerializer,
    UpdatedCountSerializer,
    VapidPublicKeySerializer,
)
from notifications.services import (
    NotificationPage,
    NotificationService,
    SubscriptionService,
)

logger = logging.getLogger(__name__)

PROJECT_SOURCE_PARAMETER = OpenApiParameter(
    name="project_source",
    type=OpenApiTypes.STR,
    location=OpenApiParameter.QUERY,
    description="Restrict to one inbox area (orders or projects)",
    required=False,
    enum=["orders", "projects"],
)


def _project_source(request) -> str | None:
    return request.query_params.get("project_source") or None


def device_info_from_headers(request) -> dict:
    """Best-effort device info when the client did not send any."""
    language = request.headers.get("Accept-Language", "")
    return {
        "userAgent": request.headers.get("User-Agent", ""),
        "language": language.split(",")[0].strip(),
    }


# =============================================================================
# Inbox
# =============================================================================


class NotificationView(APIView):
    """
    The authenticated user's notification inbox.

    Only the requesting user's notifications are ever visible or changed.
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_notifications",
        summary="List notifications",
        description=(
            "Newest-first page of the authenticated user's notifications, "
            "with the total of the filtered set and the unread count."
        ),
        parameters=[
            OpenApiParameter(name="page", type=OpenApiTypes.INT, required=False),
            OpenApiParameter(
                name="limit",
                type=OpenApiTypes.INT,
                required=False,
                description=f"Page size, at most {settings.NOTIFICATION_LIST_MAX_LIMIT}",
            ),
            OpenApiParameter(
                name="unreadOnly",
                type=OpenApiTypes.BOOL,
                required=False,
                description="Only unread notifications",
            ),
            PROJECT_SOURCE_PARAMETER,
        ],
        responses={200: NotificationListResponseSerializer},
        tags=["Notifications - Inbox"],
    )
    def get(self, request):
        query = NotificationListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        try:
            page = NotificationService.list_notifications(
                request.user,
                page=params["page"],
                limit=params["limit"],
                unread_only=params["unread_only"],
                project_source=params.get("project_source") or None,
            )
        except DatabaseError:
            logger.exception(f"Failed to list notifications for user {request.user.id}")
            page = NotificationPage.empty()

        return Response(
            {
                "notifications": NotificationSerializer(page.items, many=True).data,
                "unreadCount": page.unread_count,
                "total": page.total,
                "page": page.page,
                "limit": page.limit,
            }
        )

    @extend_schema(
        operation_id="mark_notifications_read",
        summary="Mark notifications as read",
        description=(
            "Mark the given notifications, or all of them with markAll, as read. "
            "Give exactly one of notificationIds and markAll. Ids that are "
            "unknown or belong to someone else are skipped. updated counts only "
            "notifications that were unread."
        ),
        request=MarkReadRequestSerializer,
        responses={
            200: UpdatedCountSerializer,
            400: OpenApiResponse(
                response=ErrorResponseSerializer,
                description="Neither or both of notificationIds and markAll given",
            ),
        },
        tags=["Notifications - Inbox"],
    )
    def patch(self, request):
        serializer = MarkReadRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = NotificationService.mark_read(
            request.user, ids=data.get("ids"), mark_all=data["mark_all"]
        )
        if not result:
            return Response(result.to_response(), status=status.HTTP_400_BAD_REQUEST)
        return Response({"updated": result.data})

    @extend_schema(
        operation_id="delete_notifications",
        summary="Delete notifications",
        description=(
            "Permanently delete the given notifications, or all of them with "
            "deleteAll. Give exactly one of notificationIds and deleteAll."
        ),
        request=DeleteRequestSerializer,
        responses={
            200: DeletedCountSerializer,
            400: OpenApiResponse(
                response=ErrorResponseSerializer,
                description="Neither or both of notificationIds and deleteAll given",
            ),
        },
        tags=["Notifications - Inbox"],
    )
    def delete(self, request):
        serializer = DeleteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = NotificationService.delete_notifications(
            request.user, ids=data.get("ids"), delete_all=data["delete_all"]
        )
        if not result:
            return Response(result.to_response(), status=status.HTTP_400_BAD_REQUEST)
        return Response({"deleted": result.data})


class BadgeCountView(APIView):
    """Badge counters: unread, pending work, and what the badge shows."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="get_badge_count",
        summary="Get badge count",
        description=(
            "displayCount is the unread count, or the pending-work count when "
            "nothing is unread. All counters are 0 if they cannot be computed."
        ),
        parameters=[PROJECT_SOURCE_PARAMETER],
        responses={200: BadgeCountSerializer},
        tags=["Notifications - Inbox"],
    )
    def get(self, request):
        try:
            state = BadgeService.get_badge_state(request.user, _project_source(request))
        except DatabaseError:
            logger.exception(f"Failed to compute badge for user {request.user.id}")
            return Response({"displayCount": 0, "unreadCount": 0, "pendingCount": 0})

        return Response(
            {
                "displayCount": state.display_count,
                "unreadCount": state.unread_count,
                "pendingCount": state.pending_count,
            }
        )


# =============================================================================
# Push subscriptions
# =============================================================================


class PushSubscriptionView(APIView):
    """Web Push subscription of the current browser."""

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="push_subscribe",
        summary="Register push subscription",
        description=(
            "Register the browser's PushSubscription. Registering a known "
            "endpoint replaces its keys. When deviceInfo is omitted it is taken "
            "from the User-Agent and Accept-Language headers."
        ),
        request=PushSubscribeRequestSerializer,
        responses={
            201: PushSubscriptionResponseSerializer,
            400: OpenApiResponse(
                response=ErrorResponseSerializer,
                description="Invalid subscription",
            ),
        },
        tags=["Notifications - Push"],
    )
    def post(self, request):
        serializer = PushSubscribeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        subscription = data["subscription"]

        result = SubscriptionService.register(
            request.user,
            endpoint=subscription["endpoint"],
            p256dh=subscription["keys"]["p256dh"],
            auth=subscription["keys"]["auth"],
            device_info=data.get("device_info") or device_info_from_headers(request),
        )
        if not result:
            return Response(result.to_response(), status=status.HTTP_400_BAD_REQUEST)

        return Response(
            PushSubscriptionResponseSerializer(result.data).data,
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="push_subscription_status",
        summary="Check push subscription",
        description="Whether the given endpoint is registered for the current user.",
        parameters=[
            OpenApiParameter(
                name="endpoint",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=True,
            ),
        ],
        responses={200: PushStatusSerializer},
        tags=["Notifications - Push"],
    )
    def get(self, request):
        endpoint = request.query_params.get("endpoint", "")
        return Response(
            {"isSubscribed": SubscriptionService.is_subscribed(request.user, endpoint)}
        )

    @extend_schema(
        operation_id="push_unsubscribe",
        summary="Remove push subscription",
        description="Remove the current user's subscription for an endpoint.",
        request=PushUnsubscribeRequestSerializer,
        responses={200: UnsubscribedSerializer},
        tags=["Notifications - Push"],
    )
    def delete(self, request):
        serializer = PushUnsubscribeRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        count = SubscriptionService.unregister(
            serializer.validated_data["endpoint"], user=request.user
        )
        return Response({"unsubscribed": count > 0})


class VapidPublicKeyView(APIView):
    """VAPID public key; needed before the browser can subscribe."""

    permission_classes = [AllowAny]

    @extend_schema(
        operation_id="push_vapid_public_key",
        summary="Get VAPID public key",
        responses={
            200: VapidPublicKeySerializer,
            503: OpenApiResponse(description="Push is not configured"),
        },
        tags=["Notifications - Push"],
    )
    def get(self, request):
        public_key = settings.WEBPUSH_VAPID_PUBLIC_KEY
        if not public_key:
            return Response(
                {"detail": "Push notifications are not configured."},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return Response({"publicKey": public_key})


class SendNotificationView(APIView):
    """Manual notification to a single user, pushed to all of their devices."""

    permission_classes = [IsNotificationSender]

    @extend_schema(
        operation_id="push_send",
        summary="Send notification",
        description=(
            "Create a notification for one user and push it to every device "
            "they registered. Restricted to admin and sub-admin users."
        ),
        request=SendNotificationRequestSerializer,
        responses={
            201: SendNotificationResponseSerializer,
            400: OpenApiResponse(
                response=ErrorResponseSerializer,
                description="Payload does not match the notification type",
            ),
            403: OpenApiResponse(description="Not an administrator"),
            404: OpenApiResponse(description="Recipient not found or inactive"),
        },
        tags=["Notifications - Push"],
    )
    def post(self, request):
        serializer = SendNotificationRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        recipient = UserDirectoryService.get_active_user(data["user_id"])
        if recipient is None:
            raise NotFoundError(f"User {data['user_id']} not found")

        result = NotificationService.create_notification(
            recipient_id=recipient.id,
            notification_type=data["notification_type"],
            title=data["title"],
            body=data["body"],
            data=data["data"],
            related_entity_id=data.get("entity_id"),
            actor_id=request.user.id,
        )
        if not result:
            return Response(result.to_response(), status=status.HTTP_400_BAD_REQUEST)

        report = NotificationDispatcher().deliver(result.data)
        logger.info(
            f"User {request.user.id} sent notification {result.data.id} "
            f"to user {recipient.id}"
        )
        return Response(
            {
                "notificationId": str(result.data.id),
                "queued": report.pushes_queued,
                "failed": report.pushes_failed,
            },
            status=status.HTTP_201_CREATED,
        )
