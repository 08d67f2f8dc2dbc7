"""
Typed notification payloads.

Notification.data is a tagged union keyed by notification_type:

    order types     -> OrderStatusPayload(entity_id, new_status, url, old_status?, order_number?)
    project types   -> ProjectEventPayload(entity_id, event, url, project_name?)
    system          -> SystemPayload(url?, entity_id?, message?)

Payloads are validated when a notification is created. Unknown keys,
missing required keys and non-string values raise core ValidationError
with error code INVALID_PAYLOAD, so nothing untyped reaches the database.

Usage:
    from notifications.payloads import OrderStatusPayload, validate_payload

    data = OrderStatusPayload(
        entity_id="42", new_status="admin_approved", url=detail_path("order", "42")
    ).to_dict()
    validate_payload(NotificationType.OWNER_APPROVED, data)
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import ClassVar

from core.exceptions import ValidationError

from notifications.models import (
    ORDER_NOTIFICATION_TYPES,
    PROJECT_NOTIFICATION_TYPES,
    NotificationDomain,
    NotificationType,
)

INVALID_PAYLOAD = "INVALID_PAYLOAD"

# Browser routes per domain; the receiver resolves clicks against the same table
DETAIL_ROUTES = {
    NotificationDomain.ORDER: "/orders",
    NotificationDomain.PROJECT: "/projects",
}


def detail_path(domain: str | None, entity_id: str | None) -> str | None:
    """
    Return the dashboard route for an entity.

    Example:
        detail_path("order", "42")   # "/orders/42"
        detail_path("project", None) # "/projects"
        detail_path(None, "42")      # None
    """
    base = DETAIL_ROUTES.get(domain)
    if base is None:
        return None
    return f"{base}/{entity_id}" if entity_id else base


@dataclass(frozen=True)
class _Payload:
    """Common validation for payload dataclasses."""

    required: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in fields(cls)}

    @classmethod
    def from_dict(cls, notification_type: str, data: dict):
        if not isinstance(data, dict):
            raise ValidationError(
                f"Payload for {notification_type} must be an object",
                error_code=INVALID_PAYLOAD,
            )

        errors: dict[str, list[str]] = {}
        unexpected = sorted(set(data) - cls.field_names())
        for key in unexpected:
            errors[key] = ["Unexpected key."]
        for key in cls.required:
            if data.get(key) in (None, ""):
                errors[key] = ["This field is required."]
        for key, value in data.items():
            if key in cls.field_names() and value is not None and not isinstance(value, str):
                errors.setdefault(key, []).append("Must be a string.")

        if errors:
            raise ValidationError(
                f"Invalid payload for {notification_type}",
                error_code=INVALID_PAYLOAD,
                details=errors,
            )
        return cls(**data)

    def to_dict(self) -> dict:
        return {key: value for key, value in asdict(self).items() if value is not None}


@dataclass(frozen=True)
class OrderStatusPayload(_Payload):
    """Purchase order status change."""

    required: ClassVar[tuple[str, ...]] = ("entity_id", "new_status", "url")

    entity_id: str = ""
    new_status: str = ""
    url: str = ""
    old_status: str | None = None
    order_number: str | None = None


@dataclass(frozen=True)
class ProjectEventPayload(_Payload):
    """Project lifecycle event."""

    required: ClassVar[tuple[str, ...]] = ("entity_id", "event", "url")

    entity_id: str = ""
    event: str = ""
    url: str = ""
    project_name: str | None = None


@dataclass(frozen=True)
class SystemPayload(_Payload):
    """Manual or operational message; every key is optional."""

    url: str | None = None
    entity_id: str | None = None
    message: str | None = None


def payload_class_for(notification_type: str) -> type[_Payload]:
    """
    Return the payload dataclass for a notification type.

    Raises:
        ValidationError: If the type is unknown
    """
    if notification_type in ORDER_NOTIFICATION_TYPES:
        return OrderStatusPayload
    if notification_type in PROJECT_NOTIFICATION_TYPES:
        return ProjectEventPayload
    if notification_type == NotificationType.SYSTEM:
        return SystemPayload
    raise ValidationError(
        f"Unknown notification type: {notification_type}",
        error_code=INVALID_PAYLOAD,
        details={"notification_type": [f"'{notification_type}' is not a valid choice."]},
    )


def validate_payload(notification_type: str, data: dict | None) -> dict:
    """
    Validate data against the payload shape of notification_type.

    Returns:
        The normalised payload dict (None-valued optional keys dropped)

    Raises:
        ValidationError: INVALID_PAYLOAD on unknown type, unknown keys,
            missing required keys or non-string values
    """
    payload_class = payload_class_for(notification_type)
    return payload_class.from_dict(notification_type, data or {}).to_dict()
