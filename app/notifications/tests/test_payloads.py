"""
Tests for typed notification payloads.
"""

import pytest

from core.exceptions import ValidationError
from notifications.models import NotificationType
from notifications.payloads import (
    INVALID_PAYLOAD,
    OrderStatusPayload,
    ProjectEventPayload,
    SystemPayload,
    detail_path,
    payload_class_for,
    validate_payload,
)


class TestDetailPath:
    def test_routes(self):
        assert detail_path("order", "42") == "/orders/42"
        assert detail_path("project", "9") == "/projects/9"
        assert detail_path("project", None) == "/projects"
        assert detail_path(None, "42") is None


class TestPayloadClassFor:
    @pytest.mark.parametrize(
        "notification_type,expected",
        [
            (NotificationType.ORDER_CLOSED, OrderStatusPayload),
            (NotificationType.PROJECT_OVERDUE, ProjectEventPayload),
            (NotificationType.SYSTEM, SystemPayload),
        ],
    )
    def test_tag_selects_shape(self, notification_type, expected):
        assert payload_class_for(notification_type) is expected

    def test_unknown_type(self):
        with pytest.raises(ValidationError) as exc_info:
            payload_class_for("birthday")

        assert exc_info.value.error_code == INVALID_PAYLOAD


class TestValidatePayload:
    """
    Verifies:
    - Valid payloads pass through without None values
    - Unknown keys, missing required keys and non-strings are rejected
    """

    def test_valid_order_payload(self):
        data = validate_payload(
            NotificationType.OWNER_APPROVED,
            {"entity_id": "42", "new_status": "admin_approved", "url": "/orders/42"},
        )

        assert data == {"entity_id": "42", "new_status": "admin_approved", "url": "/orders/42"}

    def test_system_payload_may_be_empty(self):
        assert validate_payload(NotificationType.SYSTEM, None) == {}
        assert validate_payload(NotificationType.SYSTEM, {}) == {}

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(NotificationType.SYSTEM, {"message": "hi", "color": "red"})

        assert exc_info.value.error_code == INVALID_PAYLOAD
        assert "color" in exc_info.value.details

    def test_missing_required_key_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(
                NotificationType.PROJECT_ASSIGNED,
                {"entity_id": "5", "url": "/projects/5"},
            )

        assert exc_info.value.details == {"event": ["This field is required."]}

    def test_non_string_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_payload(
                NotificationType.ORDER_CLOSED,
                {"entity_id": 42, "new_status": "closed", "url": "/orders/42"},
            )

        assert exc_info.value.details == {"entity_id": ["Must be a string."]}

    def test_to_dict_drops_none(self):
        payload = ProjectEventPayload(entity_id="5", event="assigned", url="/projects/5")

        assert "project_name" not in payload.to_dict()
