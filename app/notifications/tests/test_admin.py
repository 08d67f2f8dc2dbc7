"""
Tests for the target map admin forms.
"""

import json

from notifications.admin import (
    NotificationTargetRuleAdminForm,
    NotificationTemplateAdminForm,
)


def _rule_form(**overrides):
    data = {
        "domain": "order",
        "status": "cancelled",
        "notification_type": "order_closed",
        "roles": json.dumps(["admin"]),
        "include_creator": False,
        "version": 5,
        "is_active": True,
    }
    data.update(overrides)
    return NotificationTargetRuleAdminForm(data=data)


def _template_form(**overrides):
    data = {
        "notification_type": "order_created",
        "title_template": "New purchase order {entity_name}",
        "body_template": "",
        "version": 5,
        "is_active": True,
    }
    data.update(overrides)
    return NotificationTemplateAdminForm(data=data)


class TestTargetRuleAdminForm:
    """
    Verifies:
    - Rules mapping a domain to another domain's type are rejected
    - system is accepted for any domain
    - roles must be a list of strings
    """

    def test_valid_rule(self, db):
        assert _rule_form().is_valid()

    def test_system_rule(self, db):
        assert _rule_form(notification_type="system").is_valid()

    def test_type_from_other_domain(self, db):
        form = _rule_form(notification_type="project_completed")

        assert not form.is_valid()
        assert form.errors["notification_type"] == [
            "Rule: notification type 'project_completed' belongs to domain "
            "'project', not 'order'"
        ]

    def test_roles_must_be_list_of_strings(self, db):
        form = _rule_form(roles=json.dumps({"admin": True}))

        assert not form.is_valid()
        assert form.errors["roles"] == ["Roles must be a list of role strings."]


class TestTemplateAdminForm:
    """
    Verifies:
    - Only placeholders the resolver fills are accepted in title and body
    """

    def test_valid_template(self, db):
        assert _template_form(body_template="From {old_status} to {status}").is_valid()

    def test_unknown_placeholder(self, db):
        form = _template_form(title_template="New order {name}")

        assert not form.is_valid()
        assert form.errors["title_template"] == [
            "title_template: unknown placeholder {name}"
        ]

    def test_malformed_body(self, db):
        form = _template_form(body_template="Order {entity_name")

        assert not form.is_valid()
        assert "body_template" in form.errors
