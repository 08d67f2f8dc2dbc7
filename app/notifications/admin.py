"""
Django admin configuration for notification models.

Registers:
- NotificationTargetRule / NotificationTemplate: the versioned target map
- Notification: read-only, for support
- PushSubscription: registered devices

Rule and template forms run the same checks as the target map loader.
Saving or deleting a target map row drops the cached map so the change
is picked up by the next dispatch.
"""

from django import forms
from django.contrib import admin

from notifications.models import (
    Notification,
    NotificationTargetRule,
    NotificationTemplate,
    PushSubscription,
)
from notifications.services import TargetMapService
from notifications.targeting import check_placeholders, check_rule


class TargetMapAdminMixin:
    """Invalidates the cached target map after admin writes."""

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        TargetMapService.invalidate_cache()

    def delete_model(self, request, obj):
        super().delete_model(request, obj)
        TargetMapService.invalidate_cache()

    def delete_queryset(self, request, queryset):
        super().delete_queryset(request, queryset)
        TargetMapService.invalidate_cache()


class NotificationTargetRuleAdminForm(forms.ModelForm):
    """Applies the target map loader's domain/type and role checks to admin edits."""

    class Meta:
        model = NotificationTargetRule
        fields = "__all__"

    def clean(self):
        cleaned_data = super().clean()
        domain = cleaned_data.get("domain")
        notification_type = cleaned_data.get("notification_type")
        if domain and notification_type:
            for message in check_rule(domain, notification_type, "Rule"):
                self.add_error("notification_type", message)

        roles = cleaned_data.get("roles")
        if roles is not None and (
            not isinstance(roles, list)
            or not all(isinstance(role, str) for role in roles)
        ):
            self.add_error("roles", "Roles must be a list of role strings.")
        return cleaned_data


class NotificationTemplateAdminForm(forms.ModelForm):
    """Rejects placeholders the resolver cannot fill."""

    class Meta:
        model = NotificationTemplate
        fields = "__all__"

    def clean(self):
        cleaned_data = super().clean()
        for field_name in ("title_template", "body_template"):
            text = cleaned_data.get(field_name)
            if text:
                for message in check_placeholders(text, field_name):
                    self.add_error(field_name, message)
        return cleaned_data


@admin.register(NotificationTargetRule)
class NotificationTargetRuleAdmin(TargetMapAdminMixin, admin.ModelAdmin):
    form = NotificationTargetRuleAdminForm
    list_display = [
        "domain",
        "status",
        "notification_type",
        "roles",
        "include_creator",
        "version",
        "is_active",
    ]
    list_filter = ["is_active", "domain", "version"]
    search_fields = ["status", "notification_type"]
    ordering = ["-version", "domain", "status"]


@admin.register(NotificationTemplate)
class NotificationTemplateAdmin(TargetMapAdminMixin, admin.ModelAdmin):
    form = NotificationTemplateAdminForm
    list_display = ["notification_type", "title_template", "version", "is_active"]
    list_filter = ["is_active", "version"]
    search_fields = ["notification_type", "title_template"]
    ordering = ["-version", "notification_type"]


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """
    Admin configuration for Notification.

    Read-only view of notifications for debugging and support.
    """

    list_display = [
        "id",
        "recipient",
        "notification_type",
        "title",
        "project_source",
        "is_read",
        "created_at",
    ]
    list_filter = ["is_read", "notification_type", "project_source", "created_at"]
    search_fields = ["recipient__email", "title", "body", "related_entity_id"]
    ordering = ["-created_at"]
    readonly_fields = [
        "id",
        "recipient",
        "actor",
        "notification_type",
        "related_entity_id",
        "title",
        "body",
        "data",
        "project_source",
        "created_at",
        "updated_at",
    ]
    raw_id_fields = ["recipient", "actor"]


@admin.register(PushSubscription)
class PushSubscriptionAdmin(admin.ModelAdmin):
    list_display = ["id", "user", "short_endpoint", "last_used_at", "created_at"]
    list_filter = ["created_at", "last_used_at"]
    search_fields = ["user__email", "endpoint"]
    ordering = ["-created_at"]
    readonly_fields = ["id", "created_at", "updated_at", "last_used_at"]
    raw_id_fields = ["user"]

    @admin.display(description="Endpoint")
    def short_endpoint(self, obj):
        return f"{obj.endpoint[:60]}..." if len(obj.endpoint) > 60 else obj.endpoint
