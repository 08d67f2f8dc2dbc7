from rest_framework.permissions import BasePermission


class IsNotificationSender(BasePermission):
    """Admin and sub-admin users (and staff) may send notifications by hand."""

    message = "Only administrators can send notifications."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return bool(user.is_staff or getattr(user, "is_admin_role", False))
