"""
Authentication models.

- Role: The dashboard roles notifications are addressed to
- User: Custom user model with email-based authentication and a single role

Related files:
    - managers.py: Custom user manager for email-based creation
    - services.py: UserDirectoryService (role -> active user ids)
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class Role(models.TextChoices):
    """
    Dashboard roles.

    Values are the role strings used by the notification target map,
    so renaming one requires loading a new target map version.
    """

    ADMIN = "admin", "Administrator"
    SUB_ADMIN = "sub-admin", "Sub-administrator"
    ENGINEERING = "engineering", "Engineering"
    SITE = "site", "Site"
    PURCHASING = "purchasing", "Purchasing"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        full_name: Name shown as the actor of notifications
        role: Dashboard role used for notification fan-out
        email_verified: Whether the user's email has been verified
        is_active: Inactive users receive no notifications
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified

    Usage:
        user = User.objects.create_user(
            email="engineer@example.com",
            password="securepassword",
            role=Role.ENGINEERING,
        )
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    full_name = models.CharField(
        max_length=150,
        blank=True,
        default="",
        help_text="Display name used in notification texts",
    )
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.SITE,
        db_index=True,
        help_text="Dashboard role; notifications are addressed by role",
    )
    email_verified = models.BooleanField(
        default=False,
        help_text="Whether the user's email has been verified",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]
        indexes = [
            models.Index(
                fields=["role", "is_active"],
                name="user_role_active_idx",
            ),
        ]

    def __str__(self):
        return self.email

    def get_full_name(self):
        return self.full_name or self.email

    def get_short_name(self):
        return self.full_name.split(" ")[0] if self.full_name else self.email.split("@")[0]

    @property
    def is_admin_role(self) -> bool:
        """Admins and sub-admins may send manual notifications."""
        return self.role in (Role.ADMIN, Role.SUB_ADMIN)
