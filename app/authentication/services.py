"""
User directory service.

The notification dispatcher only needs one question answered about users:
which active accounts hold a given set of roles. This module answers it
so the notifications app never queries the user table directly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.services import BaseService

from authentication.models import User

if TYPE_CHECKING:
    from collections.abc import Iterable


class UserDirectoryService(BaseService):
    """Read-only lookups over users by role."""

    @classmethod
    def active_user_ids_for_roles(cls, roles: Iterable[str]) -> set[int]:
        """
        Return ids of active users holding any of the given roles.

        An empty role set, or roles nobody holds, yields an empty set.
        """
        roles = set(roles)
        if not roles:
            return set()

        ids = set(
            User.objects.filter(role__in=roles, is_active=True).values_list(
                "id", flat=True
            )
        )
        cls.get_logger().debug(f"Resolved {len(ids)} active users for roles {sorted(roles)}")
        return ids

    @classmethod
    def role_of(cls, user_id: int) -> str | None:
        """Return the role of a user, or None if the user does not exist."""
        return User.objects.filter(id=user_id).values_list("role", flat=True).first()

    @classmethod
    def get_active_user(cls, user_id) -> User | None:
        """Return the active user with this id, or None."""
        return User.objects.filter(id=user_id, is_active=True).first()

    @classmethod
    def active_user_ids(cls, user_ids: Iterable[int]) -> set[int]:
        """Return the subset of user_ids that belong to active users."""
        user_ids = {user_id for user_id in user_ids if user_id is not None}
        if not user_ids:
            return set()
        return set(
            User.objects.filter(id__in=user_ids, is_active=True).values_list(
                "id", flat=True
            )
        )
