"""
Test configuration and fixtures for notification tests.

This module provides:
- Users per role for fan-out tests
- A small injected TargetMap so tests do not depend on the seeded map
- A recording push queue for dispatcher tests
- API client helpers for authenticated requests

Usage:
    def test_example(user, authenticated_client):
        response = authenticated_client.get("/api/v1/notifications/")
        assert response.status_code == 200
"""

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.models import Role
from authentication.tests.factories import UserFactory
from notifications.targeting import parse_target_map


@pytest.fixture(autouse=True)
def clear_cache():
    """The target map is cached; start every test from an empty cache."""
    cache.clear()
    yield
    cache.clear()


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """A site user receiving notifications."""
    return UserFactory(role=Role.SITE)


@pytest.fixture
def other_user(db):
    """Another user for isolation tests."""
    return UserFactory(role=Role.SITE)


@pytest.fixture
def admin_user(db):
    return UserFactory(role=Role.ADMIN)


@pytest.fixture
def engineer(db):
    return UserFactory(role=Role.ENGINEERING)


# =============================================================================
# Target map
# =============================================================================


@pytest.fixture
def target_map():
    """
    Small target map covering the cases dispatch tests need.

    order:admin_approved -> owner_approved to admin + engineering, plus creator
    order:created        -> order_created to engineering, no creator
    project:assigned     -> project_assigned to nobody but the creator
    """
    return parse_target_map(
        {
            "rules": [
                {
                    "domain": "order",
                    "status": "admin_approved",
                    "notification_type": "owner_approved",
                    "roles": ["admin", "engineering"],
                    "include_creator": True,
                },
                {
                    "domain": "order",
                    "status": "created",
                    "notification_type": "order_created",
                    "roles": ["engineering"],
                    "include_creator": False,
                },
                {
                    "domain": "project",
                    "status": "assigned",
                    "notification_type": "project_assigned",
                    "roles": [],
                    "include_creator": True,
                },
            ],
            "templates": [
                {
                    "notification_type": "owner_approved",
                    "title": "Purchase order approved",
                    "body": "Purchase order \"{entity_name}\" was approved.",
                },
            ],
        },
        version=7,
    )


@pytest.fixture
def queued_pushes():
    """Recording stand-in for the Celery push queue."""

    class Recorder(list):
        def __call__(self, subscription_id, payload):
            self.append((subscription_id, payload))

    return Recorder()


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def authenticated_client(user):
    """API client authenticated as the site user via JWT."""
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
    return client


@pytest.fixture
def authenticated_client_factory():
    """Factory to create authenticated clients for any user."""

    def _create_client(for_user):
        client = APIClient()
        refresh = RefreshToken.for_user(for_user)
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {refresh.access_token}")
        return client

    return _create_client
