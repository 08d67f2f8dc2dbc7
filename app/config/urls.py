"""
URL configuration for the orderflow backend.

URL Structure:
    /                                        - ReDoc API documentation
    /admin/                                  - Django admin interface
    /health/                                 - Health check endpoint
    /schema/                                 - OpenAPI schema (YAML)
    /api/v1/auth/token/                      - Obtain JWT pair (POST)
    /api/v1/auth/token/refresh/              - Refresh access token (POST)
    /api/v1/notifications/                   - List / mark read / delete (GET, PATCH, DELETE)
    /api/v1/notifications/badge-count/       - Badge display count (GET)
    /api/v1/notifications/webhooks/domain-events/ - Signed domain events (POST)
    /api/v1/push/subscribe/                  - Register / check / remove a device (POST, GET, DELETE)
    /api/v1/push/vapid-public-key/           - VAPID application server key (GET)
    /api/v1/push/send/                       - Manual push to a user (POST, admin roles)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    path("", include("notifications.urls")),
]

urlpatterns = [
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

admin.site.site_header = "Orderflow Admin"
admin.site.site_title = "Orderflow Admin"
admin.site.index_title = "Notifications and users"
