"""
URL configuration for the payment reconciliation engine.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/token/            - Obtain JWT pair (staff credentials)
    /api/v1/auth/token/refresh/    - Refresh access token
    /api/v1/payments/              - Payment endpoints
        transactions/webhook/{gateway}/{environment_id}/    - Gateway webhook (POST)
        transactions/callback/success/{environment_id}/     - Success redirect (GET)
        transactions/callback/failure/{environment_id}/     - Failure redirect (GET)
        transactions/                  - Transaction list (admin)
        transactions/{id}/             - Transaction detail (admin)
        transactions/{id}/status/      - Refund status update (admin, PUT)
        audit-logs/                    - Audit log list (admin)
        audit-logs/{id}/               - Audit log detail (admin)
        audit-logs/{id}/replay/        - Queue replay (admin, POST)

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
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # JWT for the admin API
    path("auth/token/", TokenObtainPairView.as_view(), name="token_obtain_pair"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token_refresh"),
    # Payments
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Payment Reconciliation Admin"
admin.site.site_title = "Payments Admin"
admin.site.index_title = "Transactions and gateway audit log"
