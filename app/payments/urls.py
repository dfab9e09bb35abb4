"""
URL configuration for the payments app.

Routes:
    Gateway-facing (no authentication):
    - POST transactions/webhook/<gateway>/<environment_id>/ - Gateway webhook
    - GET transactions/callback/success/<environment_id>/ - Success redirect
    - GET transactions/callback/failure/<environment_id>/ - Failure redirect

    Admin API (IsAdminUser):
    - transactions/ - TransactionViewSet
    - audit-logs/ - AuditLogViewSet

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("payments/", include("payments.urls")),
    ]
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from payments.views import AuditLogViewSet, TransactionViewSet
from payments.webhooks.views import callback_failure, callback_success, gateway_webhook

app_name = "payments"

router = DefaultRouter()
router.register("transactions", TransactionViewSet, basename="transaction")
router.register("audit-logs", AuditLogViewSet, basename="audit-log")

urlpatterns = [
    # Gateway-facing endpoints (listed before the router so they win)
    path(
        "transactions/webhook/<str:gateway>/<int:environment_id>/",
        gateway_webhook,
        name="gateway_webhook",
    ),
    path(
        "transactions/callback/success/<int:environment_id>/",
        callback_success,
        name="callback_success",
    ),
    path(
        "transactions/callback/failure/<int:environment_id>/",
        callback_failure,
        name="callback_failure",
    ),
    # Admin API
    path("", include(router.urls)),
]
