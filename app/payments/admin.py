"""
Payment admin configuration.

Registers the reconciliation models with the Django admin. Transactions
and audit logs are read-only here: state changes go through the
orchestrator or TransactionService so they stay audited.
"""

from django.contrib import admin

from payments.models import (
    AuditLog,
    Commission,
    EnvironmentPaymentConfig,
    Order,
    Payment,
    PaymentGatewaySetting,
    Subscription,
    Transaction,
)


class ReadOnlyAdminMixin:
    """Admin that lists and shows records but never writes them."""

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(Transaction)
class TransactionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """
    Admin configuration for Transaction.

    Use PUT /api/v1/payments/transactions/<id>/status/ for refunds.
    """

    list_display = [
        "id",
        "transaction_id",
        "environment_id",
        "scope",
        "gateway",
        "total_amount",
        "currency",
        "status",
        "paid_at",
        "created_at",
    ]
    list_filter = ["status", "gateway", "scope"]
    search_fields = ["transaction_id", "gateway_transaction_id", "customer_email"]
    ordering = ["-created_at"]


@admin.register(AuditLog)
class AuditLogAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Admin configuration for AuditLog."""

    list_display = [
        "id",
        "log_type",
        "gateway",
        "action",
        "environment_id",
        "status",
        "outcome",
        "entity_id",
        "created_at",
    ]
    list_filter = ["log_type", "gateway", "status", "outcome"]
    search_fields = ["id", "entity_id", "message"]
    ordering = ["-created_at"]


@admin.register(PaymentGatewaySetting)
class PaymentGatewaySettingAdmin(admin.ModelAdmin):
    list_display = ["id", "code", "environment_id", "name", "mode", "is_active"]
    list_filter = ["code", "mode", "is_active"]
    search_fields = ["name"]


@admin.register(EnvironmentPaymentConfig)
class EnvironmentPaymentConfigAdmin(admin.ModelAdmin):
    list_display = ["environment_id", "use_centralized_gateways", "platform_fee_rate", "is_active"]
    list_filter = ["use_centralized_gateways", "is_active"]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ["order_number", "environment_id", "total_amount", "currency", "status"]
    list_filter = ["status"]
    search_fields = ["order_number", "customer_email"]
    readonly_fields = ["status", "completed_at"]


@admin.register(Subscription)
class SubscriptionAdmin(admin.ModelAdmin):
    list_display = ["id", "environment_id", "plan_name", "billing_cycle", "status", "ends_at"]
    list_filter = ["status", "billing_cycle"]
    readonly_fields = ["status", "last_payment_at", "next_payment_at"]


@admin.register(Payment)
class PaymentAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["transaction_id", "subscription", "amount", "currency", "status", "paid_at"]
    list_filter = ["status"]
    search_fields = ["transaction_id"]


@admin.register(Commission)
class CommissionAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ["transaction", "environment_id", "rate", "amount", "currency", "status"]
    list_filter = ["status"]
