"""
Gateway configuration models.

PaymentGatewaySetting holds per-tenant provider credentials. A row with no
environment_id is a platform-wide (centralized) setting that applies to
every environment that has no row of its own.

EnvironmentPaymentConfig holds per-tenant payment policy, most importantly
whether the tenant collects through the platform's centralized gateways
(which makes every completed transaction accrue a commission).

Both are read-only to the reconciliation engine.

Usage:
    setting = PaymentGatewaySetting.objects.for_environment("lygos", 7)
    secret = setting.get_webhook_secret() if setting else None
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F

from core.models import BaseModel

from payments.state_machines import GatewayCode, GatewayMode


class PaymentGatewaySettingQuerySet(models.QuerySet):
    def for_environment(self, code: str, environment_id: int) -> PaymentGatewaySetting | None:
        """
        Active setting for ``code`` that applies to ``environment_id``.

        An environment-specific row wins over the platform-wide row.
        """
        return (
            self.filter(code=code, is_active=True)
            .filter(
                models.Q(environment_id=environment_id)
                | models.Q(environment_id__isnull=True)
            )
            .order_by(F("environment_id").asc(nulls_last=True))
            .first()
        )


class PaymentGatewaySetting(BaseModel):
    """
    Provider configuration for one gateway in one environment.

    Fields:
        code: Gateway code (matches the adapter registry key)
        environment_id: Owning tenant, NULL for the platform-wide setting
        is_active: Inactive settings are invisible to lookups
        mode: sandbox or live
        credentials: Provider API credentials (client id/secret, api keys)
        webhook_secret: Secret used to verify inbound notifications
    """

    code = models.CharField(
        max_length=20,
        choices=GatewayCode.choices,
        db_index=True,
    )
    environment_id = models.PositiveIntegerField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Tenant environment; empty means platform-wide",
    )
    name = models.CharField(max_length=100, blank=True, default="")
    is_active = models.BooleanField(default=True)
    mode = models.CharField(
        max_length=10,
        choices=GatewayMode.choices,
        default=GatewayMode.SANDBOX,
    )
    credentials = models.JSONField(default=dict, blank=True)
    webhook_secret = models.CharField(max_length=255, blank=True, default="")

    objects = PaymentGatewaySettingQuerySet.as_manager()

    class Meta:
        ordering = ["code", "environment_id"]
        verbose_name = "Payment Gateway Setting"
        verbose_name_plural = "Payment Gateway Settings"
        constraints = [
            models.UniqueConstraint(
                fields=["code", "environment_id"],
                name="unique_gateway_setting_per_environment",
            ),
        ]

    def __str__(self) -> str:
        scope = self.environment_id if self.environment_id is not None else "platform"
        return f"PaymentGatewaySetting({self.code}, {scope})"

    @property
    def is_live(self) -> bool:
        return self.mode == GatewayMode.LIVE

    def get_webhook_secret(self) -> str:
        """
        Secret for verifying inbound notifications.

        Stripe falls back to the deployment-wide STRIPE_WEBHOOK_SECRET so
        that a single Stripe account can serve the centralized setting.
        """
        if self.webhook_secret:
            return self.webhook_secret
        if self.code == GatewayCode.STRIPE:
            return settings.STRIPE_WEBHOOK_SECRET
        return self.credentials.get("webhook_secret", "")


class EnvironmentPaymentConfig(BaseModel):
    """
    Per-tenant payment policy.

    Fields:
        environment_id: Tenant environment (unique)
        use_centralized_gateways: Tenant collects through platform gateways
        platform_fee_rate: Commission percentage applied on completion
        is_active: Inactive configs never trigger commissions
    """

    environment_id = models.PositiveIntegerField(unique=True)
    use_centralized_gateways = models.BooleanField(default=False)
    platform_fee_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("17.00"),
        help_text="Commission percentage taken on each completed transaction",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Environment Payment Config"
        verbose_name_plural = "Environment Payment Configs"

    def __str__(self) -> str:
        return f"EnvironmentPaymentConfig({self.environment_id})"

    @classmethod
    def uses_centralized_gateways(cls, environment_id: int) -> bool:
        return cls.objects.filter(
            environment_id=environment_id,
            is_active=True,
            use_centralized_gateways=True,
        ).exists()
