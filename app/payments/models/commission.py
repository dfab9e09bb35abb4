"""
Commission model.

A Commission is the platform's cut of a transaction that was collected
through centralized gateways. The one-to-one link to Transaction is the
hard guarantee that duplicate deliveries never accrue twice.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models

from core.models import BaseModel

from payments.state_machines import CommissionStatus


class Commission(BaseModel):
    """
    Platform commission accrued on one completed transaction.

    Fields:
        transaction: The completed transaction (unique)
        environment_id: Tenant owing the commission
        rate: Percentage applied (copied from EnvironmentPaymentConfig)
        amount: Computed by the configured commission calculator
        status: pending until settled with the tenant
    """

    transaction = models.OneToOneField(
        "payments.Transaction",
        on_delete=models.PROTECT,
        related_name="commission",
    )
    environment_id = models.PositiveIntegerField(db_index=True)
    rate = models.DecimalField(max_digits=5, decimal_places=2)
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    currency = models.CharField(max_length=3, default="USD")
    status = models.CharField(
        max_length=20,
        choices=CommissionStatus.choices,
        default=CommissionStatus.PENDING,
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Commission"
        verbose_name_plural = "Commissions"

    def __str__(self) -> str:
        return f"Commission({self.transaction_id}, {self.amount} {self.currency})"
