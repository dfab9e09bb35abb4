"""
Transaction model: the unit the reconciliation engine settles.

A Transaction is created ``pending`` when a checkout or subscription payment
is initiated and is only ever moved out of ``pending`` by the
reconciliation orchestrator (gateway outcome) or by the administrative
status update (refunds). Rows are never deleted.

Usage:
    from payments.models import Transaction
    from payments.state_machines import TransactionScope

    txn = Transaction.objects.create(
        environment_id=7,
        gateway="stripe",
        amount=Decimal("100.00"),
        fee_amount=Decimal("2.50"),
        tax_amount=Decimal("19.25"),
        currency="USD",
    )
    txn.total_amount  # Decimal("121.75")

    # Inside the orchestrator's locked section
    txn.complete(gateway_status="succeeded", response=payload)
    txn.save()
"""

from __future__ import annotations

import json
import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel

from payments.state_machines import (
    GatewayCode,
    TransactionScope,
    TransactionStatus,
)

if TYPE_CHECKING:
    from typing import Any


AMOUNT_FIELDS = ("amount", "fee_amount", "tax_amount")


def generate_transaction_id() -> str:
    """Opaque, globally unique id handed to gateways and customers."""
    return uuid.uuid4().hex


class TransactionQuerySet(models.QuerySet):
    """Lookup helpers used by the resolver and the admin API."""

    def pending(self):
        return self.filter(status=TransactionStatus.PENDING)

    def completed(self):
        return self.filter(status=TransactionStatus.COMPLETED)

    def for_environment(self, environment_id: int):
        return self.filter(environment_id=environment_id)

    def global_scope(self):
        return self.filter(scope=TransactionScope.GLOBAL)


class Transaction(BaseModel):
    """
    A single payment attempt against one gateway.

    Fields:
        transaction_id: Opaque external identifier (unique)
        environment_id: Owning tenant
        scope: TENANT (resolvable only in its environment) or GLOBAL
        gateway / gateway_setting: Provider this payment runs through
        order: Optional order fulfilled when this transaction completes
        amount, fee_amount, tax_amount: Components of the charge
        total_amount: Always amount + fee_amount + tax_amount
        status: FSM-managed lifecycle state (protected)
        gateway_transaction_id: Provider's own id, often unknown until success
        gateway_status: Last raw status string reported by the provider
        gateway_response: Last provider payload, serialized JSON text

    Note:
        status is protected; only the transition methods below may change
        it. Re-read a row with Transaction.objects.get() rather than
        refresh_from_db().
    """

    # ==========================================================================
    # Identity & Tenancy
    # ==========================================================================

    transaction_id = models.CharField(
        max_length=64,
        unique=True,
        default=generate_transaction_id,
        editable=False,
        help_text="Opaque external identifier shared with gateways",
    )

    environment_id = models.PositiveIntegerField(
        db_index=True,
        help_text="Tenant environment that owns this transaction",
    )

    scope = models.CharField(
        max_length=10,
        choices=TransactionScope.choices,
        default=TransactionScope.TENANT,
        help_text="Whether the transaction may be resolved outside its environment",
    )

    # ==========================================================================
    # Relationships
    # ==========================================================================

    gateway = models.CharField(
        max_length=20,
        choices=GatewayCode.choices,
        db_index=True,
        help_text="Gateway code this payment runs through",
    )

    gateway_setting = models.ForeignKey(
        "payments.PaymentGatewaySetting",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transactions",
        help_text="Gateway configuration used to initiate the payment",
    )

    order = models.ForeignKey(
        "payments.Order",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transactions",
        help_text="Order fulfilled when this transaction completes",
    )

    # ==========================================================================
    # Customer
    # ==========================================================================

    customer_name = models.CharField(max_length=255, blank=True, default="")
    customer_email = models.EmailField(blank=True, default="")
    customer_phone = models.CharField(max_length=32, blank=True, default="")

    # ==========================================================================
    # Amounts
    # ==========================================================================

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    fee_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    total_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        editable=False,
        help_text="amount + fee_amount + tax_amount, recomputed on every save",
    )
    currency = models.CharField(max_length=3, default="USD")

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=TransactionStatus.PENDING,
        choices=TransactionStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the transaction (managed by FSM)",
    )

    # ==========================================================================
    # Gateway Data
    # ==========================================================================

    gateway_transaction_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Identifier assigned by the gateway",
    )
    gateway_status = models.CharField(max_length=64, null=True, blank=True)
    gateway_response = models.TextField(
        blank=True,
        default="",
        help_text="Last gateway payload, stored as serialized JSON",
    )
    payment_method = models.CharField(max_length=50, blank=True, default="")

    # ==========================================================================
    # Descriptive
    # ==========================================================================

    description = models.TextField(blank=True, default="")
    notes = models.TextField(blank=True, default="")
    failure_reason = models.TextField(null=True, blank=True)
    refund_reason = models.TextField(null=True, blank=True)

    # ==========================================================================
    # State Timestamps
    # ==========================================================================

    paid_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    objects = TransactionQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Transaction"
        verbose_name_plural = "Transactions"
        indexes = [
            models.Index(fields=["environment_id", "status"], name="payments_tr_environ_3b8e41_idx"),
            models.Index(fields=["scope", "status"], name="payments_tr_scope_9d02f7_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(
                    total_amount=models.F("amount")
                    + models.F("fee_amount")
                    + models.F("tax_amount")
                ),
                name="transaction_total_matches_components",
            ),
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name="transaction_amount_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Transaction({self.pk}, {self.transaction_id}, {self.status})"

    def save(self, *args, **kwargs):
        """Recompute total_amount before every write."""
        self.total_amount = self.compute_total()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and set(update_fields) & set(AMOUNT_FIELDS):
            kwargs["update_fields"] = {*update_fields, "total_amount"}
        super().save(*args, **kwargs)

    def compute_total(self) -> Decimal:
        return sum(
            (Decimal(str(getattr(self, name) or 0)) for name in AMOUNT_FIELDS),
            Decimal("0"),
        )

    # ==========================================================================
    # Gateway response (JSON text)
    # ==========================================================================

    def set_gateway_response(self, payload: Any) -> None:
        self.gateway_response = json.dumps(payload, default=str)

    def get_gateway_response(self) -> Any:
        if not self.gateway_response:
            return {}
        try:
            return json.loads(self.gateway_response)
        except ValueError:
            return {"raw": self.gateway_response}

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING

    @property
    def is_global(self) -> bool:
        return self.scope == TransactionScope.GLOBAL

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=TransactionStatus.PENDING,
        target=TransactionStatus.COMPLETED,
    )
    def complete(
        self,
        gateway_status: str | None = None,
        gateway_transaction_id: str | None = None,
        response: Any = None,
        notes: str | None = None,
    ):
        """
        Record a successful gateway outcome.

        Transition: PENDING -> COMPLETED
        """
        self.gateway_status = gateway_status or "completed"
        if gateway_transaction_id:
            self.gateway_transaction_id = gateway_transaction_id
        if response is not None:
            self.set_gateway_response(response)
        if notes:
            self.notes = notes
        self.paid_at = timezone.now()

    @transition(
        field=status,
        source=TransactionStatus.PENDING,
        target=TransactionStatus.FAILED,
    )
    def fail(
        self,
        reason: str | None = None,
        gateway_status: str | None = None,
        response: Any = None,
    ):
        """
        Record a failed gateway outcome.

        Transition: PENDING -> FAILED
        """
        self.failure_reason = reason or "Payment failed"
        self.gateway_status = gateway_status or "failed"
        if response is not None:
            self.set_gateway_response(response)
        self.failed_at = timezone.now()

    @transition(
        field=status,
        source=[TransactionStatus.COMPLETED, TransactionStatus.FAILED],
        target=TransactionStatus.REFUNDED,
    )
    def refund(self, reason: str):
        """Transition: COMPLETED/FAILED -> REFUNDED (administrative only)."""
        self.refund_reason = reason
        self.refunded_at = timezone.now()

    @transition(
        field=status,
        source=[TransactionStatus.COMPLETED, TransactionStatus.FAILED],
        target=TransactionStatus.PARTIALLY_REFUNDED,
    )
    def partially_refund(self, reason: str):
        """Transition: COMPLETED/FAILED -> PARTIALLY_REFUNDED (administrative only)."""
        self.refund_reason = reason
        self.refunded_at = timezone.now()
