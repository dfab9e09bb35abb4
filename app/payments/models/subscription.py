"""
Subscription and Payment models.

A Subscription is a recurring plan purchase. Each billing attempt creates a
Payment row that shares its ``transaction_id`` string with the Transaction
paying for it. When that Transaction completes, the orchestrator marks the
Payment completed and renews the Subscription for one billing cycle.

Usage:
    from payments.models import Payment, Subscription

    payment = Payment.objects.filter(transaction_id=txn.transaction_id).first()
    if payment:
        payment.mark_completed(paid_at)
        payment.subscription.renew(paid_at)
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from dateutil.relativedelta import relativedelta
from django.db import models

from django_fsm import FSMField, transition

from core.models import BaseModel

from payments.state_machines import (
    BillingCycle,
    PaymentStatus,
    SubscriptionStatus,
)


class Subscription(BaseModel):
    """
    Recurring plan purchase for one environment.

    State Flow:
        PENDING -> ACTIVE (first completed payment)
        ACTIVE -> ACTIVE (renewal pushes the period forward)
        EXPIRED -> ACTIVE (late payment reactivates)
        ACTIVE -> EXPIRED / CANCELLED

    Fields:
        environment_id: Tenant environment the plan applies to
        plan_name: Display name of the purchased plan
        billing_cycle: monthly or yearly
        amount / currency: Price per cycle
        status: FSM-managed lifecycle
        starts_at: First activation
        ends_at: End of the paid period
        next_payment_at: When the next charge is due
        last_payment_at: When the last charge completed
    """

    environment_id = models.PositiveIntegerField(db_index=True)
    plan_name = models.CharField(max_length=100, blank=True, default="")
    billing_cycle = models.CharField(
        max_length=10,
        choices=BillingCycle.choices,
        default=BillingCycle.MONTHLY,
    )
    amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    currency = models.CharField(max_length=3, default="USD")

    status = FSMField(
        default=SubscriptionStatus.PENDING,
        choices=SubscriptionStatus.choices,
        db_index=True,
        protected=True,
    )

    starts_at = models.DateTimeField(null=True, blank=True)
    ends_at = models.DateTimeField(null=True, blank=True)
    next_payment_at = models.DateTimeField(null=True, blank=True)
    last_payment_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Subscription"
        verbose_name_plural = "Subscriptions"
        indexes = [
            models.Index(fields=["environment_id", "status"], name="payments_su_environ_6f1c2a_idx"),
        ]

    def __str__(self) -> str:
        return f"Subscription({self.pk}, {self.status}, {self.billing_cycle})"

    def period(self) -> relativedelta:
        """Length of one billing cycle."""
        if self.billing_cycle == BillingCycle.YEARLY:
            return relativedelta(years=1)
        return relativedelta(months=1)

    @transition(
        field=status,
        source=[
            SubscriptionStatus.PENDING,
            SubscriptionStatus.ACTIVE,
            SubscriptionStatus.EXPIRED,
        ],
        target=SubscriptionStatus.ACTIVE,
    )
    def renew(self, paid_at: datetime):
        """
        Extend the subscription by one billing cycle from ``paid_at``.

        Both ends_at and next_payment_at move to paid_at + cycle.
        """
        if self.starts_at is None:
            self.starts_at = paid_at
        self.last_payment_at = paid_at
        self.ends_at = paid_at + self.period()
        self.next_payment_at = self.ends_at

    @transition(field=status, source=SubscriptionStatus.ACTIVE, target=SubscriptionStatus.EXPIRED)
    def expire(self):
        pass

    @transition(
        field=status,
        source=[SubscriptionStatus.PENDING, SubscriptionStatus.ACTIVE],
        target=SubscriptionStatus.CANCELLED,
    )
    def cancel(self):
        pass


class Payment(BaseModel):
    """
    One billing attempt for a Subscription.

    Linked to its Transaction by the shared ``transaction_id`` string rather
    than a foreign key: the payment row is written by the billing flow
    before the transaction is handed to a gateway.
    """

    subscription = models.ForeignKey(
        Subscription,
        on_delete=models.PROTECT,
        related_name="payments",
    )
    transaction_id = models.CharField(max_length=64, unique=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="USD")
    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
    )
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"

    def __str__(self) -> str:
        return f"Payment({self.transaction_id}, {self.status})"

    def mark_completed(self, paid_at: datetime) -> None:
        self.status = PaymentStatus.COMPLETED
        self.paid_at = paid_at
        self.save(update_fields=["status", "paid_at", "updated_at"])
