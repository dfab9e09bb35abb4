"""
Order model.

Orders belong to the storefront and are priced elsewhere; the engine only
needs to know that an order exists and to mark it completed when the
transaction paying for it completes. Completion happens in the
``order_completed`` signal receiver, never inside the orchestrator.
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel

from payments.state_machines import OrderStatus


class Order(BaseModel):
    """
    Storefront order paid for by one or more transactions.

    Fields:
        order_number: Human-facing order reference
        environment_id: Owning tenant
        customer_email: Buyer contact
        total_amount / currency: Order total as priced by the storefront
        status: FSM-managed lifecycle (pending, completed, cancelled, refunded)
        completed_at: When fulfillment was triggered
    """

    order_number = models.CharField(max_length=64, unique=True)
    environment_id = models.PositiveIntegerField(db_index=True)
    customer_email = models.EmailField(blank=True, default="")
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0"))
    currency = models.CharField(max_length=3, default="USD")

    status = FSMField(
        default=OrderStatus.PENDING,
        choices=OrderStatus.choices,
        db_index=True,
        protected=True,
    )
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Order"
        verbose_name_plural = "Orders"

    def __str__(self) -> str:
        return f"Order({self.order_number}, {self.status})"

    @transition(field=status, source=OrderStatus.PENDING, target=OrderStatus.COMPLETED)
    def complete(self):
        self.completed_at = timezone.now()

    @transition(field=status, source=OrderStatus.PENDING, target=OrderStatus.CANCELLED)
    def cancel(self):
        pass

    @transition(field=status, source=OrderStatus.COMPLETED, target=OrderStatus.REFUNDED)
    def refund(self):
        pass
