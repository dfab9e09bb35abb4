"""
Django signals for the payments app.

This module defines:
- order_completed: Sent on commit when a transaction linked to an Order
  completes
- complete_order_on_payment: Receiver that moves the Order to completed

Related files:
    - services/reconciliation_orchestrator.py: Sends order_completed
    - apps.py: Signal import in ready()

Usage:
    Signals are automatically connected when the app is ready.
    See apps.py for the import that triggers connection.
"""

from __future__ import annotations

import logging

from django.db import transaction as db_transaction
from django.dispatch import Signal, receiver

logger = logging.getLogger(__name__)


# Sent with: order_id, transaction (the completed Transaction)
order_completed = Signal()


@receiver(order_completed)
def complete_order_on_payment(sender, order_id, transaction=None, **kwargs):
    """
    Mark an Order completed once its transaction has completed.

    Runs after the reconciliation commit, so it locks the order itself.
    Orders that already left pending are left alone, which keeps a
    repeated signal harmless.

    Args:
        sender: The sending class (ReconciliationOrchestrator)
        order_id: Primary key of the Order to complete
        transaction: The completed Transaction
        **kwargs: Additional signal arguments
    """
    from payments.models import Order
    from payments.state_machines import OrderStatus

    with db_transaction.atomic():
        order = Order.objects.select_for_update().filter(pk=order_id).first()
        if order is None:
            logger.warning(
                f"order_completed for missing order {order_id}",
                extra={"order_id": order_id},
            )
            return

        if order.status != OrderStatus.PENDING:
            logger.info(
                f"Order {order.order_number} already {order.status}, skipping",
                extra={"order_id": order_id},
            )
            return

        order.complete()
        order.save()

    logger.info(
        f"Order {order.order_number} completed",
        extra={
            "order_id": order_id,
            "transaction_id": getattr(transaction, "transaction_id", None),
        },
    )
