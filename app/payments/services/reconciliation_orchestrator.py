"""
Reconciliation orchestrator: applies a NormalizedEvent to a Transaction.

This is the only place a gateway outcome changes transaction state. The
check-and-set runs inside one database transaction holding a row lock, so
no matter how many times a gateway delivers the same event, or in which
order webhooks and callbacks arrive, the state transition and its side
effects happen exactly once.

Flow:
    1. Lock the row (select_for_update)
    2. Not pending any more -> DUPLICATE, nothing else happens
    3. success   -> complete(), complete linked Payment, renew Subscription,
                    schedule order_completed on commit
       failure   -> fail()
       cancelled -> row untouched, stays pending
       unknown   -> row untouched (IGNORED)
    4. After commit, accrue commission for centralized-gateway tenants

Usage:
    from payments.services import ReconciliationOrchestrator

    result = ReconciliationOrchestrator.reconcile(txn, event)
    if result.outcome == AuditOutcome.DUPLICATE:
        ...
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.db import transaction
from django_fsm import can_proceed

from core.services import BaseService

from payments.exceptions import TransactionNotFoundError
from payments.models import Payment, Subscription, Transaction
from payments.services.audit_log_service import AuditLogService
from payments.services.commission_service import CommissionService
from payments.services.transaction_resolver import TransactionResolver
from payments.signals import order_completed
from payments.state_machines import (
    AuditLogStatus,
    AuditOutcome,
    EventStatus,
    PaymentStatus,
    TransactionStatus,
)

if TYPE_CHECKING:
    from payments.adapters import NormalizedEvent
    from payments.models import AuditLog


logger = logging.getLogger(__name__)


# =============================================================================
# Result Type
# =============================================================================


@dataclass
class ReconciliationResult:
    """
    What reconciling one event did.

    Attributes:
        outcome: AuditOutcome the caller closes its audit record with
        transaction: The transaction as it stands after reconciliation
        side_effects: Names of side effects performed or scheduled
    """

    outcome: str
    transaction: Transaction
    side_effects: list[str] = field(default_factory=list)

    @property
    def is_completed(self) -> bool:
        return self.transaction.status == TransactionStatus.COMPLETED


# =============================================================================
# Orchestrator
# =============================================================================


class ReconciliationOrchestrator(BaseService):
    """
    Applies normalized gateway events to transactions exactly once.

    All methods are class methods; no instance state is kept between calls.
    """

    @classmethod
    def process(
        cls,
        audit_log: AuditLog,
        event: NormalizedEvent,
        environment_id: int,
        kind: str = TransactionResolver.WEBHOOK,
    ) -> ReconciliationResult | None:
        """
        Resolve and reconcile one parsed event, then close its audit record.

        Shared by the webhook view, the callback views and operator replay.
        Returns None when the event was ignored, matched no transaction or
        failed to reconcile; the closed audit record says which.
        """
        if not event.is_actionable:
            AuditLogService.close(
                audit_log,
                AuditLogStatus.SUCCESS,
                AuditOutcome.IGNORED,
                message=f"Non-actionable event {event.event_type or event.gateway_status}",
            )
            return None

        try:
            txn = TransactionResolver.resolve(
                reference=event.reference,
                gateway_reference=event.gateway_reference,
                environment_id=environment_id,
                kind=kind,
                order_reference=event.order_reference,
            )
        except TransactionNotFoundError as e:
            AuditLogService.close(
                audit_log,
                AuditLogStatus.FAILURE,
                AuditOutcome.NOT_FOUND,
                message=e.message,
            )
            return None
        except Exception as e:
            logger.error(
                f"Transaction lookup failed: {type(e).__name__}: {e}",
                extra={"environment_id": environment_id, **event.log_context()},
                exc_info=True,
            )
            AuditLogService.close(
                audit_log,
                AuditLogStatus.ERROR,
                AuditOutcome.PROCESSING_ERROR,
                message=f"{type(e).__name__}: {e}",
            )
            return None

        try:
            result = cls.reconcile(txn, event)
        except Exception as e:
            logger.error(
                f"Reconciliation failed: {type(e).__name__}: {e}",
                extra={"transaction_id": txn.transaction_id, **event.log_context()},
                exc_info=True,
            )
            AuditLogService.close(
                audit_log,
                AuditLogStatus.ERROR,
                AuditOutcome.PROCESSING_ERROR,
                message=f"{type(e).__name__}: {e}",
                entity=txn,
            )
            return None

        AuditLogService.close(
            audit_log,
            AuditLogStatus.SUCCESS,
            result.outcome,
            message=f"Transaction {result.transaction.status}",
            entity=result.transaction,
        )
        return result

    @classmethod
    def reconcile(cls, txn: Transaction, event: NormalizedEvent) -> ReconciliationResult:
        """
        Apply ``event`` to ``txn``.

        Exceptions from the database propagate; the caller decides how to
        acknowledge the gateway.
        """
        log_extra = {"transaction_id": txn.transaction_id, **event.log_context()}

        if not event.is_actionable:
            logger.info("Ignoring non-actionable gateway event", extra=log_extra)
            return ReconciliationResult(outcome=AuditOutcome.IGNORED, transaction=txn)

        side_effects: list[str] = []

        with cls.atomic():
            locked = Transaction.objects.select_for_update().get(pk=txn.pk)

            if not locked.is_pending:
                logger.info(
                    f"Transaction already {locked.status}, treating event as duplicate",
                    extra=log_extra,
                )
                return ReconciliationResult(outcome=AuditOutcome.DUPLICATE, transaction=locked)

            if event.status == EventStatus.CANCELLED:
                logger.info(
                    "Payment cancelled by customer, transaction stays pending",
                    extra=log_extra,
                )
                return ReconciliationResult(outcome=AuditOutcome.CANCELLED, transaction=locked)

            if event.status == EventStatus.SUCCESS:
                side_effects.extend(cls._apply_success(locked, event))
            else:
                cls._apply_failure(locked, event)

        if event.status == EventStatus.SUCCESS and CommissionService.should_accrue(locked):
            transaction.on_commit(lambda: CommissionService.create_for_transaction(locked))
            side_effects.append("commission")

        logger.info(
            f"Transaction {locked.transaction_id} reconciled to {locked.status}",
            extra={**log_extra, "side_effects": side_effects},
        )
        return ReconciliationResult(
            outcome=AuditOutcome.PROCESSED,
            transaction=locked,
            side_effects=side_effects,
        )

    # =========================================================================
    # Outcome handlers (called with the row locked)
    # =========================================================================

    @classmethod
    def _apply_success(cls, txn: Transaction, event: NormalizedEvent) -> list[str]:
        txn.complete(
            gateway_status=event.gateway_status,
            gateway_transaction_id=event.gateway_reference,
            response=event.raw_payload,
            notes=f"Completed via {event.event_type}" if event.event_type else None,
        )
        txn.save()

        side_effects = []
        if cls._renew_subscription(txn):
            side_effects.extend(["payment", "subscription"])

        if txn.order_id:
            order_id = txn.order_id
            transaction.on_commit(
                lambda: order_completed.send(
                    sender=cls,
                    order_id=order_id,
                    transaction=txn,
                )
            )
            side_effects.append("order")

        return side_effects

    @classmethod
    def _apply_failure(cls, txn: Transaction, event: NormalizedEvent) -> None:
        txn.fail(
            reason=event.failure_reason,
            gateway_status=event.gateway_status,
            response=event.raw_payload,
        )
        txn.save()

    @classmethod
    def _renew_subscription(cls, txn: Transaction) -> bool:
        """
        Complete the subscription Payment billed by ``txn`` and extend its plan.

        Returns False when the transaction is not a subscription payment.
        """
        payment = (
            Payment.objects.select_for_update()
            .filter(transaction_id=txn.transaction_id, status=PaymentStatus.PENDING)
            .first()
        )
        if payment is None:
            return False

        payment.mark_completed(txn.paid_at)

        subscription = Subscription.objects.select_for_update().get(pk=payment.subscription_id)
        if not can_proceed(subscription.renew):
            logger.warning(
                f"Subscription {subscription.pk} is {subscription.status}, not renewing",
                extra={"transaction_id": txn.transaction_id, "subscription_id": subscription.pk},
            )
            return True

        subscription.renew(paid_at=txn.paid_at)
        subscription.save()
        logger.info(
            f"Subscription {subscription.pk} renewed until {subscription.ends_at:%Y-%m-%d}",
            extra={"transaction_id": txn.transaction_id, "subscription_id": subscription.pk},
        )
        return True
