"""
Transaction service: creation of pending transactions and admin updates.

Checkout flows create transactions here so that every row starts pending,
with its scope set explicitly and its total computed from its components.
Operators move settled transactions to refunded states here; gateway
outcomes never pass through this service.

Usage:
    from payments.services import TransactionService

    txn = TransactionService.create_pending(
        environment_id=7,
        gateway="monetbill",
        amount=Decimal("5000.00"),
        currency="XAF",
    )

    TransactionService.update_status(
        txn.pk,
        status=TransactionStatus.REFUNDED,
        reason="Chargeback",
        user=request.user,
    )
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from django_fsm import TransitionNotAllowed

from core.exceptions import ValidationError
from core.services import BaseService

from payments.exceptions import (
    InvalidStateTransitionError,
    TransactionNotFoundError,
    UnknownGatewayError,
)
from payments.models import Transaction
from payments.services.audit_log_service import AuditLogService
from payments.state_machines import (
    AuditLogStatus,
    AuditLogType,
    AuditOutcome,
    GatewayCode,
    TransactionScope,
    TransactionStatus,
)

if TYPE_CHECKING:
    from typing import Any

    from payments.models import Order, PaymentGatewaySetting


logger = logging.getLogger(__name__)


# Targets an operator may request, mapped to the transition that reaches them
ADMIN_TRANSITIONS = {
    TransactionStatus.REFUNDED: "refund",
    TransactionStatus.PARTIALLY_REFUNDED: "partially_refund",
}


class TransactionService(BaseService):
    """Creates transactions and applies administrative status changes."""

    @classmethod
    def create_pending(
        cls,
        environment_id: int,
        gateway: str,
        amount: Decimal,
        fee_amount: Decimal = Decimal("0"),
        tax_amount: Decimal = Decimal("0"),
        currency: str = "USD",
        scope: str = TransactionScope.TENANT,
        order: Order | None = None,
        gateway_setting: PaymentGatewaySetting | None = None,
        **details: Any,
    ) -> Transaction:
        """
        Create a pending transaction.

        ``details`` may carry customer_name, customer_email, customer_phone,
        description and payment_method.

        Raises:
            UnknownGatewayError: If ``gateway`` is not a known gateway code
            ValidationError: If any amount is negative or scope is invalid
        """
        if gateway not in GatewayCode.values:
            raise UnknownGatewayError(
                f"Unknown payment gateway: {gateway}",
                details={"gateway": gateway},
            )
        if scope not in TransactionScope.values:
            raise ValidationError(
                f"Invalid transaction scope: {scope}",
                details={"scope": scope},
            )

        amounts = {
            "amount": Decimal(str(amount)),
            "fee_amount": Decimal(str(fee_amount)),
            "tax_amount": Decimal(str(tax_amount)),
        }
        negative = [name for name, value in amounts.items() if value < 0]
        if negative:
            raise ValidationError(
                "Transaction amounts cannot be negative",
                details={"fields": negative},
            )

        txn = Transaction.objects.create(
            environment_id=environment_id,
            gateway=gateway,
            currency=currency,
            scope=scope,
            order=order,
            gateway_setting=gateway_setting,
            **amounts,
            **details,
        )
        logger.info(
            f"Created pending transaction {txn.transaction_id}",
            extra={
                "transaction_id": txn.transaction_id,
                "environment_id": environment_id,
                "gateway": gateway,
                "scope": scope,
                "total_amount": str(txn.total_amount),
            },
        )
        return txn

    @classmethod
    def update_status(
        cls,
        pk: int,
        status: str,
        reason: str,
        user: Any = None,
    ) -> Transaction:
        """
        Administrative status change: completed|failed -> refunded|partially_refunded.

        Writes an ``admin`` AuditLog either way.

        Raises:
            TransactionNotFoundError: If no transaction has this pk
            ValidationError: If no reason is given
            InvalidStateTransitionError: For any other target or source status
        """
        if not (reason or "").strip():
            raise ValidationError(
                "A reason is required for administrative status changes",
                details={"field": "reason"},
            )

        audit_log = AuditLogService.record(
            log_type=AuditLogType.ADMIN,
            action="status_update",
            request_data={
                "transaction": pk,
                "status": status,
                "reason": reason,
                "user": str(user) if user is not None else None,
            },
        )

        try:
            with cls.atomic():
                txn = Transaction.objects.select_for_update().filter(pk=pk).first()
                if txn is None:
                    raise TransactionNotFoundError(
                        f"Transaction {pk} not found",
                        details={"transaction": pk},
                    )

                audit_log.environment_id = txn.environment_id
                audit_log.gateway = txn.gateway
                audit_log.save(update_fields=["environment_id", "gateway", "updated_at"])

                method_name = ADMIN_TRANSITIONS.get(status)
                if method_name is None:
                    raise InvalidStateTransitionError(
                        f"Status '{status}' cannot be set administratively",
                        details={"current_status": txn.status, "target_status": status},
                    )

                previous = txn.status
                try:
                    getattr(txn, method_name)(reason=reason)
                except TransitionNotAllowed:
                    raise InvalidStateTransitionError(
                        f"Cannot move transaction from '{previous}' to '{status}'",
                        details={"current_status": previous, "target_status": status},
                    )
                txn.save()
        except (InvalidStateTransitionError, TransactionNotFoundError) as e:
            AuditLogService.close(
                audit_log,
                AuditLogStatus.FAILURE,
                AuditOutcome.PROCESSING_ERROR,
                message=e.message,
            )
            raise

        AuditLogService.close(
            audit_log,
            AuditLogStatus.SUCCESS,
            AuditOutcome.PROCESSED,
            message=f"{previous} -> {txn.status}: {reason}",
            entity=txn,
        )
        logger.info(
            f"Transaction {txn.transaction_id} moved {previous} -> {txn.status} by admin",
            extra={
                "transaction_id": txn.transaction_id,
                "previous_status": previous,
                "new_status": txn.status,
                "user": str(user) if user is not None else None,
            },
        )
        return txn
