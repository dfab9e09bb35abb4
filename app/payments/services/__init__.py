"""
Payment services for reconciling gateway notifications.

This module provides:
- TransactionResolver: Maps gateway references onto transactions
- ReconciliationOrchestrator: Applies normalized events exactly once
- CommissionService: Best-effort commission accrual
- AuditLogService: Open/close lifecycle of inbound notification records
- TransactionService: Pending transaction creation and admin status changes
- ReplayService: Operator replay of audited notifications

Usage:
    from payments.services import (
        ReconciliationOrchestrator,
        TransactionResolver,
    )

    txn = TransactionResolver.resolve(
        reference=event.reference,
        gateway_reference=event.gateway_reference,
        environment_id=environment_id,
    )
    result = ReconciliationOrchestrator.reconcile(txn, event)
"""

from payments.services.audit_log_service import AuditLogService
from payments.services.commission_service import (
    CommissionService,
    default_commission_calculator,
)
from payments.services.reconciliation_orchestrator import (
    ReconciliationOrchestrator,
    ReconciliationResult,
)
from payments.services.replay_service import ReplayService
from payments.services.transaction_resolver import TransactionResolver
from payments.services.transaction_service import TransactionService

__all__ = [
    "AuditLogService",
    "CommissionService",
    "default_commission_calculator",
    "ReconciliationOrchestrator",
    "ReconciliationResult",
    "ReplayService",
    "TransactionResolver",
    "TransactionService",
]
