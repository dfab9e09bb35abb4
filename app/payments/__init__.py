"""
Payments app: multi-gateway transaction reconciliation.

This app handles:
- Signed webhooks and unsigned browser callbacks from five gateways
- Resolving gateway references onto tenant or global transactions
- Exactly-once pending -> completed/failed transitions
- Subscription renewal, order completion and commission side effects
- An audit record for every inbound request, with operator replay

Usage:
    from payments.services import ReconciliationOrchestrator, TransactionService

    txn = TransactionService.create_pending(...)
    result = ReconciliationOrchestrator.reconcile(txn, event)
"""
