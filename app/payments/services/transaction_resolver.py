"""
Transaction resolver: maps a gateway reference onto exactly one Transaction.

Gateways echo back whatever identifier we handed them at checkout. That may
be our opaque transaction_id, the internal primary key, or (for webhooks)
only the gateway's own payment id. The resolver turns that reference into a
single Transaction without ever crossing a tenant boundary it should not.

Lookup order (first hit wins):
    1. Scoped pending     - same environment, status pending
    2. Global pending     - scope=global, status pending, any environment
    3. Scoped completed   - so duplicates are recognised as duplicates
    4. Global completed
    5. TransactionNotFoundError

The four steps run first against the transaction identifiers, then against
the order reference (the Order's pk or order_number), so a payment named
only by its order lands on that order's transaction.

A tenant-scoped transaction belonging to another environment is never
returned, even when its reference matches exactly. Callers acknowledge a
miss without saying whether the reference exists elsewhere.

Usage:
    from payments.services import TransactionResolver

    txn = TransactionResolver.resolve(
        reference=event.reference,
        gateway_reference=event.gateway_reference,
        environment_id=7,
        kind=TransactionResolver.WEBHOOK,
        order_reference=event.order_reference,
    )
"""

from __future__ import annotations

import logging

from django.db.models import Q

from core.services import BaseService

from payments.exceptions import TransactionNotFoundError
from payments.models import Transaction


logger = logging.getLogger(__name__)


class TransactionResolver(BaseService):
    """Resolves gateway references into Transactions."""

    WEBHOOK = "webhook"
    CALLBACK = "callback"

    @classmethod
    def candidate_filter(
        cls,
        reference: str | None,
        gateway_reference: str | None,
        kind: str,
    ) -> Q | None:
        """
        Build the identity filter for a reference.

        Callbacks come from a browser, so only the opaque transaction_id is
        trusted there. Webhooks are signed, so the internal id and the
        gateway's own id are accepted too.
        """
        if kind == cls.CALLBACK:
            return Q(transaction_id=reference) if reference else None

        match = Q()
        if gateway_reference:
            match |= Q(gateway_transaction_id=gateway_reference)
        if reference:
            match |= Q(transaction_id=reference)
            if reference.isdigit():
                match |= Q(pk=int(reference))
        return match or None

    @classmethod
    def order_filter(cls, order_reference: str | None, kind: str) -> Q | None:
        """
        Build the filter for the Order a payment was made for.

        The order reference is never compared with a transaction pk. Signed
        webhooks may name the order by pk or order_number; callbacks only by
        order_number, or by our transaction_id echoed back as order_id.
        """
        if not order_reference:
            return None

        match = Q(order__order_number=order_reference)
        if kind == cls.CALLBACK:
            return match | Q(transaction_id=order_reference)
        if order_reference.isdigit():
            match |= Q(order_id=int(order_reference))
        return match

    @classmethod
    def resolve(
        cls,
        reference: str | None,
        environment_id: int,
        gateway_reference: str | None = None,
        kind: str = WEBHOOK,
        order_reference: str | None = None,
    ) -> Transaction:
        """
        Find the transaction a notification refers to.

        Transaction identifiers are tried first; the order reference only
        applies when none of them matches an eligible transaction.

        Raises:
            TransactionNotFoundError: If no eligible transaction matches
        """
        matches = [
            (label, match)
            for label, match in (
                ("identity", cls.candidate_filter(reference, gateway_reference, kind)),
                ("order", cls.order_filter(order_reference, kind)),
            )
            if match is not None
        ]
        if not matches:
            raise TransactionNotFoundError(
                "Notification carries no usable reference",
                details={"environment_id": environment_id},
            )

        for label, match in matches:
            txn = cls._first_eligible(match, environment_id, label)
            if txn is not None:
                return txn

        logger.info(
            "No transaction matched notification reference",
            extra={
                "reference": reference,
                "gateway_reference": gateway_reference,
                "order_reference": order_reference,
                "environment_id": environment_id,
                "kind": kind,
            },
        )
        raise TransactionNotFoundError(
            "Transaction not found",
            details={"reference": reference, "environment_id": environment_id},
        )

    @classmethod
    def _first_eligible(cls, match: Q, environment_id: int, label: str) -> Transaction | None:
        candidates = Transaction.objects.filter(match)
        lookups = (
            ("scoped_pending", candidates.pending().for_environment(environment_id)),
            ("global_pending", candidates.pending().global_scope()),
            ("scoped_completed", candidates.completed().for_environment(environment_id)),
            ("global_completed", candidates.completed().global_scope()),
        )

        for step, queryset in lookups:
            txn = queryset.order_by("-created_at").first()
            if txn is not None:
                logger.debug(
                    f"Resolved transaction {txn.pk} via {label}/{step}",
                    extra={
                        "transaction_id": txn.transaction_id,
                        "environment_id": environment_id,
                        "lookup": step,
                        "match": label,
                    },
                )
                return txn
        return None
