"""
Tests for TransactionResolver.

Tests cover:
- Lookup precedence (scoped/global, pending/completed)
- Tenant isolation
- Webhook vs callback identity rules
- Order reference fallback
"""

import pytest

from payments.exceptions import TransactionNotFoundError
from payments.services import TransactionResolver
from payments.state_machines import TransactionScope
from payments.tests.factories import (
    CompletedTransactionFactory,
    FailedTransactionFactory,
    OrderFactory,
    TransactionFactory,
)


class TestResolveByReference:
    """Tests for resolving a reference in the caller's environment."""

    def test_resolves_by_transaction_id(self, db):
        """Should find a pending transaction by its opaque id."""
        txn = TransactionFactory(environment_id=7)

        assert TransactionResolver.resolve(txn.transaction_id, environment_id=7) == txn

    def test_resolves_by_internal_id_for_webhooks(self, db):
        txn = TransactionFactory(environment_id=7)

        assert TransactionResolver.resolve(str(txn.pk), environment_id=7) == txn

    def test_resolves_by_gateway_reference(self, db):
        """Should match the gateway's own id when our reference is absent."""
        txn = TransactionFactory(environment_id=7, gateway_transaction_id="tm_1")

        assert (
            TransactionResolver.resolve(None, environment_id=7, gateway_reference="tm_1") == txn
        )

    def test_completed_transaction_resolved_for_duplicates(self, db):
        """Should fall back to completed rows so duplicates can be recognized."""
        txn = CompletedTransactionFactory(environment_id=7)

        assert TransactionResolver.resolve(txn.transaction_id, environment_id=7) == txn

    def test_failed_transaction_not_resolved(self, db):
        txn = FailedTransactionFactory(environment_id=7)

        with pytest.raises(TransactionNotFoundError):
            TransactionResolver.resolve(txn.transaction_id, environment_id=7)

    def test_pending_preferred_over_completed(self, db):
        """Should prefer a pending match over a completed one."""
        completed = CompletedTransactionFactory(environment_id=7)
        pending = TransactionFactory(environment_id=7, gateway_transaction_id="gw_x")

        resolved = TransactionResolver.resolve(
            completed.transaction_id, environment_id=7, gateway_reference="gw_x"
        )

        assert resolved == pending
        assert resolved != completed

    def test_no_reference_raises(self, db):
        with pytest.raises(TransactionNotFoundError):
            TransactionResolver.resolve(None, environment_id=7)

    def test_unknown_reference_raises(self, db):
        TransactionFactory(environment_id=7)

        with pytest.raises(TransactionNotFoundError):
            TransactionResolver.resolve("does-not-exist", environment_id=7)


class TestTenantIsolation:
    """Tests for scope rules across environments."""

    def test_other_tenant_transaction_not_found(self, db):
        """Should never resolve another environment's tenant transaction."""
        txn = TransactionFactory(environment_id=8, scope=TransactionScope.TENANT)

        with pytest.raises(TransactionNotFoundError):
            TransactionResolver.resolve(txn.transaction_id, environment_id=7)

    def test_global_transaction_resolved_from_any_environment(self, db):
        txn = TransactionFactory(environment_id=8, scope=TransactionScope.GLOBAL)

        assert TransactionResolver.resolve(txn.transaction_id, environment_id=7) == txn

    def test_scoped_match_preferred_over_global(self, db):
        """Should prefer the caller's own transaction over a global one."""
        TransactionFactory(
            environment_id=8,
            scope=TransactionScope.GLOBAL,
            gateway_transaction_id="shared",
        )
        own = TransactionFactory(environment_id=7, gateway_transaction_id="shared")

        assert (
            TransactionResolver.resolve(None, environment_id=7, gateway_reference="shared")
            == own
        )


class TestCallbackResolution:
    """Tests for the stricter callback identity rule."""

    def test_callback_matches_transaction_id(self, db):
        txn = TransactionFactory(environment_id=7)

        resolved = TransactionResolver.resolve(
            txn.transaction_id,
            environment_id=7,
            kind=TransactionResolver.CALLBACK,
        )

        assert resolved == txn

    def test_callback_does_not_accept_internal_id(self, db):
        """Should not let a browser redirect guess sequential ids."""
        txn = TransactionFactory(environment_id=7)

        with pytest.raises(TransactionNotFoundError):
            TransactionResolver.resolve(
                str(txn.pk),
                environment_id=7,
                kind=TransactionResolver.CALLBACK,
            )

    def test_callback_ignores_gateway_reference(self, db):
        TransactionFactory(environment_id=7, gateway_transaction_id="tm_1")

        with pytest.raises(TransactionNotFoundError):
            TransactionResolver.resolve(
                None,
                environment_id=7,
                gateway_reference="tm_1",
                kind=TransactionResolver.CALLBACK,
            )

    def test_callback_order_number_resolves(self, db):
        order = OrderFactory(order_number="ORD-2025-0001")
        txn = TransactionFactory(environment_id=7, order=order)

        resolved = TransactionResolver.resolve(
            None,
            environment_id=7,
            kind=TransactionResolver.CALLBACK,
            order_reference="ORD-2025-0001",
        )

        assert resolved == txn

    def test_callback_does_not_accept_order_pk(self, db):
        """Should not let a browser redirect guess sequential order ids."""
        order = OrderFactory()
        TransactionFactory(environment_id=7, order=order)

        with pytest.raises(TransactionNotFoundError):
            TransactionResolver.resolve(
                None,
                environment_id=7,
                kind=TransactionResolver.CALLBACK,
                order_reference=str(order.pk),
            )


# =============================================================================
# Order Reference
# =============================================================================


class TestOrderReference:
    """Tests for resolving a notification that names only the order."""

    def test_order_pk_never_matches_transaction_pk(self, db):
        """Should resolve the order's transaction even when another pk collides."""
        order = OrderFactory(pk=900002)
        TransactionFactory(pk=order.pk, environment_id=7)
        target = TransactionFactory(environment_id=7, order=order)

        resolved = TransactionResolver.resolve(
            None,
            environment_id=7,
            order_reference=str(order.pk),
        )

        assert resolved == target

    def test_order_number_resolves(self, db):
        order = OrderFactory(order_number="ORD-XYZ")
        target = TransactionFactory(environment_id=7, order=order)

        assert (
            TransactionResolver.resolve(None, environment_id=7, order_reference="ORD-XYZ")
            == target
        )

    def test_newest_pending_attempt_wins(self, db):
        """Should pick the retry, not the earlier failed attempt, for the same order."""
        order = OrderFactory()
        FailedTransactionFactory(environment_id=7, order=order)
        retry = TransactionFactory(environment_id=7, order=order)

        assert (
            TransactionResolver.resolve(None, environment_id=7, order_reference=str(order.pk))
            == retry
        )

    def test_transaction_identity_preferred_over_order(self, db):
        """Should use the order only when no transaction identifier matches."""
        order = OrderFactory()
        named = CompletedTransactionFactory(environment_id=7, order=order)
        TransactionFactory(environment_id=7, order=order)

        resolved = TransactionResolver.resolve(
            named.transaction_id,
            environment_id=7,
            order_reference=str(order.pk),
        )

        assert resolved == named

    def test_order_in_other_tenant_not_found(self, db):
        order = OrderFactory(environment_id=8)
        TransactionFactory(environment_id=8, order=order)

        with pytest.raises(TransactionNotFoundError):
            TransactionResolver.resolve(None, environment_id=7, order_reference=str(order.pk))

    def test_unknown_order_not_found(self, db):
        with pytest.raises(TransactionNotFoundError):
            TransactionResolver.resolve(None, environment_id=7, order_reference="424242")
