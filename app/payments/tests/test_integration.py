"""
End-to-end payment journeys through the HTTP surface.

Each test drives a transaction from creation to its final state the way
gateways, browsers and operators would, and checks every side effect and
audit record along the way.
"""

import json
from decimal import Decimal

from django.urls import reverse

from payments.models import AuditLog, Commission, Order, Transaction
from payments.services import TransactionService
from payments.state_machines import (
    AuditOutcome,
    GatewayCode,
    OrderStatus,
    TransactionStatus,
)
from payments.tests.factories import EnvironmentPaymentConfigFactory, OrderFactory


def taramoney_webhook(client, hmac_sign, payload: dict):
    body = json.dumps(payload).encode()
    return client.post(
        reverse(
            "payments:gateway_webhook",
            kwargs={"gateway": "taramoney", "environment_id": 7},
        ),
        data=body,
        content_type="application/json",
        HTTP_X_TARAMONEY_SIGNATURE=hmac_sign(body),
    )


def outcomes() -> list[str]:
    return sorted(AuditLog.objects.values_list("outcome", flat=True))


class TestCentralizedOrderJourney:
    """Pay, retry, refund and late failure for a centralized-gateway order."""

    def test_full_lifecycle(
        self,
        client,
        api_client,
        taramoney_setting,
        hmac_sign,
        django_capture_on_commit_callbacks,
    ):
        EnvironmentPaymentConfigFactory(environment_id=7, platform_fee_rate=Decimal("10.00"))
        order = OrderFactory()
        txn = TransactionService.create_pending(
            environment_id=7,
            gateway=GatewayCode.TARAMONEY,
            amount=Decimal("100.00"),
            fee_amount=Decimal("2.50"),
            tax_amount=Decimal("19.25"),
            order=order,
            customer_email="buyer@example.com",
        )
        success = {"paymentId": "tm_42", "productId": txn.transaction_id, "status": "SUCCESS"}

        # First delivery completes the payment and its side effects
        with django_capture_on_commit_callbacks(execute=True):
            first = taramoney_webhook(client, hmac_sign, success)

        assert first.status_code == 200
        stored = Transaction.objects.get(pk=txn.pk)
        assert stored.status == TransactionStatus.COMPLETED
        assert stored.total_amount == Decimal("121.75")
        assert Order.objects.get(pk=order.pk).status == OrderStatus.COMPLETED
        commission = Commission.objects.get(transaction=txn)
        assert commission.amount == Decimal("12.18")

        # Gateway retry is acknowledged without repeating side effects
        with django_capture_on_commit_callbacks(execute=True):
            retry = taramoney_webhook(client, hmac_sign, success)

        assert retry.status_code == 200
        assert Commission.objects.filter(transaction=txn).count() == 1

        # Operator refunds through the admin API
        refund = api_client.put(
            reverse("payments:transaction-update-status", kwargs={"pk": txn.pk}),
            {"status": "refunded", "reason": "Customer returned goods"},
            format="json",
        )
        assert refund.status_code == 200

        # A late failure notification cannot move a refunded transaction
        late = taramoney_webhook(
            client, hmac_sign, {**success, "status": "FAILURE", "message": "Reversed"}
        )

        assert late.status_code == 200
        assert Transaction.objects.get(pk=txn.pk).status == TransactionStatus.REFUNDED
        assert outcomes() == sorted(
            [
                AuditOutcome.PROCESSED,
                AuditOutcome.DUPLICATE,
                AuditOutcome.PROCESSED,
                AuditOutcome.NOT_FOUND,
            ]
        )


class TestCancelThenPayJourney:
    """Customer cancels on the hosted page, then comes back and pays."""

    def test_cancel_then_pay(self, client, db):
        txn = TransactionService.create_pending(
            environment_id=7,
            gateway=GatewayCode.MONETBILL,
            amount=Decimal("50.00"),
        )
        failure_url = reverse("payments:callback_failure", kwargs={"environment_id": 7})
        success_url = reverse("payments:callback_success", kwargs={"environment_id": 7})

        cancelled = client.get(
            failure_url,
            {"gateway": "monetbill", "payment_ref": txn.transaction_id, "status": "cancelled"},
        )
        assert "payments/callback_cancelled.html" in [t.name for t in cancelled.templates]
        assert Transaction.objects.get(pk=txn.pk).status == TransactionStatus.PENDING

        paid = client.get(success_url, {"transaction_id": txn.transaction_id})

        assert "payments/callback_success.html" in [t.name for t in paid.templates]
        assert Transaction.objects.get(pk=txn.pk).status == TransactionStatus.COMPLETED
        assert outcomes() == sorted([AuditOutcome.CANCELLED, AuditOutcome.PROCESSED])


class TestReplayJourney:
    """Webhook arrives before the transaction exists; an operator replays it."""

    def test_replay_after_transaction_created(
        self, client, api_client, taramoney_setting, hmac_sign
    ):
        early = taramoney_webhook(
            client,
            hmac_sign,
            {"paymentId": "tm_early", "productId": "late-ref", "status": "SUCCESS"},
        )
        assert early.status_code == 200
        audit_log = AuditLog.objects.get()
        assert audit_log.outcome == AuditOutcome.NOT_FOUND

        txn = TransactionService.create_pending(
            environment_id=7,
            gateway=GatewayCode.TARAMONEY,
            amount=Decimal("10.00"),
            transaction_id="late-ref",
        )

        response = api_client.post(
            reverse("payments:audit-log-replay", kwargs={"pk": audit_log.pk})
        )

        assert response.status_code == 202
        stored = Transaction.objects.get(pk=txn.pk)
        assert stored.status == TransactionStatus.COMPLETED
        assert stored.gateway_transaction_id == "tm_early"
        replay = AuditLog.objects.get(replay_of=audit_log)
        assert replay.outcome == AuditOutcome.PROCESSED
        assert AuditLog.objects.get(pk=audit_log.pk).outcome == AuditOutcome.NOT_FOUND
