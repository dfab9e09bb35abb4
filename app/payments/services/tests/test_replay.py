"""
Tests for ReplayService.

Tests cover:
- Replaying stored webhooks and callbacks through the pipeline
- Replay chains and duplicate safety
- Records that cannot be replayed
"""

import json

import pytest

from payments.models import AuditLog, Transaction
from payments.services import ReplayService
from payments.state_machines import (
    AuditLogStatus,
    AuditLogType,
    AuditOutcome,
    TransactionStatus,
)
from payments.tests.factories import AuditLogFactory


def lygos_webhook_log(
    txn,
    status=AuditLogStatus.ERROR,
    outcome=AuditOutcome.PROCESSING_ERROR,
    **overrides,
) -> AuditLog:
    """A closed Lygos webhook record whose body refers to ``txn``."""
    values = {
        "log_type": AuditLogType.WEBHOOK,
        "gateway": "lygos",
        "action": "webhook",
        "environment_id": txn.environment_id,
        "raw_body": json.dumps(
            {"event": "payment.completed", "payment_id": "lyg_9", "order_id": txn.transaction_id}
        ),
    }
    values.update(overrides)
    log = AuditLogFactory(**values)
    log.close(status=status, outcome=outcome)
    return log


class TestCanReplay:
    """Tests for ReplayService.can_replay."""

    def test_webhook_with_body(self, pending_transaction):
        assert ReplayService.can_replay(lygos_webhook_log(pending_transaction)) is True

    def test_webhook_without_body(self, db):
        assert ReplayService.can_replay(AuditLogFactory(raw_body="")) is False

    @pytest.mark.parametrize(
        "outcome",
        [
            AuditOutcome.INVALID_SIGNATURE,
            AuditOutcome.INVALID_PAYLOAD,
            AuditOutcome.UNKNOWN_GATEWAY,
        ],
    )
    def test_webhook_rejected_at_receipt(self, pending_transaction, outcome):
        """Should never replay a body that was not proven to come from the gateway."""
        log = lygos_webhook_log(
            pending_transaction, status=AuditLogStatus.FAILURE, outcome=outcome
        )

        assert ReplayService.can_replay(log) is False

    def test_webhook_still_received(self, pending_transaction):
        log = AuditLogFactory(raw_body=json.dumps({"event": "payment.completed"}))

        assert ReplayService.can_replay(log) is False

    def test_replay_of_rejected_webhook(self, pending_transaction):
        """Should follow a replay chain back to the rejected source."""
        source = lygos_webhook_log(
            pending_transaction,
            status=AuditLogStatus.FAILURE,
            outcome=AuditOutcome.INVALID_SIGNATURE,
        )
        replay = AuditLogFactory(log_type=AuditLogType.REPLAY, raw_body="{}", replay_of=source)

        assert ReplayService.can_replay(replay) is False

    def test_callback(self, db):
        log = AuditLogFactory(log_type=AuditLogType.CALLBACK, gateway="", action="callback_success")

        assert ReplayService.can_replay(log) is True

    def test_admin_record_not_replayable(self, db):
        log = AuditLogFactory(log_type=AuditLogType.ADMIN, raw_body="{}")

        assert ReplayService.can_replay(log) is False

    def test_record_without_environment_not_replayable(self, db):
        log = AuditLogFactory(environment_id=None, raw_body="{}")

        assert ReplayService.can_replay(log) is False


class TestReplayWebhook:
    """Tests for replaying stored webhook bodies."""

    def test_replay_reconciles_transaction(self, pending_transaction):
        """Should apply the stored event and link a new replay record."""
        original = lygos_webhook_log(pending_transaction)

        result = ReplayService.replay(original)

        assert result.success is True
        replay_log = result.data
        assert replay_log.log_type == AuditLogType.REPLAY
        assert replay_log.replay_of == original
        assert replay_log.action == "replay:webhook"
        assert replay_log.status == AuditLogStatus.SUCCESS
        assert replay_log.outcome == AuditOutcome.PROCESSED
        stored = Transaction.objects.get(pk=pending_transaction.pk)
        assert stored.status == TransactionStatus.COMPLETED
        assert stored.gateway_transaction_id == "lyg_9"

    def test_original_record_untouched(self, pending_transaction):
        """Should never rewrite the closed record being replayed."""
        original = lygos_webhook_log(pending_transaction)

        ReplayService.replay(original)

        stored = AuditLog.objects.get(pk=original.pk)
        assert stored.status == AuditLogStatus.ERROR
        assert stored.outcome == AuditOutcome.PROCESSING_ERROR

    def test_second_replay_is_duplicate(self, pending_transaction):
        original = lygos_webhook_log(pending_transaction)
        ReplayService.replay(original)

        result = ReplayService.replay(original)

        assert result.data.outcome == AuditOutcome.DUPLICATE
        assert original.replays.count() == 2

    def test_replay_of_replay_uses_original_body(self, pending_transaction):
        original = lygos_webhook_log(pending_transaction)
        first = ReplayService.replay(original).data

        second = ReplayService.replay(first).data

        assert second.replay_of == first
        assert second.action == "replay:webhook"
        assert second.outcome == AuditOutcome.DUPLICATE

    def test_unknown_gateway(self, pending_transaction):
        original = lygos_webhook_log(pending_transaction, gateway="acmepay")

        result = ReplayService.replay(original)

        assert result.success is False
        assert result.error_code == "UNKNOWN_GATEWAY"
        replay_log = AuditLog.objects.get(replay_of=original)
        assert replay_log.status == AuditLogStatus.FAILURE
        assert replay_log.outcome == AuditOutcome.UNKNOWN_GATEWAY

    def test_unparseable_body(self, pending_transaction):
        original = lygos_webhook_log(pending_transaction, raw_body="not json")

        result = ReplayService.replay(original)

        assert result.success is False
        assert result.error_code == "INVALID_PAYLOAD"
        assert AuditLog.objects.get(replay_of=original).outcome == AuditOutcome.INVALID_PAYLOAD

    def test_not_replayable(self, db):
        result = ReplayService.replay(AuditLogFactory(log_type=AuditLogType.ADMIN))

        assert result.success is False
        assert result.error_code == "NOT_REPLAYABLE"
        assert AuditLog.objects.filter(log_type=AuditLogType.REPLAY).count() == 0

    def test_forged_webhook_not_applied(self, pending_transaction):
        """Should leave the transaction pending when the stored body failed its signature check."""
        forged = lygos_webhook_log(
            pending_transaction,
            status=AuditLogStatus.FAILURE,
            outcome=AuditOutcome.INVALID_SIGNATURE,
        )

        result = ReplayService.replay(forged)

        assert result.success is False
        assert result.error_code == "NOT_REPLAYABLE"
        assert (
            Transaction.objects.get(pk=pending_transaction.pk).status
            == TransactionStatus.PENDING
        )
        assert not AuditLog.objects.filter(replay_of=forged).exists()


class TestReplayCallback:
    """Tests for replaying stored browser callbacks."""

    def test_success_callback(self, pending_transaction):
        original = AuditLogFactory(
            log_type=AuditLogType.CALLBACK,
            gateway="",
            action="callback_success",
            request_data={"transaction_id": pending_transaction.transaction_id},
        )

        result = ReplayService.replay(original)

        assert result.data.outcome == AuditOutcome.PROCESSED
        assert result.data.action == "replay:callback_success"
        assert (
            Transaction.objects.get(pk=pending_transaction.pk).status
            == TransactionStatus.COMPLETED
        )

    def test_failure_callback(self, pending_transaction):
        original = AuditLogFactory(
            log_type=AuditLogType.CALLBACK,
            gateway="",
            action="callback_failure",
            request_data={"transaction_id": pending_transaction.transaction_id},
        )

        ReplayService.replay(original)

        assert Transaction.objects.get(pk=pending_transaction.pk).status == TransactionStatus.FAILED

    def test_callback_with_gateway_status_token(self, pending_transaction):
        original = AuditLogFactory(
            log_type=AuditLogType.CALLBACK,
            gateway="monetbill",
            action="callback_failure",
            request_data={
                "payment_ref": pending_transaction.transaction_id,
                "status": "cancelled",
            },
        )

        result = ReplayService.replay(original)

        assert result.data.outcome == AuditOutcome.CANCELLED
        assert (
            Transaction.objects.get(pk=pending_transaction.pk).status
            == TransactionStatus.PENDING
        )
