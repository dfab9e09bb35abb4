"""
Tests for payments Celery tasks.

Tests cover:
- replay_audit_log outcomes (replayed, not found, refused)
"""

import json
import uuid

from payments.models import Transaction
from payments.state_machines import AuditLogType, AuditOutcome, TransactionStatus
from payments.tasks import replay_audit_log
from payments.tests.factories import AuditLogFactory, ClosedAuditLogFactory


class TestReplayAuditLog:
    """Tests for the replay_audit_log task."""

    def test_replayed(self, pending_transaction):
        """Should replay the stored webhook and report the new record."""
        log = ClosedAuditLogFactory(
            raw_body=json.dumps(
                {
                    "event": "payment.completed",
                    "payment_id": "lyg_3",
                    "order_id": pending_transaction.transaction_id,
                }
            )
        )

        result = replay_audit_log(str(log.pk))

        assert result["status"] == "replayed"
        assert result["audit_log_id"] == str(log.pk)
        assert result["outcome"] == AuditOutcome.PROCESSED
        assert (
            Transaction.objects.get(pk=pending_transaction.pk).status
            == TransactionStatus.COMPLETED
        )

    def test_not_found(self, db):
        missing = str(uuid.uuid4())

        result = replay_audit_log(missing)

        assert result == {"status": "not_found", "audit_log_id": missing}

    def test_refused(self, db):
        """Should report a failure for records that cannot be replayed."""
        log = AuditLogFactory(log_type=AuditLogType.ADMIN, raw_body="{}")

        result = replay_audit_log(str(log.pk))

        assert result["status"] == "failed"
        assert result["error_code"] == "NOT_REPLAYABLE"

    def test_delay_runs_eagerly(self, pending_transaction):
        log = AuditLogFactory(
            log_type=AuditLogType.CALLBACK,
            gateway="",
            action="callback_failure",
            request_data={"transaction_id": pending_transaction.transaction_id},
        )

        async_result = replay_audit_log.delay(str(log.pk))

        assert async_result.get()["status"] == "replayed"
        assert Transaction.objects.get(pk=pending_transaction.pk).status == TransactionStatus.FAILED
