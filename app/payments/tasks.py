"""
Celery tasks for the payments app.

This module provides:
- replay_audit_log: Operator-triggered replay of a logged notification

The hot path (webhooks and callbacks) is fully synchronous and never
queues work; Celery is only used so that an operator's replay request
returns immediately.

Usage:
    from payments.tasks import replay_audit_log

    replay_audit_log.delay(str(audit_log.id))
"""

from __future__ import annotations

import logging

from celery import shared_task

from payments.models import AuditLog
from payments.services import ReplayService

logger = logging.getLogger(__name__)


@shared_task(acks_late=True)
def replay_audit_log(audit_log_id: str) -> dict:
    """
    Replay an AuditLog through the reconciliation pipeline.

    Not retried automatically: a replay that fails writes its own closed
    replay record, and the operator decides whether to try again.

    Args:
        audit_log_id: UUID of the AuditLog to replay

    Returns:
        Dict with the replay status and the new replay record's id
    """
    try:
        audit_log = AuditLog.objects.get(pk=audit_log_id)
    except AuditLog.DoesNotExist:
        logger.warning(
            f"Replay requested for missing audit log {audit_log_id}",
            extra={"audit_log_id": audit_log_id},
        )
        return {"status": "not_found", "audit_log_id": audit_log_id}

    result = ReplayService.replay(audit_log)
    if not result:
        logger.warning(
            f"Replay of audit log {audit_log_id} refused: {result.error}",
            extra={"audit_log_id": audit_log_id, "error_code": result.error_code},
        )
        return {
            "status": "failed",
            "audit_log_id": audit_log_id,
            "error": result.error,
            "error_code": result.error_code,
        }

    replay_log = result.data
    return {
        "status": "replayed",
        "audit_log_id": audit_log_id,
        "replay_log_id": str(replay_log.pk),
        "outcome": replay_log.outcome,
    }
