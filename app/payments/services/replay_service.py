"""
Operator replay of a logged notification.

Replay re-runs a stored webhook or callback through the same resolve and
reconcile pipeline the live request used. The stored body passed its
signature check when it arrived, so the signature is not checked again.
Webhook records rejected at receipt (unknown gateway, bad signature,
unreadable payload) or never closed are not replayable, and replay is only
reachable through the admin API.

Each replay writes a new ``replay`` AuditLog linked to the record it
replays, and the orchestrator's duplicate detection makes replaying an
already-applied event harmless.

Usage:
    from payments.services import ReplayService

    result = ReplayService.replay(audit_log)
    if result:
        replay_log = result.data
"""

from __future__ import annotations

import logging

from core.services import BaseService, ServiceResult

from payments.adapters import get_adapter, parse_callback_params
from payments.exceptions import InvalidPayloadError, UnknownGatewayError
from payments.models import AuditLog, PaymentGatewaySetting
from payments.services.audit_log_service import AuditLogService
from payments.services.reconciliation_orchestrator import ReconciliationOrchestrator
from payments.services.transaction_resolver import TransactionResolver
from payments.state_machines import (
    AuditLogStatus,
    AuditLogType,
    AuditOutcome,
    EventStatus,
)


logger = logging.getLogger(__name__)


REPLAYABLE_TYPES = (AuditLogType.WEBHOOK, AuditLogType.CALLBACK, AuditLogType.REPLAY)

# The request never got past gateway lookup, signature check or parsing, so
# its body was never proven to come from the gateway
UNVERIFIED_OUTCOMES = (
    AuditOutcome.UNKNOWN_GATEWAY,
    AuditOutcome.INVALID_SIGNATURE,
    AuditOutcome.INVALID_PAYLOAD,
)


class ReplayService(BaseService):
    """Re-runs audited notifications through the reconciliation pipeline."""

    @classmethod
    def source_of(cls, audit_log: AuditLog) -> AuditLog:
        """The original webhook or callback record behind a chain of replays."""
        source = audit_log
        while source.log_type == AuditLogType.REPLAY and source.replay_of_id:
            source = source.replay_of
        return source

    @classmethod
    def can_replay(cls, audit_log: AuditLog) -> bool:
        if audit_log.log_type not in REPLAYABLE_TYPES or audit_log.environment_id is None:
            return False
        source = cls.source_of(audit_log)
        if source.outcome in UNVERIFIED_OUTCOMES:
            return False
        if source.log_type == AuditLogType.WEBHOOK:
            # A webhook still RECEIVED may have stopped before its signature check
            return bool(source.gateway and source.raw_body and source.is_closed)
        return source.log_type == AuditLogType.CALLBACK

    @classmethod
    def replay(cls, audit_log: AuditLog) -> ServiceResult[AuditLog]:
        """
        Replay ``audit_log`` and return the new replay record.

        Returns a failed ServiceResult when the record cannot be replayed
        or its stored payload no longer parses.
        """
        if not cls.can_replay(audit_log):
            return ServiceResult.failure(
                f"Audit log {audit_log.pk} cannot be replayed",
                error_code="NOT_REPLAYABLE",
            )

        source = cls.source_of(audit_log)
        environment_id = audit_log.environment_id
        replay_log = AuditLogService.record(
            log_type=AuditLogType.REPLAY,
            gateway=source.gateway,
            action=f"replay:{source.action}",
            environment_id=environment_id,
            raw_body=source.raw_body,
            request_data=source.request_data,
            replay_of=audit_log,
        )

        try:
            if source.log_type == AuditLogType.CALLBACK:
                event = cls._parse_callback(source)
                kind = TransactionResolver.CALLBACK
            else:
                event = cls._parse_webhook(source, environment_id)
                kind = TransactionResolver.WEBHOOK
        except (UnknownGatewayError, InvalidPayloadError) as e:
            outcome = (
                AuditOutcome.UNKNOWN_GATEWAY
                if isinstance(e, UnknownGatewayError)
                else AuditOutcome.INVALID_PAYLOAD
            )
            AuditLogService.close(replay_log, AuditLogStatus.FAILURE, outcome, message=e.message)
            return ServiceResult.failure(e.message, error_code=e.error_code)

        ReconciliationOrchestrator.process(replay_log, event, environment_id, kind=kind)

        logger.info(
            f"Replayed audit log {audit_log.pk}: {replay_log.outcome}",
            extra={
                "audit_log_id": str(audit_log.pk),
                "replay_log_id": str(replay_log.pk),
                "outcome": replay_log.outcome,
            },
        )
        return ServiceResult.success(replay_log)

    @classmethod
    def _parse_webhook(cls, source: AuditLog, environment_id: int):
        setting = PaymentGatewaySetting.objects.for_environment(source.gateway, environment_id)
        adapter = get_adapter(source.gateway, setting=setting)
        return adapter.parse_event(source.raw_body.encode("utf-8"), source.headers or {})

    @classmethod
    def _parse_callback(cls, source: AuditLog):
        default_status = (
            EventStatus.SUCCESS if source.action == "callback_success" else EventStatus.FAILURE
        )
        params = {key: str(value) for key, value in (source.request_data or {}).items()}
        if source.gateway:
            return get_adapter(source.gateway).parse_callback(params, default_status)
        return parse_callback_params(params, default_status)
