"""
Audit log service: open an AuditLog at receipt, close it at outcome.

Every inbound notification is recorded before anything can go wrong with
it, so operators always have the raw body to inspect or replay. Headers
that carry credentials are redacted before they are stored.

Usage:
    from payments.services import AuditLogService

    log = AuditLogService.open(
        request,
        log_type=AuditLogType.WEBHOOK,
        gateway="lygos",
        action="webhook",
        environment_id=7,
    )
    ...
    AuditLogService.close(
        log,
        AuditLogStatus.SUCCESS,
        AuditOutcome.PROCESSED,
        entity=txn,
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from core.services import BaseService

from payments.models import AuditLog
from payments.state_machines import AuditLogStatus

if TYPE_CHECKING:
    from typing import Any

    from django.db.models import Model
    from django.http import HttpRequest


logger = logging.getLogger(__name__)


REDACTED = "[REDACTED]"

# Lower-cased header names whose values are never persisted
SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "proxy-authorization",
        "x-api-key",
        "x-csrftoken",
    }
)

MAX_USER_AGENT_LENGTH = 255


def redact_headers(headers: dict[str, str]) -> dict[str, str]:
    return {
        key: REDACTED if key.lower() in SENSITIVE_HEADERS else value
        for key, value in headers.items()
    }


def get_client_ip(request: HttpRequest) -> str | None:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.META.get("REMOTE_ADDR") or None


class AuditLogService(BaseService):
    """Creates and finalizes AuditLog records."""

    @classmethod
    def open(
        cls,
        request: HttpRequest,
        log_type: str,
        gateway: str = "",
        action: str = "",
        environment_id: int | None = None,
    ) -> AuditLog:
        """Record an inbound request as RECEIVED."""
        raw_body = request.body.decode("utf-8", errors="replace") if request.body else ""
        request_data: dict[str, Any] = dict(request.GET.items())
        if request.method == "POST" and request.POST:
            request_data.update(request.POST.items())

        log = AuditLog.objects.create(
            log_type=log_type,
            gateway=(gateway or "")[:20],
            action=action,
            environment_id=environment_id,
            raw_body=raw_body,
            request_data=request_data,
            headers=redact_headers(dict(request.headers)),
            ip_address=get_client_ip(request),
            user_agent=request.META.get("HTTP_USER_AGENT", "")[:MAX_USER_AGENT_LENGTH],
        )
        logger.debug(
            f"Opened audit log {log.pk}",
            extra={"audit_log_id": str(log.pk), "log_type": log_type, "gateway": gateway},
        )
        return log

    @classmethod
    def record(
        cls,
        log_type: str,
        gateway: str = "",
        action: str = "",
        environment_id: int | None = None,
        raw_body: str = "",
        request_data: dict[str, Any] | None = None,
        replay_of: AuditLog | None = None,
    ) -> AuditLog:
        """Open an AuditLog that does not originate from an HTTP request."""
        return AuditLog.objects.create(
            log_type=log_type,
            gateway=gateway,
            action=action,
            environment_id=environment_id,
            raw_body=raw_body,
            request_data=request_data or {},
            replay_of=replay_of,
        )

    @classmethod
    def close(
        cls,
        log: AuditLog,
        status: str,
        outcome: str,
        message: str = "",
        entity: Model | None = None,
    ) -> AuditLog:
        """
        Close ``log`` exactly once.

        Raises:
            AuditLogClosedError: If the record was already closed
        """
        log.close(
            status=status,
            outcome=outcome,
            message=message,
            entity_type=entity.__class__.__name__ if entity is not None else None,
            entity_id=entity.pk if entity is not None else None,
        )

        level = logging.INFO if status == AuditLogStatus.SUCCESS else logging.WARNING
        logger.log(
            level,
            f"Audit log {log.pk} closed {status}/{outcome}",
            extra={
                "audit_log_id": str(log.pk),
                "gateway": log.gateway,
                "audit_status": status,
                "outcome": outcome,
            },
        )
        return log
