"""
AuditLog model for inbound gateway notifications.

Every webhook and callback opens one AuditLog row before any parsing
happens, and closes it exactly once when processing concludes. A closed
record is immutable: it is the source of truth operators replay from.

Lifecycle:
    RECEIVED --close()--> SUCCESS | FAILURE | ERROR

Usage:
    from payments.models import AuditLog
    from payments.state_machines import AuditLogStatus, AuditOutcome

    log = AuditLog.objects.create(log_type="webhook", gateway="lygos", ...)
    ...
    log.close(
        status=AuditLogStatus.SUCCESS,
        outcome=AuditOutcome.PROCESSED,
        entity_type="Transaction",
        entity_id=txn.pk,
    )
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.exceptions import AuditLogClosedError
from payments.state_machines import (
    AuditLogStatus,
    AuditLogType,
    AuditOutcome,
)

if TYPE_CHECKING:
    from typing import Any


class AuditLog(UUIDPrimaryKeyMixin, BaseModel):
    """
    Append-then-close record of one inbound notification.

    Fields:
        log_type: webhook, callback, admin or replay
        gateway: Gateway code from the URL or query string
        action: What was attempted (e.g. "webhook", "callback_success")
        environment_id: Tenant from the URL
        raw_body: Exact request body, kept for replay
        request_data: Parsed query/body parameters
        headers: Request headers with credentials redacted
        entity_type / entity_id: Resolved target, NULL until known
        status: RECEIVED while open, then SUCCESS, FAILURE or ERROR
        outcome: Typed reason the record was closed with
        message: Free-form detail for operators
        closed_at: When the record was closed
        replay_of: Original record when this one is a replay
    """

    # ==========================================================================
    # Source
    # ==========================================================================

    log_type = models.CharField(
        max_length=20,
        choices=AuditLogType.choices,
        db_index=True,
    )
    gateway = models.CharField(max_length=20, blank=True, default="", db_index=True)
    action = models.CharField(max_length=50, blank=True, default="")
    environment_id = models.PositiveIntegerField(null=True, blank=True, db_index=True)

    # ==========================================================================
    # Request
    # ==========================================================================

    raw_body = models.TextField(blank=True, default="")
    request_data = models.JSONField(default=dict, blank=True)
    headers = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True, default="")

    # ==========================================================================
    # Target
    # ==========================================================================

    entity_type = models.CharField(max_length=50, null=True, blank=True)
    entity_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)

    # ==========================================================================
    # Outcome
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=AuditLogStatus.choices,
        default=AuditLogStatus.RECEIVED,
        db_index=True,
    )
    outcome = models.CharField(
        max_length=30,
        choices=AuditOutcome.choices,
        null=True,
        blank=True,
        db_index=True,
    )
    message = models.TextField(blank=True, default="")
    closed_at = models.DateTimeField(null=True, blank=True)

    replay_of = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="replays",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"
        indexes = [
            models.Index(fields=["gateway", "status"], name="payments_au_gateway_51c7de_idx"),
            models.Index(fields=["entity_type", "entity_id"], name="payments_au_entity__a40e93_idx"),
        ]

    def __str__(self) -> str:
        return f"AuditLog({self.id}, {self.log_type}, {self.gateway}, {self.status})"

    @property
    def is_closed(self) -> bool:
        return self.status != AuditLogStatus.RECEIVED

    def request_json(self) -> Any:
        """Parsed raw_body, or None when it is not JSON."""
        try:
            return json.loads(self.raw_body) if self.raw_body else None
        except ValueError:
            return None

    def close(
        self,
        status: str,
        outcome: str,
        message: str = "",
        entity_type: str | None = None,
        entity_id: str | int | None = None,
    ) -> None:
        """
        Close the record with a final status and outcome.

        The write is conditional on the row still being RECEIVED, so two
        closers racing on the same record cannot both succeed.

        Raises:
            AuditLogClosedError: If the record was already closed
            ValueError: If ``status`` is not a closing status
        """
        if status == AuditLogStatus.RECEIVED:
            raise ValueError("An audit log cannot be closed as 'received'")

        now = timezone.now()
        values = {
            "status": status,
            "outcome": outcome,
            "message": message,
            "closed_at": now,
            "updated_at": now,
        }
        if entity_type is not None:
            values["entity_type"] = entity_type
        if entity_id is not None:
            values["entity_id"] = str(entity_id)

        updated = AuditLog.objects.filter(
            pk=self.pk,
            status=AuditLogStatus.RECEIVED,
        ).update(**values)

        if not updated:
            raise AuditLogClosedError(
                f"AuditLog {self.pk} is already closed",
                details={"audit_log_id": str(self.pk), "status": self.status},
            )

        for name, value in values.items():
            setattr(self, name, value)
