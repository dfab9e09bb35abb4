"""
DRF views for the payments admin API.

This module provides operator-facing endpoints for:
- Browsing transactions
- Administrative refund status changes
- Browsing and replaying the audit log

Related files:
    - services/: TransactionService, ReplayService
    - serializers.py: Request/response serializers
    - urls.py: URL routing
    - webhooks/views.py: Gateway-facing webhook and callback endpoints

Endpoints:
    GET  /api/v1/payments/transactions/ - List transactions
    GET  /api/v1/payments/transactions/<id>/ - Transaction detail
    PUT  /api/v1/payments/transactions/<id>/status/ - Refund a transaction
    GET  /api/v1/payments/audit-logs/ - List audit log entries
    GET  /api/v1/payments/audit-logs/<uuid>/ - Audit log detail
    POST /api/v1/payments/audit-logs/<uuid>/replay/ - Queue a replay

Security:
    - Every endpoint requires a staff user (IsAdminUser)
"""

from __future__ import annotations

import logging

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import extend_schema, extend_schema_view
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response

from payments.filters import AuditLogFilter, TransactionFilter
from payments.models import AuditLog, Transaction
from payments.pagination import AuditLogPagination, TransactionPagination
from payments.serializers import (
    AuditLogListSerializer,
    AuditLogSerializer,
    ReplayQueuedSerializer,
    TransactionSerializer,
    TransactionStatusUpdateSerializer,
)
from payments.services import ReplayService, TransactionService

logger = logging.getLogger(__name__)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_transactions",
        summary="List transactions",
        tags=["Payments - Transactions"],
    ),
    retrieve=extend_schema(
        operation_id="get_transaction",
        summary="Get transaction",
        tags=["Payments - Transactions"],
    ),
)
class TransactionViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Read access to transactions, plus the administrative status update.

    list:
        Transactions, newest first. Filter by environment_id, status,
        gateway, scope, order, reference and creation time.

    retrieve:
        One transaction with its parsed gateway response.

    update_status:
        Move a completed or failed transaction to refunded or
        partially_refunded. Any other move is rejected with 409.
    """

    queryset = Transaction.objects.select_related("order")
    permission_classes = [IsAdminUser]
    serializer_class = TransactionSerializer
    pagination_class = TransactionPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = TransactionFilter
    lookup_value_regex = r"\d+"

    @extend_schema(
        operation_id="update_transaction_status",
        summary="Refund a transaction",
        tags=["Payments - Transactions"],
        request=TransactionStatusUpdateSerializer,
        responses={200: TransactionSerializer},
    )
    @action(detail=True, methods=["put"], url_path="status")
    def update_status(self, request, pk=None):
        """Apply an administrative status change."""
        serializer = TransactionStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        # Errors surface through core.exception_handlers (404/400/409)
        txn = TransactionService.update_status(
            pk=int(pk),
            status=serializer.validated_data["status"],
            reason=serializer.validated_data["reason"],
            user=request.user,
        )
        return Response(TransactionSerializer(txn).data)


@extend_schema_view(
    list=extend_schema(
        operation_id="list_audit_logs",
        summary="List audit log entries",
        tags=["Payments - Audit Log"],
    ),
    retrieve=extend_schema(
        operation_id="get_audit_log",
        summary="Get audit log entry",
        tags=["Payments - Audit Log"],
    ),
)
class AuditLogViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Read access to the audit log, plus operator replay.

    list:
        Entries, newest first, without raw bodies. Filter by environment_id,
        log_type, gateway, status, outcome, entity_id, replay_of and
        creation time.

    retrieve:
        One entry including raw body and redacted headers.

    replay:
        Queue the entry for replay through the reconciliation pipeline.
    """

    queryset = AuditLog.objects.all()
    permission_classes = [IsAdminUser]
    pagination_class = AuditLogPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = AuditLogFilter

    def get_serializer_class(self):
        if self.action == "list":
            return AuditLogListSerializer
        return AuditLogSerializer

    @extend_schema(
        operation_id="replay_audit_log",
        summary="Replay audit log entry",
        tags=["Payments - Audit Log"],
        request=None,
        responses={202: ReplayQueuedSerializer},
    )
    @action(detail=True, methods=["post"])
    def replay(self, request, pk=None):
        """Queue a replay of this entry."""
        audit_log = self.get_object()

        if not ReplayService.can_replay(audit_log):
            return Response(
                {
                    "error": "This audit log entry cannot be replayed",
                    "error_code": "NOT_REPLAYABLE",
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        from payments.tasks import replay_audit_log

        replay_audit_log.delay(str(audit_log.pk))
        logger.info(
            f"Replay of audit log {audit_log.pk} queued by {request.user}",
            extra={"audit_log_id": str(audit_log.pk)},
        )
        return Response(
            ReplayQueuedSerializer({"status": "queued", "audit_log_id": audit_log.pk}).data,
            status=status.HTTP_202_ACCEPTED,
        )
