"""
DRF serializers for the payments admin API.

This module provides serializers for:
- Transaction display
- Administrative status updates
- Audit log display

Related files:
    - models/: Transaction, AuditLog
    - views.py: Admin API viewsets

Usage:
    serializer = TransactionSerializer(txn)
    data = serializer.data
"""

from __future__ import annotations

from rest_framework import serializers

from payments.models import AuditLog, Transaction
from payments.state_machines import TransactionStatus


class TransactionSerializer(serializers.ModelSerializer):
    """
    Transaction serializer for admin API responses.

    gateway_response is returned parsed rather than as stored JSON text.
    """

    gateway_response = serializers.SerializerMethodField(
        help_text="Last payload received from the gateway"
    )
    order_number = serializers.CharField(
        source="order.order_number",
        read_only=True,
        allow_null=True,
        default=None,
    )

    class Meta:
        model = Transaction
        fields = [
            "id",
            "transaction_id",
            "environment_id",
            "scope",
            "gateway",
            "order",
            "order_number",
            "customer_name",
            "customer_email",
            "customer_phone",
            "amount",
            "fee_amount",
            "tax_amount",
            "total_amount",
            "currency",
            "status",
            "gateway_transaction_id",
            "gateway_status",
            "gateway_response",
            "payment_method",
            "description",
            "notes",
            "failure_reason",
            "refund_reason",
            "paid_at",
            "failed_at",
            "refunded_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_gateway_response(self, obj: Transaction):
        return obj.get_gateway_response()


class TransactionStatusUpdateSerializer(serializers.Serializer):
    """
    Request body for PUT transactions/<id>/status/.

    Any known status is accepted here; whether the move is allowed is
    decided by TransactionService (409 when it is not).
    """

    status = serializers.ChoiceField(choices=TransactionStatus.choices)
    reason = serializers.CharField(max_length=1000, trim_whitespace=True)


class AuditLogSerializer(serializers.ModelSerializer):
    """Audit log serializer, including the raw body for inspection."""

    replay_count = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = [
            "id",
            "log_type",
            "gateway",
            "action",
            "environment_id",
            "raw_body",
            "request_data",
            "headers",
            "ip_address",
            "user_agent",
            "entity_type",
            "entity_id",
            "status",
            "outcome",
            "message",
            "closed_at",
            "replay_of",
            "replay_count",
            "created_at",
        ]
        read_only_fields = fields

    def get_replay_count(self, obj: AuditLog) -> int:
        return obj.replays.count()


class AuditLogListSerializer(AuditLogSerializer):
    """Lighter audit log representation for list views."""

    class Meta(AuditLogSerializer.Meta):
        fields = [
            "id",
            "log_type",
            "gateway",
            "action",
            "environment_id",
            "entity_type",
            "entity_id",
            "status",
            "outcome",
            "message",
            "closed_at",
            "replay_of",
            "created_at",
        ]
        read_only_fields = fields


class ReplayQueuedSerializer(serializers.Serializer):
    """Response body for POST audit-logs/<id>/replay/."""

    status = serializers.CharField()
    audit_log_id = serializers.UUIDField()
