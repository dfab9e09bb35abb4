import django_filters as filters
from django.db.models import Q

from payments.models import AuditLog, Transaction
from payments.state_machines import (
    AuditLogStatus,
    AuditLogType,
    AuditOutcome,
    GatewayCode,
    TransactionScope,
    TransactionStatus,
)


class TransactionFilter(filters.FilterSet):
    status = filters.ChoiceFilter(choices=TransactionStatus.choices)
    gateway = filters.ChoiceFilter(choices=GatewayCode.choices)
    scope = filters.ChoiceFilter(choices=TransactionScope.choices)
    # Our transaction_id or the gateway's own payment id
    reference = filters.CharFilter(method="filter_reference")
    created_after = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_before = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Transaction
        fields = [
            "environment_id",
            "status",
            "gateway",
            "scope",
            "order",
            "reference",
            "created_after",
            "created_before",
        ]

    def filter_reference(self, queryset, name, value):
        return queryset.filter(Q(transaction_id=value) | Q(gateway_transaction_id=value))


class AuditLogFilter(filters.FilterSet):
    log_type = filters.ChoiceFilter(choices=AuditLogType.choices)
    status = filters.ChoiceFilter(choices=AuditLogStatus.choices)
    outcome = filters.ChoiceFilter(choices=AuditOutcome.choices)
    created_after = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_before = filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = AuditLog
        fields = [
            "environment_id",
            "log_type",
            "gateway",
            "status",
            "outcome",
            "entity_id",
            "replay_of",
            "created_after",
            "created_before",
        ]
