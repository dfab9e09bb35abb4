"""
State machine enums for payment models.

This module defines the state enums used by payment models with django-fsm.
"""

from payments.state_machines.states import (
    AuditLogStatus,
    AuditLogType,
    AuditOutcome,
    BillingCycle,
    CommissionStatus,
    EventStatus,
    GatewayCode,
    GatewayMode,
    OrderStatus,
    PaymentStatus,
    SubscriptionStatus,
    TransactionScope,
    TransactionStatus,
)

__all__ = [
    "AuditLogStatus",
    "AuditLogType",
    "AuditOutcome",
    "BillingCycle",
    "CommissionStatus",
    "EventStatus",
    "GatewayCode",
    "GatewayMode",
    "OrderStatus",
    "PaymentStatus",
    "SubscriptionStatus",
    "TransactionScope",
    "TransactionStatus",
]
