"""
Payment domain models.

- Transaction: A payment attempt reconciled against gateway notifications
- PaymentGatewaySetting: Per-tenant gateway credentials (read-only here)
- EnvironmentPaymentConfig: Per-tenant payment policy
- Order: Storefront order completed by its transaction
- Subscription / Payment: Recurring plans and their billing attempts
- Commission: Platform cut of centralized-gateway transactions
- AuditLog: Open-at-receipt, close-at-outcome record of every notification
"""

from payments.models.audit_log import AuditLog
from payments.models.commission import Commission
from payments.models.gateway_setting import (
    EnvironmentPaymentConfig,
    PaymentGatewaySetting,
)
from payments.models.order import Order
from payments.models.subscription import Payment, Subscription
from payments.models.transaction import Transaction

__all__ = [
    "AuditLog",
    "Commission",
    "EnvironmentPaymentConfig",
    "Order",
    "Payment",
    "PaymentGatewaySetting",
    "Subscription",
    "Transaction",
]
