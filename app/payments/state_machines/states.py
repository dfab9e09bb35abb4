"""
State enums for payment models.

These are Django TextChoices so they can back FSMFields, plain choice
fields and admin filters alike.

State Machines Overview:

Transaction States:
    pending → completed (gateway success)
    pending → failed (gateway failure)
    completed/failed → refunded/partially_refunded (administrative only)

Order States:
    pending → completed (on transaction completion)
    pending → cancelled
    completed → refunded

Subscription States:
    pending → active (first completed payment)
    active → active (renewal extends the period)
    active → expired / cancelled
"""

from django.db import models


class TransactionStatus(models.TextChoices):
    """
    States for the Transaction lifecycle.

    PROCESSING is reserved for gateways that report an intermediate state;
    the reconciliation flow itself only moves rows out of PENDING.

    Terminal for gateway notifications: COMPLETED, FAILED.
    REFUNDED and PARTIALLY_REFUNDED are reachable only through the admin
    status update.
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"
    PARTIALLY_REFUNDED = "partially_refunded", "Partially Refunded"


class TransactionScope(models.TextChoices):
    """
    Visibility of a transaction to the resolver.

    TENANT transactions resolve only from their own environment. GLOBAL
    transactions are platform-level purchases (e.g. a supported plan bought
    before the tenant environment exists) and may resolve from any
    environment.
    """

    TENANT = "tenant", "Tenant"
    GLOBAL = "global", "Global"


class OrderStatus(models.TextChoices):
    """States for the Order lifecycle."""

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"


class SubscriptionStatus(models.TextChoices):
    """States for Subscription."""

    PENDING = "pending", "Pending"
    ACTIVE = "active", "Active"
    EXPIRED = "expired", "Expired"
    CANCELLED = "cancelled", "Cancelled"


class BillingCycle(models.TextChoices):
    """Subscription renewal period."""

    MONTHLY = "monthly", "Monthly"
    YEARLY = "yearly", "Yearly"


class PaymentStatus(models.TextChoices):
    """States for a subscription Payment row."""

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class CommissionStatus(models.TextChoices):
    """Settlement status of a platform commission."""

    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    CANCELLED = "cancelled", "Cancelled"


class GatewayCode(models.TextChoices):
    """Supported payment gateways."""

    STRIPE = "stripe", "Stripe"
    PAYPAL = "paypal", "PayPal"
    LYGOS = "lygos", "Lygos"
    MONETBILL = "monetbill", "Monetbill"
    TARAMONEY = "taramoney", "TaraMoney"


class GatewayMode(models.TextChoices):
    SANDBOX = "sandbox", "Sandbox"
    LIVE = "live", "Live"


class EventStatus(models.TextChoices):
    """
    Canonical outcome of a gateway notification.

    Every adapter maps its provider-specific vocabulary onto these four
    values. UNKNOWN never triggers a transition.
    """

    SUCCESS = "success", "Success"
    FAILURE = "failure", "Failure"
    CANCELLED = "cancelled", "Cancelled"
    UNKNOWN = "unknown", "Unknown"


class AuditLogType(models.TextChoices):
    """Channel an audited notification arrived through."""

    WEBHOOK = "webhook", "Webhook"
    CALLBACK = "callback", "Callback"
    ADMIN = "admin", "Admin"
    REPLAY = "replay", "Replay"


class AuditLogStatus(models.TextChoices):
    """
    Lifecycle status of an AuditLog record.

    RECEIVED is the only open status. A record moves to exactly one of
    SUCCESS, FAILURE or ERROR when it is closed and never changes again.
    """

    RECEIVED = "received", "Received"
    SUCCESS = "success", "Success"
    FAILURE = "failure", "Failure"
    ERROR = "error", "Error"


class AuditOutcome(models.TextChoices):
    """Typed reason an AuditLog record was closed with."""

    PROCESSED = "processed", "Processed"
    DUPLICATE = "duplicate", "Duplicate"
    NOT_FOUND = "not_found", "No matching transaction"
    INVALID_PAYLOAD = "invalid_payload", "Invalid payload"
    INVALID_SIGNATURE = "invalid_signature", "Invalid signature"
    UNKNOWN_GATEWAY = "unknown_gateway", "Unknown gateway configuration"
    IGNORED = "ignored", "Ignored"
    CANCELLED = "cancelled", "Cancelled"
    PROCESSING_ERROR = "processing_error", "Processing error"
