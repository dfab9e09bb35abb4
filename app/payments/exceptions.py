"""
Payment-specific exceptions for the reconciliation engine.

Each exception maps to one way an inbound gateway notification can end.
The webhook and callback views translate them into an HTTP status and an
audit outcome; nothing below the view layer decides response codes.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── InvalidPayloadError - Malformed webhook/callback body (400)
    ├── SignatureVerificationError - Authenticity check failed (400)
    ├── UnknownGatewayError - No adapter for the gateway code (404)
    ├── GatewayConfigurationError - No active settings for the tenant (404)
    └── TransactionNotFoundError - Reference resolves to nothing (200 ack)

    InvalidStateTransitionError - Transition not allowed (inherits ConflictError)
    AuditLogClosedError - Closed audit record touched again (inherits ConflictError)
    CommissionError - Commission collaborator failed (inherits ExternalServiceError)

Usage:
    from payments.exceptions import SignatureVerificationError

    if not adapter.verify_signature(raw_body, headers, secret):
        raise SignatureVerificationError(
            "Lygos signature mismatch",
            details={"gateway": "lygos"},
        )
"""

from __future__ import annotations

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """Base exception for all payment operations."""

    default_error_code: str = "PAYMENT_ERROR"


class InvalidPayloadError(PaymentError, ValidationError):
    """
    Raised when a gateway payload cannot be parsed.

    Covers bodies that are not JSON/form data, missing references, and
    events whose shape does not match the provider's documented format.
    """

    default_error_code: str = "INVALID_PAYLOAD"


class SignatureVerificationError(PaymentError, ValidationError):
    """
    Raised when a notification fails its gateway's authenticity check.

    Missing signature headers and missing secrets are treated the same as a
    mismatch. There is no fallback that accepts an unverified payload.
    """

    default_error_code: str = "INVALID_SIGNATURE"


class UnknownGatewayError(PaymentError, NotFoundError):
    """Raised when no adapter is registered for a gateway code."""

    default_error_code: str = "UNKNOWN_GATEWAY"


class GatewayConfigurationError(PaymentError, NotFoundError):
    """
    Raised when a tenant has no active settings for a gateway.

    Example:
        raise GatewayConfigurationError(
            "No active stripe settings for environment 7",
            details={"gateway": "stripe", "environment_id": 7},
        )
    """

    default_error_code: str = "GATEWAY_NOT_CONFIGURED"


class TransactionNotFoundError(PaymentError, NotFoundError):
    """
    Raised when a gateway reference matches no eligible transaction.

    The webhook view still acknowledges with 200 so the gateway stops
    retrying, and the response never says whether the reference exists
    in another tenant.
    """

    default_error_code: str = "TRANSACTION_NOT_FOUND"


# =============================================================================
# State & Concurrency Exceptions
# =============================================================================


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a state machine transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed with the standard error format.

    Example:
        try:
            txn.refund(reason="chargeback")
        except TransitionNotAllowed:
            raise InvalidStateTransitionError(
                f"Cannot refund transaction from '{txn.status}'",
                details={"current_status": txn.status, "target_status": "refunded"},
            )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


class AuditLogClosedError(ConflictError):
    """Raised when a closed AuditLog record would be modified."""

    default_error_code: str = "AUDIT_LOG_CLOSED"


# =============================================================================
# Side-effect Exceptions
# =============================================================================


class CommissionError(ExternalServiceError):
    """
    Raised when commission creation fails or times out.

    Never propagates past the reconciliation orchestrator; it is logged and
    the already-committed transaction state stands.
    """

    default_error_code: str = "COMMISSION_FAILED"


__all__ = [
    "PaymentError",
    "InvalidPayloadError",
    "SignatureVerificationError",
    "UnknownGatewayError",
    "GatewayConfigurationError",
    "TransactionNotFoundError",
    "InvalidStateTransitionError",
    "AuditLogClosedError",
    "CommissionError",
]
