"""
Base exception classes for application-wide error handling.

Every domain error raised by the reconciliation engine derives from
BaseApplicationError so that views, tasks and the DRF exception handler
can treat them uniformly.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed or unverifiable input (400)
    ├── NotFoundError - Missing resource or configuration (404)
    ├── ConflictError - State conflicts, invalid transitions (409)
    └── ExternalServiceError - Downstream collaborator failures (502)

Usage:
    from core.exceptions import ValidationError, NotFoundError

    raise ValidationError("Body is not valid JSON", error_code="INVALID_JSON")

    raise NotFoundError(
        "No active gateway configuration",
        details={"gateway": "lygos", "environment_id": 7},
    )

    # Convert to dict for an API response
    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)

Note:
    DRF views render these through core.exception_handlers, registered as
    REST_FRAMEWORK["EXCEPTION_HANDLER"] in settings.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, field errors, etc.)
        http_status: Status code used when the error reaches an API boundary
    """

    default_error_code: str = "APPLICATION_ERROR"
    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Transaction not found",
                "error_code": "TRANSACTION_NOT_FOUND",
                "details": {"transaction_id": 42}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input cannot be accepted as-is.

    Use for malformed payloads, missing required parameters and
    authenticity checks that fail.
    """

    default_error_code: str = "VALIDATION_ERROR"
    http_status: int = 400


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Example:
        setting = PaymentGatewaySetting.objects.for_environment(code, env_id)
        if setting is None:
            raise NotFoundError(
                f"No active {code} settings",
                details={"gateway": code, "environment_id": env_id},
            )
    """

    default_error_code: str = "NOT_FOUND"
    http_status: int = 404


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for invalid state transitions and duplicate writes. HTTP 409 is
    the appropriate status.
    """

    default_error_code: str = "CONFLICT"
    http_status: int = 409


class ExternalServiceError(BaseApplicationError):
    """
    Raised when a call to an external collaborator fails.

    Log the original error for debugging but don't expose internal
    details to clients.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    http_status: int = 502

