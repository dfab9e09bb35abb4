"""
Service layer building blocks.

- ServiceResult: Result wrapper for operations whose failure is an answer,
  not an error (an operator asking to replay an unreplayable record)
- BaseService: Class-method services with explicit transaction boundaries

Anything a caller must branch on or map to an HTTP status is raised as an
exception instead (see core.exceptions and payments.exceptions).

Usage:
    from core.services import BaseService, ServiceResult

    class ReplayService(BaseService):
        @classmethod
        def replay(cls, audit_log) -> ServiceResult[AuditLog]:
            if not cls.can_replay(audit_log):
                return ServiceResult.failure("Not replayable", error_code="NOT_REPLAYABLE")
            with cls.atomic():
                ...
            return ServiceResult.success(replay_log)
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Outcome of a service call.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful
        error: Human-readable reason if failed
        error_code: Machine-readable reason if failed

    A failed result is falsy:

        result = ReplayService.replay(audit_log)
        if not result:
            logger.warning(f"Replay refused: {result.error}")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, error_code: str | None = None) -> ServiceResult[T]:
        return cls(success=False, error=error, error_code=error_code)

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Services expose class methods only and keep no instance state.
    """

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """Run the block in a database transaction (savepoint when nested)."""
        with transaction.atomic():
            yield
