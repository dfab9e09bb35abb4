"""
Circuit breaker for best-effort calls to external collaborators.

State lives in Django's cache backend (Redis in production) so that every
web worker sees the same circuit. The reconciliation engine wraps the
commission call in one of these: once the commission collaborator has
failed repeatedly, further calls fail fast instead of holding the gateway's
webhook request open.

States:
    - CLOSED: Normal operation, calls pass through
    - OPEN: Collaborator is failing, calls are refused immediately
    - HALF_OPEN: Recovery probe, a limited number of calls pass through

Usage:
    from core.circuit_breaker import CircuitBreaker, CircuitOpenError

    commission_circuit = CircuitBreaker("commission", failure_threshold=5)

    try:
        with commission_circuit.call():
            calculator(transaction)
    except CircuitOpenError:
        logger.warning("Commission circuit open, skipping")

Design Notes:
    - A cache outage fails open: the breaker never blocks calls because it
      cannot read its own state.
    - Counters use cache.incr, which is atomic on Redis.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from django.core.cache import cache

if TYPE_CHECKING:
    from collections.abc import Generator

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerConfig:
    """Thresholds for a circuit breaker instance."""

    failure_threshold: int = 5
    recovery_timeout: int = 60
    half_open_max_calls: int = 1
    cache_ttl: int = 3600


class CircuitOpenError(Exception):
    """
    Raised when attempting to call through an open circuit.

    Signals that the collaborator is considered unavailable, not that a call
    actually failed.
    """


class CircuitBreaker:
    """
    Distributed circuit breaker using the Django cache backend.

    Attributes:
        name: Unique identifier, used to namespace the cache keys
        config: Thresholds and timeouts
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        half_open_max_calls: int = 1,
    ):
        self.name = name
        self.config = CircuitBreakerConfig(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            half_open_max_calls=half_open_max_calls,
        )
        prefix = f"circuit:{name}"
        self._state_key = f"{prefix}:state"
        self._failures_key = f"{prefix}:failures"
        self._opened_at_key = f"{prefix}:opened_at"
        self._probes_key = f"{prefix}:half_open_calls"

    # =========================================================================
    # Public API
    # =========================================================================

    def is_available(self) -> bool:
        """
        Return True if a call may go through right now.

        An OPEN circuit whose recovery timeout has elapsed moves to
        HALF_OPEN and admits the caller as the first probe.
        """
        try:
            state = self._get_state()

            if state == CircuitState.OPEN:
                opened_at = cache.get(self._opened_at_key)
                if opened_at is None or (
                    time.time() - opened_at < self.config.recovery_timeout
                ):
                    return False
                self._set_state(CircuitState.HALF_OPEN)
                cache.set(self._probes_key, 0, timeout=self.config.cache_ttl)
                logger.info(
                    "Circuit breaker half-open, probing",
                    extra={"circuit": self.name},
                )
                state = CircuitState.HALF_OPEN

            if state == CircuitState.HALF_OPEN:
                if cache.get(self._probes_key, 0) >= self.config.half_open_max_calls:
                    return False
                self._incr(self._probes_key)

            return True

        except Exception as e:
            logger.warning(
                f"Circuit breaker cache error, failing open: {e}",
                extra={"circuit": self.name},
            )
            return True

    def record_success(self) -> None:
        """Close a half-open circuit and reset the failure count."""
        try:
            if self._get_state() == CircuitState.HALF_OPEN:
                self._set_state(CircuitState.CLOSED)
                logger.info(
                    "Circuit breaker closed after successful probe",
                    extra={"circuit": self.name},
                )
            cache.set(self._failures_key, 0, timeout=self.config.cache_ttl)
        except Exception as e:
            logger.warning(
                f"Circuit breaker failed to record success: {e}",
                extra={"circuit": self.name},
            )

    def record_failure(self) -> None:
        """Count a failure; open the circuit at the threshold or on a failed probe."""
        try:
            if self._get_state() == CircuitState.HALF_OPEN:
                self._open()
                logger.warning(
                    "Circuit breaker reopened after failed probe",
                    extra={"circuit": self.name},
                )
                return

            failures = self._incr(self._failures_key)
            if failures >= self.config.failure_threshold:
                self._open()
                logger.warning(
                    f"Circuit breaker opened after {failures} failures",
                    extra={
                        "circuit": self.name,
                        "failure_count": failures,
                        "threshold": self.config.failure_threshold,
                    },
                )
        except Exception as e:
            logger.warning(
                f"Circuit breaker failed to record failure: {e}",
                extra={"circuit": self.name},
            )

    @contextmanager
    def call(self) -> Generator[None, None, None]:
        """
        Guard a block of code, recording its success or failure.

        Raises:
            CircuitOpenError: If the circuit refuses the call
        """
        if not self.is_available():
            raise CircuitOpenError(f"Circuit '{self.name}' is open")

        try:
            yield
        except Exception:
            self.record_failure()
            raise
        self.record_success()

    def reset(self) -> None:
        """Force the circuit back to CLOSED (admin and test use)."""
        cache.delete_many(
            [self._state_key, self._failures_key, self._opened_at_key, self._probes_key]
        )

    def get_status(self) -> dict:
        """Snapshot of the circuit for health checks and logging."""
        state = self._get_state()
        status = {
            "name": self.name,
            "state": state.value,
            "failure_count": cache.get(self._failures_key, 0),
            "failure_threshold": self.config.failure_threshold,
        }
        opened_at = cache.get(self._opened_at_key)
        if state == CircuitState.OPEN and opened_at:
            elapsed = time.time() - opened_at
            status["recovery_in_seconds"] = max(
                0, int(self.config.recovery_timeout - elapsed)
            )
        return status

    # =========================================================================
    # Private cache operations
    # =========================================================================

    def _get_state(self) -> CircuitState:
        raw = cache.get(self._state_key, CircuitState.CLOSED.value)
        try:
            return CircuitState(raw)
        except ValueError:
            return CircuitState.CLOSED

    def _set_state(self, state: CircuitState) -> None:
        cache.set(self._state_key, state.value, timeout=self.config.cache_ttl)

    def _open(self) -> None:
        self._set_state(CircuitState.OPEN)
        cache.set(self._opened_at_key, time.time(), timeout=self.config.cache_ttl)

    def _incr(self, key: str) -> int:
        try:
            return cache.incr(key)
        except ValueError:
            cache.set(key, 1, timeout=self.config.cache_ttl)
            return 1

    def __repr__(self) -> str:
        return f"CircuitBreaker(name={self.name!r}, state={self._get_state().value})"
