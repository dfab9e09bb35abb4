"""
Tests for the CircuitBreaker class.

Covers:
- Failure counting and the open threshold
- Recovery through half-open probes
- Context manager recording
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from django.core.cache import cache

from core.circuit_breaker import CircuitBreaker, CircuitOpenError


@pytest.fixture(autouse=True)
def clear_cache():
    """Clear cache before each test to ensure isolation."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def circuit():
    """Circuit breaker with test-friendly thresholds."""
    return CircuitBreaker(
        name="commission-test",
        failure_threshold=3,
        recovery_timeout=5,
    )


def trip(circuit: CircuitBreaker) -> float:
    """Open the circuit and return the recorded opening time."""
    for _ in range(circuit.config.failure_threshold):
        circuit.record_failure()
    return cache.get(circuit._opened_at_key)


class TestFailureTracking:
    def test_starts_closed(self, circuit):
        """A fresh circuit admits calls."""
        assert circuit.is_available() is True
        assert circuit.get_status()["state"] == "closed"
        assert circuit.get_status()["failure_count"] == 0

    def test_failures_below_threshold_keep_circuit_closed(self, circuit):
        """Should stay closed until the threshold is reached."""
        circuit.record_failure()
        circuit.record_failure()

        assert circuit.is_available() is True
        assert circuit.get_status()["failure_count"] == 2

    def test_reaching_threshold_opens_circuit(self, circuit):
        """Should refuse calls once the threshold is reached."""
        trip(circuit)

        assert circuit.is_available() is False
        assert circuit.get_status()["state"] == "open"

    def test_success_resets_failure_count(self, circuit):
        """A success clears accumulated failures."""
        circuit.record_failure()
        circuit.record_failure()

        circuit.record_success()

        assert circuit.get_status()["failure_count"] == 0


class TestRecovery:
    def test_half_open_after_recovery_timeout(self, circuit):
        """Should admit a probe once the recovery timeout elapses."""
        opened_at = trip(circuit)

        with patch("core.circuit_breaker.time.time", return_value=opened_at + 6):
            assert circuit.is_available() is True
            assert circuit.get_status()["state"] == "half_open"

    def test_only_one_probe_admitted(self, circuit):
        """Half-open state admits half_open_max_calls probes, no more."""
        opened_at = trip(circuit)

        with patch("core.circuit_breaker.time.time", return_value=opened_at + 6):
            assert circuit.is_available() is True
            assert circuit.is_available() is False

    def test_successful_probe_closes_circuit(self, circuit):
        opened_at = trip(circuit)

        with patch("core.circuit_breaker.time.time", return_value=opened_at + 6):
            circuit.is_available()
            circuit.record_success()

        assert circuit.get_status()["state"] == "closed"
        assert circuit.is_available() is True

    def test_failed_probe_reopens_circuit(self, circuit):
        opened_at = trip(circuit)

        with patch("core.circuit_breaker.time.time", return_value=opened_at + 6):
            circuit.is_available()
            circuit.record_failure()
            assert circuit.get_status()["state"] == "open"
            assert circuit.is_available() is False

    def test_reset_closes_circuit(self, circuit):
        trip(circuit)

        circuit.reset()

        assert circuit.is_available() is True


class TestContextManager:
    def test_records_success(self, circuit):
        circuit.record_failure()

        with circuit.call():
            pass

        assert circuit.get_status()["failure_count"] == 0

    def test_records_failure_and_reraises(self, circuit):
        with pytest.raises(ValueError):
            with circuit.call():
                raise ValueError("commission backend down")

        assert circuit.get_status()["failure_count"] == 1

    def test_open_circuit_raises_without_running_block(self, circuit):
        """Should fail fast with CircuitOpenError when open."""
        trip(circuit)
        ran = []

        with pytest.raises(CircuitOpenError):
            with circuit.call():
                ran.append(True)

        assert ran == []
