"""
Commission accrual for transactions collected through centralized gateways.

Commission is a best-effort side effect of a completed transaction. It
runs after the reconciliation transaction has committed, behind a circuit
breaker and a hard timeout, and its failures are logged but never raised
into the webhook request.

The amount itself comes from an opaque calculator configured with the
COMMISSION_CALCULATOR setting (a dotted path to a callable taking
``(transaction, rate)`` and returning a Decimal). When unset, the platform
fee rate is applied to the transaction total.

Usage:
    from payments.services import CommissionService

    commission = CommissionService.create_for_transaction(txn)
    if commission is None:
        # Skipped, timed out or circuit open; already logged
        ...
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils.module_loading import import_string

from core.circuit_breaker import CircuitBreaker, CircuitOpenError
from core.services import BaseService

from payments.exceptions import CommissionError
from payments.models import Commission, EnvironmentPaymentConfig

if TYPE_CHECKING:
    from collections.abc import Callable

    from payments.models import Transaction


logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def default_commission_calculator(txn: Transaction, rate: Decimal) -> Decimal:
    """Percentage of the transaction total, rounded to cents."""
    return (txn.total_amount * rate / Decimal("100")).quantize(CENTS, rounding=ROUND_HALF_UP)


def get_commission_circuit() -> CircuitBreaker:
    return CircuitBreaker(
        "commission",
        failure_threshold=settings.COMMISSION_CIRCUIT_FAILURE_THRESHOLD,
        recovery_timeout=settings.COMMISSION_CIRCUIT_RECOVERY_TIMEOUT,
    )


class CommissionService(BaseService):
    """Creates at most one Commission per completed transaction."""

    @classmethod
    def get_calculator(cls) -> Callable[[Transaction, Decimal], Decimal]:
        path = getattr(settings, "COMMISSION_CALCULATOR", "")
        if not path:
            return default_commission_calculator
        return import_string(path)

    @classmethod
    def get_rate(cls, environment_id: int) -> Decimal:
        config = EnvironmentPaymentConfig.objects.filter(environment_id=environment_id).first()
        if config is not None:
            return config.platform_fee_rate
        return Decimal(str(settings.DEFAULT_PLATFORM_FEE_RATE))

    @classmethod
    def create_for_transaction(cls, txn: Transaction) -> Commission | None:
        """
        Accrue the commission for ``txn``.

        Returns the Commission (new or pre-existing), or None when the call
        was skipped or failed. Never raises.
        """
        existing = Commission.objects.filter(transaction_id=txn.pk).first()
        if existing is not None:
            return existing

        circuit = get_commission_circuit()
        rate = cls.get_rate(txn.environment_id)

        try:
            with circuit.call():
                amount = cls.calculate(txn, rate)
            with cls.atomic():
                commission, created = Commission.objects.get_or_create(
                    transaction=txn,
                    defaults={
                        "environment_id": txn.environment_id,
                        "rate": rate,
                        "amount": amount,
                        "currency": txn.currency,
                    },
                )
        except CircuitOpenError:
            logger.warning(
                "Commission circuit open, skipping commission",
                extra={"transaction_id": txn.transaction_id},
            )
            return None
        except CommissionError as e:
            logger.error(
                f"Commission not recorded: {e.message}",
                extra={"transaction_id": txn.transaction_id, **e.details},
            )
            return None
        except Exception as e:
            logger.error(
                f"Unexpected error creating commission: {e}",
                extra={"transaction_id": txn.transaction_id},
                exc_info=True,
            )
            return None

        if created:
            logger.info(
                f"Commission {commission.amount} {commission.currency} recorded",
                extra={
                    "transaction_id": txn.transaction_id,
                    "environment_id": txn.environment_id,
                    "rate": str(rate),
                },
            )
        return commission

    @classmethod
    def calculate(cls, txn: Transaction, rate: Decimal) -> Decimal:
        """
        Run the configured calculator with a hard timeout.

        The calculator runs in a worker thread so a hung collaborator
        cannot hold the webhook request past COMMISSION_TIMEOUT_SECONDS.

        Raises:
            CommissionError: On timeout or calculator failure
        """
        calculator = cls.get_calculator()
        timeout = settings.COMMISSION_TIMEOUT_SECONDS

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="commission")
        future = executor.submit(calculator, txn, rate)
        try:
            amount = future.result(timeout=timeout)
        except FutureTimeoutError:
            raise CommissionError(
                "Commission calculation timed out",
                details={"timeout_seconds": timeout},
            )
        except Exception as e:
            raise CommissionError(
                f"Commission calculator failed: {e}",
                details={"calculator": getattr(calculator, "__name__", repr(calculator))},
            ) from e
        finally:
            executor.shutdown(wait=False)

        return Decimal(str(amount)).quantize(CENTS, rounding=ROUND_HALF_UP)

    @classmethod
    def should_accrue(cls, txn: Transaction) -> bool:
        return EnvironmentPaymentConfig.uses_centralized_gateways(txn.environment_id)
