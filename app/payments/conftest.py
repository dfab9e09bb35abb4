"""
Pytest fixtures shared by every payments test package.

Usage:
    def test_lygos_success(pending_transaction, lygos_setting, hmac_sign):
        body = json.dumps({...}).encode()
        signature = hmac_sign(body)
"""

import hashlib
import hmac

import pytest

from payments.state_machines import GatewayCode
from payments.tests.factories import (
    AuditLogFactory,
    PaymentGatewaySettingFactory,
    TransactionFactory,
)

ENVIRONMENT_ID = 7
WEBHOOK_SECRET = "whsec_test_secret"


@pytest.fixture
def environment_id():
    return ENVIRONMENT_ID


@pytest.fixture
def webhook_secret():
    return WEBHOOK_SECRET


# =============================================================================
# Gateway Settings
# =============================================================================


@pytest.fixture
def lygos_setting(db):
    return PaymentGatewaySettingFactory(code=GatewayCode.LYGOS, webhook_secret=WEBHOOK_SECRET)


@pytest.fixture
def taramoney_setting(db):
    return PaymentGatewaySettingFactory(
        code=GatewayCode.TARAMONEY,
        webhook_secret=WEBHOOK_SECRET,
    )


@pytest.fixture
def monetbill_setting(db):
    return PaymentGatewaySettingFactory(
        code=GatewayCode.MONETBILL,
        webhook_secret=WEBHOOK_SECRET,
    )


# =============================================================================
# Transactions and Audit Records
# =============================================================================


@pytest.fixture
def pending_transaction(db):
    """Pending tenant transaction in environment 7 (total 121.75)."""
    return TransactionFactory(environment_id=ENVIRONMENT_ID)


@pytest.fixture
def open_audit_log(db):
    """Webhook audit record still in the received state."""
    return AuditLogFactory(environment_id=ENVIRONMENT_ID)


# =============================================================================
# Signing Helpers
# =============================================================================


@pytest.fixture
def hmac_sign():
    """Hex HMAC-SHA256 of a raw body, as Lygos and TaraMoney send it."""

    def _sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
        return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()

    return _sign
