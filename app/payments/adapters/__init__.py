"""
Gateway adapters for inbound payment notifications.

Importing this package registers every provider adapter. All webhook and
callback parsing goes through an adapter obtained from the registry, so
the views and the orchestrator never contain provider-specific code.

Usage:
    from payments.adapters import get_adapter

    adapter = get_adapter("stripe", setting=gateway_setting)
    event = adapter.parse_event(request.body, request.headers)
"""

from payments.adapters.base import (
    ADAPTER_REGISTRY,
    GatewayAdapter,
    NormalizedEvent,
    get_adapter,
    parse_callback_params,
    register_adapter,
    registered_gateways,
)
from payments.adapters.lygos_adapter import LygosAdapter
from payments.adapters.monetbill_adapter import MonetbillAdapter
from payments.adapters.paypal_adapter import PayPalAdapter
from payments.adapters.stripe_adapter import StripeAdapter
from payments.adapters.taramoney_adapter import TaraMoneyAdapter

__all__ = [
    "ADAPTER_REGISTRY",
    "GatewayAdapter",
    "NormalizedEvent",
    "get_adapter",
    "parse_callback_params",
    "register_adapter",
    "registered_gateways",
    "LygosAdapter",
    "MonetbillAdapter",
    "PayPalAdapter",
    "StripeAdapter",
    "TaraMoneyAdapter",
]
