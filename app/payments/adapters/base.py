"""
Gateway adapter contract and registry.

Every payment provider is represented by one GatewayAdapter subclass that
knows three things about its provider:

1. How to prove a webhook really came from the provider (verify_signature)
2. How to turn a webhook body into a NormalizedEvent (parse_event)
3. How to read the status token of a browser redirect (parse_callback)

The orchestrator and the views only ever see NormalizedEvent, so adding a
provider means adding one adapter module and registering it here.

Usage:
    from payments.adapters import get_adapter

    adapter = get_adapter("lygos", setting=gateway_setting)
    if not adapter.verify_signature(raw_body, headers, secret):
        raise SignatureVerificationError(...)
    event = adapter.parse_event(raw_body, headers)

Registering a provider:
    @register_adapter("acmepay")
    class AcmePayAdapter(GatewayAdapter):
        ...
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar
from urllib.parse import parse_qsl

from payments.exceptions import InvalidPayloadError, UnknownGatewayError
from payments.state_machines import EventStatus

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from typing import Any

    from payments.models import PaymentGatewaySetting


logger = logging.getLogger(__name__)


# =============================================================================
# Normalized Event
# =============================================================================


@dataclass(frozen=True)
class NormalizedEvent:
    """
    Provider-independent view of one gateway notification.

    Attributes:
        reference: Our transaction identifier as echoed back by the gateway
            (transaction_id, or the internal id for signed webhooks)
        status: Canonical outcome (success, failure, cancelled, unknown)
        raw_payload: Parsed body, persisted as the transaction's gateway_response
        gateway_reference: The provider's own payment id, when present
        event_type: Provider event name (e.g. "payment_intent.succeeded")
        gateway_status: Provider status string, stored on the transaction
        failure_reason: Provider-supplied reason for failures
        order_reference: The Order the payment is for (order pk or
            order_number), used only when no transaction identifier matches
    """

    reference: str | None
    status: str
    raw_payload: dict[str, Any] = field(default_factory=dict)
    gateway_reference: str | None = None
    event_type: str = ""
    gateway_status: str = ""
    failure_reason: str | None = None
    order_reference: str | None = None

    @property
    def is_actionable(self) -> bool:
        return self.status != EventStatus.UNKNOWN

    def log_context(self) -> dict[str, Any]:
        return {
            "reference": self.reference,
            "gateway_reference": self.gateway_reference,
            "order_reference": self.order_reference,
            "event_type": self.event_type,
            "event_status": str(self.status),
        }


# =============================================================================
# Callback vocabulary shared by every provider
# =============================================================================

CALLBACK_STATUS_TOKENS: dict[str, str] = {
    "success": EventStatus.SUCCESS,
    "successful": EventStatus.SUCCESS,
    "succeeded": EventStatus.SUCCESS,
    "completed": EventStatus.SUCCESS,
    "complete": EventStatus.SUCCESS,
    "paid": EventStatus.SUCCESS,
    "approved": EventStatus.SUCCESS,
    "failed": EventStatus.FAILURE,
    "failure": EventStatus.FAILURE,
    "error": EventStatus.FAILURE,
    "declined": EventStatus.FAILURE,
    "denied": EventStatus.FAILURE,
    "rejected": EventStatus.FAILURE,
    "cancelled": EventStatus.CANCELLED,
    "canceled": EventStatus.CANCELLED,
    "cancel": EventStatus.CANCELLED,
    "aborted": EventStatus.CANCELLED,
}

CALLBACK_REFERENCE_PARAMS = ("payment_ref", "order_id", "transaction_id", "reference")


# =============================================================================
# Adapter Base Class
# =============================================================================


class GatewayAdapter(ABC):
    """
    Base class for provider adapters.

    Subclasses set ``code`` (via @register_adapter) and implement
    parse_event and verify_signature. Instances are cheap and created per
    request, bound to the tenant's PaymentGatewaySetting when one exists.
    """

    code: ClassVar[str] = ""
    signature_header: ClassVar[str | None] = None
    callback_status_tokens: ClassVar[dict[str, str]] = {}

    def __init__(self, setting: PaymentGatewaySetting | None = None):
        self.setting = setting

    # =========================================================================
    # Contract
    # =========================================================================

    @abstractmethod
    def parse_event(self, raw_body: bytes, headers: Mapping[str, str]) -> NormalizedEvent:
        """
        Parse a webhook body into a NormalizedEvent.

        Raises:
            InvalidPayloadError: If the body is malformed or an actionable
                event carries no reference at all
        """

    @abstractmethod
    def verify_signature(
        self,
        raw_body: bytes,
        headers: Mapping[str, str],
        secret: str,
    ) -> bool:
        """
        Return True only if the notification is proven authentic.

        Missing headers or an empty secret return False.
        """

    def parse_callback(
        self,
        params: Mapping[str, str],
        default_status: str,
    ) -> NormalizedEvent:
        """
        Read a browser redirect back from the hosted payment page.

        ``default_status`` comes from the URL (success or failure endpoint)
        and applies when the query string carries no status token.
        """
        return parse_callback_params(
            params,
            default_status,
            extra_tokens=self.callback_status_tokens,
        )

    # =========================================================================
    # Helpers for subclasses
    # =========================================================================

    @staticmethod
    def get_header(headers: Mapping[str, str], name: str) -> str:
        """Case-insensitive header lookup returning '' when absent."""
        wanted = name.lower()
        for key, value in headers.items():
            if key.lower() == wanted:
                return value or ""
        return ""

    @staticmethod
    def get_object(data: Mapping[str, Any], key: str) -> dict[str, Any]:
        """``data[key]`` when it is a JSON object, else an empty dict."""
        value = data.get(key)
        return value if isinstance(value, dict) else {}

    def load_json(self, raw_body: bytes) -> dict[str, Any]:
        try:
            data = json.loads(raw_body or b"")
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidPayloadError(
                f"{self.code} webhook body is not valid JSON",
                details={"gateway": self.code, "error": str(e)},
            )
        if not isinstance(data, dict):
            raise InvalidPayloadError(
                f"{self.code} webhook body must be a JSON object",
                details={"gateway": self.code},
            )
        return data

    def load_json_or_form(self, raw_body: bytes) -> dict[str, Any]:
        """Parse a body that may be JSON or application/x-www-form-urlencoded."""
        text = (raw_body or b"").decode("utf-8", errors="replace").strip()
        if text.startswith("{"):
            return self.load_json(raw_body)
        data = dict(parse_qsl(text, keep_blank_values=True))
        if not data:
            raise InvalidPayloadError(
                f"{self.code} webhook body is empty or unreadable",
                details={"gateway": self.code},
            )
        return data

    def map_status(self, raw_status: Any, mapping: Mapping[str, str]) -> str:
        """Map a provider status onto EventStatus, logging anything unmapped."""
        status = mapping.get(str(raw_status or ""))
        if status is None:
            logger.info(
                f"Unmapped {self.code} status treated as unknown: {raw_status!r}",
                extra={"gateway": self.code, "raw_status": raw_status},
            )
            return EventStatus.UNKNOWN
        return status

    def build_event(self, **kwargs: Any) -> NormalizedEvent:
        """
        Construct a NormalizedEvent, rejecting actionable events with no reference.

        Events the engine will ignore anyway (UNKNOWN) are allowed through
        without a reference so they can be acknowledged and audited.
        """
        event = NormalizedEvent(**kwargs)
        identifiers = (event.reference, event.gateway_reference, event.order_reference)
        if event.is_actionable and not any(identifiers):
            raise InvalidPayloadError(
                f"{self.code} {event.event_type or 'event'} carries no transaction reference",
                details={"gateway": self.code, "event_type": event.event_type},
            )
        return event


def hmac_sha256_matches(secret: str, raw_body: bytes, signature: str) -> bool:
    """Constant-time check of a hex HMAC-SHA256 signature over the raw body."""
    if not secret or not signature:
        return False
    computed = hmac.new(secret.encode(), raw_body or b"", hashlib.sha256).hexdigest()
    return hmac.compare_digest(computed, signature.strip().lower())


def parse_callback_params(
    params: Mapping[str, str],
    default_status: str,
    extra_tokens: Mapping[str, str] | None = None,
) -> NormalizedEvent:
    """
    Build a NormalizedEvent from callback query parameters.

    Raises:
        InvalidPayloadError: If no reference parameter is present
    """
    reference = next(
        (params[name] for name in CALLBACK_REFERENCE_PARAMS if params.get(name)),
        None,
    )
    if not reference:
        raise InvalidPayloadError(
            "Callback is missing a transaction reference",
            details={"expected_any_of": list(CALLBACK_REFERENCE_PARAMS)},
        )

    raw_status = (params.get("status") or "").strip()
    if not raw_status:
        status = default_status
    else:
        tokens = {**CALLBACK_STATUS_TOKENS, **(extra_tokens or {})}
        status = tokens.get(raw_status, tokens.get(raw_status.lower(), EventStatus.UNKNOWN))

    return NormalizedEvent(
        reference=str(reference),
        status=status,
        raw_payload=dict(params),
        event_type="callback",
        gateway_status=raw_status or str(default_status),
        # Some providers echo our transaction_id as order_id; it may also be
        # the merchant order number
        order_reference=params.get("order_id") or None,
    )


# =============================================================================
# Registry
# =============================================================================

# Maps gateway codes to adapter classes
ADAPTER_REGISTRY: dict[str, type[GatewayAdapter]] = {}


def register_adapter(code: str) -> Callable[[type[GatewayAdapter]], type[GatewayAdapter]]:
    """
    Class decorator registering an adapter under a gateway code.

    Usage:
        @register_adapter("lygos")
        class LygosAdapter(GatewayAdapter):
            ...
    """

    def decorator(cls: type[GatewayAdapter]) -> type[GatewayAdapter]:
        cls.code = code
        ADAPTER_REGISTRY[code] = cls
        logger.debug(f"Registered gateway adapter for {code}")
        return cls

    return decorator


def get_adapter(
    code: str,
    setting: PaymentGatewaySetting | None = None,
) -> GatewayAdapter:
    """
    Instantiate the adapter registered for ``code``.

    Raises:
        UnknownGatewayError: If no adapter is registered for the code
    """
    adapter_cls = ADAPTER_REGISTRY.get((code or "").lower())
    if adapter_cls is None:
        raise UnknownGatewayError(
            f"Unknown payment gateway: {code}",
            details={"gateway": code},
        )
    return adapter_cls(setting=setting)


def registered_gateways() -> list[str]:
    return sorted(ADAPTER_REGISTRY)
