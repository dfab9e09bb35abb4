"""
Monetbill gateway adapter.

Monetbill posts its notification as form data (JSON is accepted too) and
signs it with a ``sign`` parameter:

    sign = md5(secret + concat(values of every other parameter, sorted by key))

Payload:
    payment_ref=<our transaction_id>&transaction_id=<monetbill id>
    &status=success|failed|cancelled|pending&message=...&sign=...

``pending`` notifications are acknowledged and ignored; Monetbill sends a
final notification once the mobile-money operator settles.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

from payments.adapters.base import GatewayAdapter, NormalizedEvent, register_adapter
from payments.exceptions import InvalidPayloadError
from payments.state_machines import EventStatus


logger = logging.getLogger(__name__)


MONETBILL_STATUS = {
    "success": EventStatus.SUCCESS,
    "failed": EventStatus.FAILURE,
    "cancelled": EventStatus.CANCELLED,
    "canceled": EventStatus.CANCELLED,
}


def compute_monetbill_sign(secret: str, params: dict) -> str:
    """md5 of the secret followed by every non-``sign`` value, sorted by key."""
    values = "".join(str(params[key]) for key in sorted(params) if key != "sign")
    return hashlib.md5((secret + values).encode()).hexdigest()


@register_adapter("monetbill")
class MonetbillAdapter(GatewayAdapter):
    """Adapter for Monetbill mobile-money notifications."""

    signature_header = None

    def verify_signature(self, raw_body, headers, secret) -> bool:
        if not secret:
            return False
        try:
            params = self.load_json_or_form(raw_body)
        except InvalidPayloadError:
            logger.warning("Monetbill notification unreadable during verification")
            return False

        signature = str(params.get("sign") or "")
        if not signature:
            return False
        return hmac.compare_digest(compute_monetbill_sign(secret, params), signature.lower())

    def parse_event(self, raw_body, headers) -> NormalizedEvent:
        data = self.load_json_or_form(raw_body)

        raw_status = str(data.get("status") or "").lower()
        status = self.map_status(raw_status, MONETBILL_STATUS)

        return self.build_event(
            reference=data.get("payment_ref") or None,
            status=status,
            raw_payload=data,
            gateway_reference=data.get("transaction_id") or None,
            event_type=f"payment.{raw_status or 'unknown'}",
            gateway_status=raw_status,
            failure_reason=(data.get("message") or "Payment failed")
            if status == EventStatus.FAILURE
            else None,
        )
