"""
TaraMoney gateway adapter.

TaraMoney notifications are signed with HMAC-SHA256 over the raw body and
the hex digest is sent in ``X-TaraMoney-Signature``. A notification whose
signature is missing or wrong is rejected; there is no unsigned path.

Payload:
    {
        "paymentId": "tm_123",         # assigned at payment creation
        "productId": "<our transaction_id>",
        "status": "SUCCESS" | "FAILURE" | "CANCELED" | "PENDING",
        "message": "..."
    }

``paymentId`` is stored as the transaction's gateway_transaction_id when
the hosted payment is created, so it is the primary lookup key.
"""

from __future__ import annotations

from payments.adapters.base import (
    GatewayAdapter,
    NormalizedEvent,
    hmac_sha256_matches,
    register_adapter,
)
from payments.state_machines import EventStatus


TARAMONEY_STATUS = {
    "SUCCESS": EventStatus.SUCCESS,
    "SUCCESSFUL": EventStatus.SUCCESS,
    "FAILURE": EventStatus.FAILURE,
    "FAILED": EventStatus.FAILURE,
    "CANCELED": EventStatus.CANCELLED,
    "CANCELLED": EventStatus.CANCELLED,
}


@register_adapter("taramoney")
class TaraMoneyAdapter(GatewayAdapter):
    """Adapter for TaraMoney payment notifications."""

    signature_header = "X-TaraMoney-Signature"

    def verify_signature(self, raw_body, headers, secret) -> bool:
        return hmac_sha256_matches(
            secret,
            raw_body,
            self.get_header(headers, self.signature_header),
        )

    def parse_event(self, raw_body, headers) -> NormalizedEvent:
        data = self.load_json(raw_body)

        raw_status = str(data.get("status") or "").upper()
        status = self.map_status(raw_status, TARAMONEY_STATUS)
        reference = data.get("productId")

        return self.build_event(
            reference=str(reference) if reference else None,
            status=status,
            raw_payload=data,
            gateway_reference=data.get("paymentId") or None,
            event_type=f"payment.{raw_status.lower() or 'unknown'}",
            gateway_status=raw_status,
            failure_reason=(data.get("message") or "Payment failed")
            if status == EventStatus.FAILURE
            else None,
        )
