"""
Lygos gateway adapter.

Lygos signs the raw request body with HMAC-SHA256 using the webhook secret
and sends the hex digest in ``X-Lygos-Signature``.

Payload:
    {
        "event": "payment.completed",
        "payment_id": "lyg_123",
        "order_id": "<our transaction_id>",
        "metadata": {"transaction_id": "<our transaction_id>", "order_id": "<Order pk>"},
        "error_message": "..."          # on payment.failed
    }
"""

from __future__ import annotations

from payments.adapters.base import (
    GatewayAdapter,
    NormalizedEvent,
    hmac_sha256_matches,
    register_adapter,
)
from payments.exceptions import InvalidPayloadError
from payments.state_machines import EventStatus


LYGOS_EVENT_STATUS = {
    "payment.completed": EventStatus.SUCCESS,
    "payment.succeeded": EventStatus.SUCCESS,
    "payment.failed": EventStatus.FAILURE,
    "payment.cancelled": EventStatus.CANCELLED,
    "payment.canceled": EventStatus.CANCELLED,
}


@register_adapter("lygos")
class LygosAdapter(GatewayAdapter):
    """Adapter for Lygos payment webhooks."""

    signature_header = "X-Lygos-Signature"

    def verify_signature(self, raw_body, headers, secret) -> bool:
        return hmac_sha256_matches(
            secret,
            raw_body,
            self.get_header(headers, self.signature_header),
        )

    def parse_event(self, raw_body, headers) -> NormalizedEvent:
        data = self.load_json(raw_body)

        event_type = data.get("event")
        if not event_type:
            raise InvalidPayloadError(
                "Lygos payload missing event",
                details={"gateway": self.code},
            )

        metadata = self.get_object(data, "metadata")
        reference = metadata.get("transaction_id") or data.get("order_id")
        order_reference = metadata.get("order_id")
        status = self.map_status(event_type, LYGOS_EVENT_STATUS)

        return self.build_event(
            reference=str(reference) if reference else None,
            order_reference=str(order_reference) if order_reference else None,
            status=status,
            raw_payload=data,
            gateway_reference=data.get("payment_id"),
            event_type=event_type,
            gateway_status=data.get("status") or event_type,
            failure_reason=data.get("error_message") if status == EventStatus.FAILURE else None,
        )
