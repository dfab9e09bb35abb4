"""
Stripe gateway adapter.

Signature verification delegates to the Stripe SDK
(``stripe.Webhook.construct_event``), which checks the ``Stripe-Signature``
HMAC and the timestamp tolerance.

Reference extraction, in order of preference:
    1. data.object.metadata.transaction_id
    2. data.object.client_reference_id (Checkout Sessions)

The Stripe object id (pi_..., cs_...) is the gateway reference, and
data.object.metadata.order_id is the order reference.

Event mapping:
    payment_intent.succeeded                -> success
    checkout.session.completed              -> success (when paid)
    checkout.session.async_payment_succeeded -> success
    payment_intent.payment_failed           -> failure
    checkout.session.async_payment_failed   -> failure
    payment_intent.canceled                 -> cancelled
    checkout.session.expired                -> cancelled
    anything else                           -> unknown (acknowledged, ignored)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import stripe

from payments.adapters.base import GatewayAdapter, NormalizedEvent, register_adapter
from payments.exceptions import InvalidPayloadError
from payments.state_machines import EventStatus

if TYPE_CHECKING:
    from collections.abc import Mapping


logger = logging.getLogger(__name__)


STRIPE_EVENT_STATUS = {
    "payment_intent.succeeded": EventStatus.SUCCESS,
    "checkout.session.completed": EventStatus.SUCCESS,
    "checkout.session.async_payment_succeeded": EventStatus.SUCCESS,
    "payment_intent.payment_failed": EventStatus.FAILURE,
    "checkout.session.async_payment_failed": EventStatus.FAILURE,
    "payment_intent.canceled": EventStatus.CANCELLED,
    "checkout.session.expired": EventStatus.CANCELLED,
}


@register_adapter("stripe")
class StripeAdapter(GatewayAdapter):
    """Adapter for Stripe PaymentIntent and Checkout Session webhooks."""

    signature_header = "Stripe-Signature"

    def verify_signature(self, raw_body, headers, secret) -> bool:
        signature = self.get_header(headers, self.signature_header)
        if not signature or not secret:
            logger.warning(
                "Stripe webhook rejected: missing signature or secret",
                extra={"has_signature": bool(signature), "has_secret": bool(secret)},
            )
            return False

        try:
            stripe.Webhook.construct_event(raw_body, signature, secret)
        except stripe.SignatureVerificationError as e:
            logger.warning(
                "Stripe webhook signature verification failed",
                extra={"error": str(e)},
            )
            return False
        except ValueError as e:
            # construct_event parses the payload after checking the signature
            logger.warning(
                "Stripe webhook payload unreadable during verification",
                extra={"error": str(e)},
            )
            return False
        return True

    def parse_event(self, raw_body: bytes, headers: Mapping[str, str]) -> NormalizedEvent:
        data = self.load_json(raw_body)

        event_type = data.get("type")
        obj = (data.get("data") or {}).get("object")
        if not event_type or not isinstance(obj, dict):
            raise InvalidPayloadError(
                "Stripe event missing type or data.object",
                details={"gateway": self.code, "event_id": data.get("id")},
            )

        status = self.map_status(event_type, STRIPE_EVENT_STATUS)
        if event_type == "checkout.session.completed" and obj.get("payment_status") == "unpaid":
            # Delayed payment methods settle later via async_payment_succeeded
            status = EventStatus.UNKNOWN

        metadata = self.get_object(obj, "metadata")
        reference = metadata.get("transaction_id") or obj.get("client_reference_id")
        order_reference = metadata.get("order_id")
        failure_reason = None
        if status == EventStatus.FAILURE:
            failure_reason = (obj.get("last_payment_error") or {}).get(
                "message", "Payment failed"
            )

        return self.build_event(
            reference=str(reference) if reference else None,
            order_reference=str(order_reference) if order_reference else None,
            status=status,
            raw_payload=data,
            gateway_reference=obj.get("payment_intent") or obj.get("id"),
            event_type=event_type,
            gateway_status=obj.get("status") or event_type,
            failure_reason=failure_reason,
        )
