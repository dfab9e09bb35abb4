"""
PayPal gateway adapter.

PayPal signs webhooks with a certificate chain rather than a shared secret,
so verification is delegated to PayPal's own
``/v1/notifications/verify-webhook-signature`` endpoint. The "secret" for
this adapter is the PayPal webhook id; the API client id and secret come
from the gateway setting's credentials.

Required headers:
    PAYPAL-TRANSMISSION-ID, PAYPAL-TRANSMISSION-TIME, PAYPAL-TRANSMISSION-SIG,
    PAYPAL-CERT-URL, PAYPAL-AUTH-ALGO

Reference extraction:
    resource.purchase_units[0].reference_id, then resource.custom_id,
    then resource.invoice_id. The PayPal resource id is the gateway reference.

Event mapping:
    PAYMENT.CAPTURE.COMPLETED, CHECKOUT.ORDER.COMPLETED -> success
    PAYMENT.CAPTURE.DENIED, PAYMENT.CAPTURE.DECLINED    -> failure
    CHECKOUT.ORDER.VOIDED                               -> cancelled
"""

from __future__ import annotations

import json
import logging

import requests
from django.conf import settings

from payments.adapters.base import GatewayAdapter, NormalizedEvent, register_adapter
from payments.exceptions import InvalidPayloadError
from payments.state_machines import EventStatus, GatewayMode


logger = logging.getLogger(__name__)


PAYPAL_EVENT_STATUS = {
    "PAYMENT.CAPTURE.COMPLETED": EventStatus.SUCCESS,
    "CHECKOUT.ORDER.COMPLETED": EventStatus.SUCCESS,
    "PAYMENT.CAPTURE.DENIED": EventStatus.FAILURE,
    "PAYMENT.CAPTURE.DECLINED": EventStatus.FAILURE,
    "CHECKOUT.ORDER.VOIDED": EventStatus.CANCELLED,
}

PAYPAL_API_BASE = {
    GatewayMode.SANDBOX: "https://api-m.sandbox.paypal.com",
    GatewayMode.LIVE: "https://api-m.paypal.com",
}

TRANSMISSION_HEADERS = {
    "auth_algo": "PAYPAL-AUTH-ALGO",
    "cert_url": "PAYPAL-CERT-URL",
    "transmission_id": "PAYPAL-TRANSMISSION-ID",
    "transmission_sig": "PAYPAL-TRANSMISSION-SIG",
    "transmission_time": "PAYPAL-TRANSMISSION-TIME",
}


@register_adapter("paypal")
class PayPalAdapter(GatewayAdapter):
    """Adapter for PayPal REST webhooks (Orders v2 / Payments v2)."""

    signature_header = "PAYPAL-TRANSMISSION-SIG"

    def verify_signature(self, raw_body, headers, secret) -> bool:
        transmission = {
            field: self.get_header(headers, header)
            for field, header in TRANSMISSION_HEADERS.items()
        }
        missing = [field for field, value in transmission.items() if not value]
        if missing or not secret:
            logger.warning(
                "PayPal webhook rejected: missing transmission headers or webhook id",
                extra={"missing_headers": missing, "has_webhook_id": bool(secret)},
            )
            return False

        try:
            webhook_event = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError):
            return False

        try:
            token = self._get_access_token()
            response = requests.post(
                f"{self._api_base()}/v1/notifications/verify-webhook-signature",
                json={**transmission, "webhook_id": secret, "webhook_event": webhook_event},
                headers={"Authorization": f"Bearer {token}"},
                timeout=settings.PAYPAL_API_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
            verification_status = response.json().get("verification_status")
        except (requests.RequestException, KeyError, ValueError) as e:
            logger.error(
                "PayPal signature verification call failed",
                extra={"error": str(e)},
            )
            return False

        if verification_status != "SUCCESS":
            logger.warning(
                "PayPal webhook signature rejected by PayPal",
                extra={"verification_status": verification_status},
            )
            return False
        return True

    def parse_event(self, raw_body, headers) -> NormalizedEvent:
        data = self.load_json(raw_body)

        event_type = data.get("event_type")
        resource = data.get("resource")
        if not event_type or not isinstance(resource, dict):
            raise InvalidPayloadError(
                "PayPal event missing event_type or resource",
                details={"gateway": self.code, "event_id": data.get("id")},
            )

        purchase_units = resource.get("purchase_units") or []
        if not isinstance(purchase_units, list) or not all(
            isinstance(unit, dict) for unit in purchase_units
        ):
            raise InvalidPayloadError(
                "PayPal resource.purchase_units must be a list of objects",
                details={"gateway": self.code, "event_id": data.get("id")},
            )

        first_unit = purchase_units[0] if purchase_units else {}
        reference = (
            first_unit.get("reference_id")
            or resource.get("custom_id")
            or resource.get("invoice_id")
        )
        status = self.map_status(event_type, PAYPAL_EVENT_STATUS)

        failure_reason = None
        if status == EventStatus.FAILURE:
            details = self.get_object(resource, "status_details")
            failure_reason = details.get("reason") or f"PayPal {event_type}"

        return self.build_event(
            reference=str(reference) if reference else None,
            status=status,
            raw_payload=data,
            gateway_reference=resource.get("id"),
            event_type=event_type,
            gateway_status=resource.get("status") or event_type,
            failure_reason=failure_reason,
        )

    # =========================================================================
    # PayPal API
    # =========================================================================

    def _api_base(self) -> str:
        if settings.PAYPAL_API_BASE:
            return settings.PAYPAL_API_BASE
        mode = self.setting.mode if self.setting else GatewayMode.SANDBOX
        return PAYPAL_API_BASE.get(mode, PAYPAL_API_BASE[GatewayMode.SANDBOX])

    def _get_access_token(self) -> str:
        credentials = self.setting.credentials if self.setting else {}
        response = requests.post(
            f"{self._api_base()}/v1/oauth2/token",
            auth=(credentials.get("client_id", ""), credentials.get("client_secret", "")),
            data={"grant_type": "client_credentials"},
            timeout=settings.PAYPAL_API_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        return response.json()["access_token"]
