"""
Inbound notification endpoints for every payment gateway.

Two kinds of inbound traffic reach the engine:

Webhooks (server to server, signed):
    POST transactions/webhook/<gateway>/<environment_id>/

Callbacks (browser redirects back from the hosted payment page, unsigned):
    GET transactions/callback/success/<environment_id>/
    GET transactions/callback/failure/<environment_id>/

Every request opens an AuditLog before anything else happens and closes it
exactly once. Webhook response codes:
    - 200: Handled, duplicate, ignored, not found or failed internally
    - 400: Malformed payload or failed signature check
    - 404: Unknown gateway, or no active settings for the environment

Gateways only stop retrying on 2xx, so once a payload is authentic and
well formed the answer is always 200; operators replay from the audit log
when something went wrong on our side.

Usage:
    # In urls.py
    from payments.webhooks.views import callback_failure, callback_success, gateway_webhook
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.shortcuts import render
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from payments.adapters import get_adapter, parse_callback_params
from payments.exceptions import (
    GatewayConfigurationError,
    InvalidPayloadError,
    SignatureVerificationError,
    UnknownGatewayError,
)
from payments.models import PaymentGatewaySetting
from payments.services import (
    AuditLogService,
    ReconciliationOrchestrator,
    TransactionResolver,
)
from payments.state_machines import (
    AuditLogStatus,
    AuditLogType,
    AuditOutcome,
    EventStatus,
    TransactionStatus,
)


logger = logging.getLogger(__name__)


CALLBACK_TEMPLATES = {
    "success": "payments/callback_success.html",
    "failed": "payments/callback_failed.html",
    "cancelled": "payments/callback_cancelled.html",
    "error": "payments/callback_error.html",
}


# =============================================================================
# Webhooks
# =============================================================================


@csrf_exempt
@require_POST
def gateway_webhook(request: HttpRequest, gateway: str, environment_id: int) -> HttpResponse:
    """
    Receive a webhook from any registered gateway.

    This view:
    1. Opens an AuditLog with the raw body
    2. Looks up the adapter and the environment's gateway setting
    3. Verifies the signature (no unverified path exists)
    4. Parses the body into a NormalizedEvent
    5. Resolves and reconciles the transaction synchronously
    6. Closes the AuditLog with the outcome

    Returns:
        HttpResponse with status 200, 400 or 404 (see module docstring)
    """
    gateway = gateway.lower()
    audit_log = AuditLogService.open(
        request,
        log_type=AuditLogType.WEBHOOK,
        gateway=gateway,
        action="webhook",
        environment_id=environment_id,
    )

    try:
        get_adapter(gateway)
        setting = PaymentGatewaySetting.objects.for_environment(gateway, environment_id)
        if setting is None:
            raise GatewayConfigurationError(
                f"No active {gateway} settings for environment {environment_id}",
                details={"gateway": gateway, "environment_id": environment_id},
            )

        adapter = get_adapter(gateway, setting=setting)
        if not adapter.verify_signature(request.body, request.headers, setting.get_webhook_secret()):
            raise SignatureVerificationError(
                f"{gateway} webhook signature verification failed",
                details={"gateway": gateway},
            )

        event = adapter.parse_event(request.body, request.headers)

    except (UnknownGatewayError, GatewayConfigurationError) as e:
        logger.warning(e.message, extra={"gateway": gateway, "environment_id": environment_id})
        AuditLogService.close(
            audit_log,
            AuditLogStatus.ERROR,
            AuditOutcome.UNKNOWN_GATEWAY,
            message=e.message,
        )
        return HttpResponse("Unknown gateway", status=404)

    except SignatureVerificationError as e:
        logger.warning(e.message, extra={"gateway": gateway, "environment_id": environment_id})
        AuditLogService.close(
            audit_log,
            AuditLogStatus.FAILURE,
            AuditOutcome.INVALID_SIGNATURE,
            message=e.message,
        )
        return HttpResponse("Invalid signature", status=400)

    except InvalidPayloadError as e:
        logger.warning(
            f"Invalid {gateway} payload: {e.message}",
            extra={"gateway": gateway, "environment_id": environment_id},
        )
        AuditLogService.close(
            audit_log,
            AuditLogStatus.FAILURE,
            AuditOutcome.INVALID_PAYLOAD,
            message=e.message,
        )
        return HttpResponse("Invalid payload", status=400)

    logger.info(
        f"Received {gateway} webhook: {event.event_type}",
        extra={"gateway": gateway, "environment_id": environment_id, **event.log_context()},
    )

    result = ReconciliationOrchestrator.process(
        audit_log,
        event,
        environment_id,
        kind=TransactionResolver.WEBHOOK,
    )
    if result is None:
        return HttpResponse("Acknowledged", status=200)
    return HttpResponse("OK", status=200)


# =============================================================================
# Callbacks
# =============================================================================


@require_GET
def callback_success(request: HttpRequest, environment_id: int) -> HttpResponse:
    """Browser redirect from a hosted payment page's success URL."""
    return _handle_callback(request, environment_id, EventStatus.SUCCESS, "callback_success")


@require_GET
def callback_failure(request: HttpRequest, environment_id: int) -> HttpResponse:
    """Browser redirect from a hosted payment page's failure/cancel URL."""
    return _handle_callback(request, environment_id, EventStatus.FAILURE, "callback_failure")


def _handle_callback(
    request: HttpRequest,
    environment_id: int,
    default_status: str,
    action: str,
) -> HttpResponse:
    """
    Reconcile a callback and render the matching outcome page.

    Callbacks are not signed, so they are matched on the opaque
    transaction_id only. A status token in the query string overrides the
    endpoint's default (a gateway may send cancellations to the failure URL
    with status=cancelled).
    """
    params = request.GET
    gateway = (params.get("gateway") or "").lower()
    context = {"environment_id": environment_id, "transaction": None}

    audit_log = AuditLogService.open(
        request,
        log_type=AuditLogType.CALLBACK,
        gateway=gateway,
        action=action,
        environment_id=environment_id,
    )

    try:
        if gateway:
            event = get_adapter(gateway).parse_callback(params, default_status)
        else:
            event = parse_callback_params(params, default_status)
    except UnknownGatewayError as e:
        AuditLogService.close(
            audit_log,
            AuditLogStatus.ERROR,
            AuditOutcome.UNKNOWN_GATEWAY,
            message=e.message,
        )
        return render(request, CALLBACK_TEMPLATES["error"], context, status=404)
    except InvalidPayloadError as e:
        AuditLogService.close(
            audit_log,
            AuditLogStatus.FAILURE,
            AuditOutcome.INVALID_PAYLOAD,
            message=e.message,
        )
        return render(request, CALLBACK_TEMPLATES["error"], context, status=400)

    result = ReconciliationOrchestrator.process(
        audit_log,
        event,
        environment_id,
        kind=TransactionResolver.CALLBACK,
    )
    if result is None:
        return render(request, CALLBACK_TEMPLATES["error"], context)

    context["transaction"] = result.transaction
    return render(request, CALLBACK_TEMPLATES[_page_for(result)], context)


def _page_for(result) -> str:
    """Pick the outcome page from where the transaction ended up."""
    status = result.transaction.status
    if status == TransactionStatus.COMPLETED:
        return "success"
    if status == TransactionStatus.FAILED:
        return "failed"
    if result.outcome == AuditOutcome.CANCELLED:
        return "cancelled"
    return "error"
