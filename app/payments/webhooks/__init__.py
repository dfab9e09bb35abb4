"""
Inbound webhook and callback endpoints for payment gateways.

Every request is audited, verified through its gateway adapter and
reconciled synchronously. See views.py for the response contract.

Usage:
    # In urls.py
    from payments.webhooks.views import gateway_webhook

    urlpatterns = [
        path(
            "transactions/webhook/<str:gateway>/<int:environment_id>/",
            gateway_webhook,
            name="gateway_webhook",
        ),
    ]
"""
