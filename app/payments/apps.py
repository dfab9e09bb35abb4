"""
Payments app configuration.

This app is the payment reconciliation engine:
- Gateway adapters for Stripe, PayPal, Lygos, Monetbill and TaraMoney
- Webhook and callback endpoints with an audit trail
- Transaction state machine with exactly-once side effects
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self):
        """
        Connect signal receivers and register gateway adapters.

        Importing payments.adapters runs every @register_adapter decorator.
        """
        from payments import adapters, signals  # noqa: F401
