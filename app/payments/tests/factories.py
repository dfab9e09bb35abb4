"""
Factory Boy factories for payment test data.

This module provides factories for creating test instances of payment models.
Factories generate realistic test data while allowing easy customization.

Usage:
    from payments.tests.factories import (
        AuditLogFactory,
        OrderFactory,
        TransactionFactory,
    )

    # A pending tenant transaction
    txn = TransactionFactory(environment_id=7)

    # A global transaction linked to an order
    txn = TransactionFactory(scope=TransactionScope.GLOBAL, order=OrderFactory())

    # A transaction already settled by a gateway
    txn = CompletedTransactionFactory()
"""

from decimal import Decimal

import factory
from django.utils import timezone

from payments.models import (
    AuditLog,
    EnvironmentPaymentConfig,
    Order,
    Payment,
    PaymentGatewaySetting,
    Subscription,
    Transaction,
)
from payments.state_machines import (
    AuditLogStatus,
    AuditLogType,
    AuditOutcome,
    BillingCycle,
    GatewayCode,
    TransactionScope,
)


class UserFactory(factory.django.DjangoModelFactory):
    """Factory for operator accounts (staff users)."""

    class Meta:
        model = "auth.User"
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f"operator{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    password = factory.PostGenerationMethodCall("set_password", "testpass123")
    is_active = True
    is_staff = True


class PaymentGatewaySettingFactory(factory.django.DjangoModelFactory):
    """
    Factory for PaymentGatewaySetting instances.

    Defaults to an environment-scoped Lygos setting with a webhook secret.
    Pass ``environment_id=None`` for the platform-wide setting.
    """

    class Meta:
        model = PaymentGatewaySetting

    code = GatewayCode.LYGOS
    environment_id = 7
    name = factory.LazyAttribute(lambda o: f"{o.code} settings")
    is_active = True
    credentials = factory.LazyFunction(dict)
    webhook_secret = "whsec_test_secret"


class EnvironmentPaymentConfigFactory(factory.django.DjangoModelFactory):
    """Factory for a tenant that collects through centralized gateways."""

    class Meta:
        model = EnvironmentPaymentConfig
        django_get_or_create = ("environment_id",)

    environment_id = 7
    use_centralized_gateways = True
    platform_fee_rate = Decimal("10.00")
    is_active = True


class OrderFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Order

    order_number = factory.Sequence(lambda n: f"ORD-{n:06d}")
    environment_id = 7
    customer_email = factory.Sequence(lambda n: f"buyer{n}@example.com")
    total_amount = Decimal("121.75")
    currency = "USD"


class TransactionFactory(factory.django.DjangoModelFactory):
    """
    Factory for pending Transaction instances.

    Amounts use quarter values so totals are exact in every database
    backend the check constraint runs on.
    """

    class Meta:
        model = Transaction

    environment_id = 7
    scope = TransactionScope.TENANT
    gateway = GatewayCode.LYGOS
    amount = Decimal("100.00")
    fee_amount = Decimal("2.50")
    tax_amount = Decimal("19.25")
    currency = "USD"
    customer_email = factory.Sequence(lambda n: f"buyer{n}@example.com")
    description = "Test payment"


class CompletedTransactionFactory(TransactionFactory):
    """Transaction already completed by a gateway."""

    class Meta:
        skip_postgeneration_save = True

    @factory.post_generation
    def settle(obj, create, extracted, **kwargs):
        obj.complete(gateway_status="completed", gateway_transaction_id=f"gw_{obj.pk}")
        if create:
            obj.save()


class FailedTransactionFactory(TransactionFactory):
    """Transaction already failed by a gateway."""

    class Meta:
        skip_postgeneration_save = True

    @factory.post_generation
    def settle(obj, create, extracted, **kwargs):
        obj.fail(reason="Card declined", gateway_status="failed")
        if create:
            obj.save()


class SubscriptionFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Subscription

    environment_id = 7
    plan_name = "Pro"
    billing_cycle = BillingCycle.MONTHLY
    amount = Decimal("49.00")
    currency = "USD"


class PaymentFactory(factory.django.DjangoModelFactory):
    """
    Factory for subscription Payment rows.

    Pass ``transaction_id=txn.transaction_id`` to link it to a Transaction.
    """

    class Meta:
        model = Payment

    subscription = factory.SubFactory(SubscriptionFactory)
    transaction_id = factory.Sequence(lambda n: f"sub-payment-{n}")
    amount = Decimal("49.00")
    currency = "USD"


class AuditLogFactory(factory.django.DjangoModelFactory):
    """Factory for open (received) webhook audit records."""

    class Meta:
        model = AuditLog

    log_type = AuditLogType.WEBHOOK
    gateway = GatewayCode.LYGOS
    action = "webhook"
    environment_id = 7
    raw_body = ""
    request_data = factory.LazyFunction(dict)
    headers = factory.LazyFunction(dict)


class ClosedAuditLogFactory(AuditLogFactory):
    """Webhook audit record that passed verification and was closed."""

    status = AuditLogStatus.FAILURE
    outcome = AuditOutcome.NOT_FOUND
    message = "Transaction not found"
    closed_at = factory.LazyFunction(timezone.now)
