"""
Initial schema for the reconciliation engine.

Changes:
    - Create Order, Subscription and Payment
    - Create PaymentGatewaySetting and EnvironmentPaymentConfig
    - Create Transaction with the total/amount check constraints
    - Create Commission (one per transaction) and AuditLog
"""

import uuid
from decimal import Decimal

from django.db import migrations, models
import django.db.models.deletion
import django_fsm

import payments.models.transaction


def _timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(
                auto_now_add=True,
                db_index=True,
                help_text="Timestamp when this record was created",
            ),
        ),
        (
            "updated_at",
            models.DateTimeField(
                auto_now=True,
                help_text="Timestamp when this record was last modified",
            ),
        ),
    ]


def _bigauto():
    return (
        "id",
        models.BigAutoField(
            auto_created=True,
            primary_key=True,
            serialize=False,
            verbose_name="ID",
        ),
    )


CURRENCY = models.CharField(default="USD", max_length=3)

GATEWAY_CHOICES = [
    ("stripe", "Stripe"),
    ("paypal", "PayPal"),
    ("lygos", "Lygos"),
    ("monetbill", "Monetbill"),
    ("taramoney", "TaraMoney"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                _bigauto(),
                *_timestamps(),
                ("order_number", models.CharField(max_length=64, unique=True)),
                ("environment_id", models.PositiveIntegerField(db_index=True)),
                ("customer_email", models.EmailField(blank=True, default="", max_length=254)),
                (
                    "total_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12),
                ),
                ("currency", CURRENCY.clone()),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                            ("refunded", "Refunded"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "Order",
                "verbose_name_plural": "Orders",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Subscription",
            fields=[
                _bigauto(),
                *_timestamps(),
                ("environment_id", models.PositiveIntegerField(db_index=True)),
                ("plan_name", models.CharField(blank=True, default="", max_length=100)),
                (
                    "billing_cycle",
                    models.CharField(
                        choices=[("monthly", "Monthly"), ("yearly", "Yearly")],
                        default="monthly",
                        max_length=10,
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12),
                ),
                ("currency", CURRENCY.clone()),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("active", "Active"),
                            ("expired", "Expired"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("starts_at", models.DateTimeField(blank=True, null=True)),
                ("ends_at", models.DateTimeField(blank=True, null=True)),
                ("next_payment_at", models.DateTimeField(blank=True, null=True)),
                ("last_payment_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "Subscription",
                "verbose_name_plural": "Subscriptions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["environment_id", "status"],
                        name="payments_su_environ_6f1c2a_idx",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                _bigauto(),
                *_timestamps(),
                ("transaction_id", models.CharField(max_length=64, unique=True)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                ("currency", CURRENCY.clone()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "subscription",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payments",
                        to="payments.subscription",
                    ),
                ),
            ],
            options={
                "verbose_name": "Payment",
                "verbose_name_plural": "Payments",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="PaymentGatewaySetting",
            fields=[
                _bigauto(),
                *_timestamps(),
                (
                    "code",
                    models.CharField(choices=GATEWAY_CHOICES, db_index=True, max_length=20),
                ),
                (
                    "environment_id",
                    models.PositiveIntegerField(
                        blank=True,
                        db_index=True,
                        help_text="Tenant environment; empty means platform-wide",
                        null=True,
                    ),
                ),
                ("name", models.CharField(blank=True, default="", max_length=100)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "mode",
                    models.CharField(
                        choices=[("sandbox", "Sandbox"), ("live", "Live")],
                        default="sandbox",
                        max_length=10,
                    ),
                ),
                ("credentials", models.JSONField(blank=True, default=dict)),
                ("webhook_secret", models.CharField(blank=True, default="", max_length=255)),
            ],
            options={
                "verbose_name": "Payment Gateway Setting",
                "verbose_name_plural": "Payment Gateway Settings",
                "ordering": ["code", "environment_id"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("code", "environment_id"),
                        name="unique_gateway_setting_per_environment",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="EnvironmentPaymentConfig",
            fields=[
                _bigauto(),
                *_timestamps(),
                ("environment_id", models.PositiveIntegerField(unique=True)),
                ("use_centralized_gateways", models.BooleanField(default=False)),
                (
                    "platform_fee_rate",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("17.00"),
                        help_text="Commission percentage taken on each completed transaction",
                        max_digits=5,
                    ),
                ),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "verbose_name": "Environment Payment Config",
                "verbose_name_plural": "Environment Payment Configs",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="Transaction",
            fields=[
                _bigauto(),
                *_timestamps(),
                (
                    "transaction_id",
                    models.CharField(
                        default=payments.models.transaction.generate_transaction_id,
                        editable=False,
                        help_text="Opaque external identifier shared with gateways",
                        max_length=64,
                        unique=True,
                    ),
                ),
                (
                    "environment_id",
                    models.PositiveIntegerField(
                        db_index=True,
                        help_text="Tenant environment that owns this transaction",
                    ),
                ),
                (
                    "scope",
                    models.CharField(
                        choices=[("tenant", "Tenant"), ("global", "Global")],
                        default="tenant",
                        help_text="Whether the transaction may be resolved outside its environment",
                        max_length=10,
                    ),
                ),
                (
                    "gateway",
                    models.CharField(
                        choices=GATEWAY_CHOICES,
                        db_index=True,
                        help_text="Gateway code this payment runs through",
                        max_length=20,
                    ),
                ),
                ("customer_name", models.CharField(blank=True, default="", max_length=255)),
                ("customer_email", models.EmailField(blank=True, default="", max_length=254)),
                ("customer_phone", models.CharField(blank=True, default="", max_length=32)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=12)),
                (
                    "fee_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12),
                ),
                (
                    "tax_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12),
                ),
                (
                    "total_amount",
                    models.DecimalField(
                        decimal_places=2,
                        editable=False,
                        help_text="amount + fee_amount + tax_amount, recomputed on every save",
                        max_digits=12,
                    ),
                ),
                ("currency", CURRENCY.clone()),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("completed", "Completed"),
                            ("failed", "Failed"),
                            ("refunded", "Refunded"),
                            ("partially_refunded", "Partially Refunded"),
                        ],
                        db_index=True,
                        default="pending",
                        help_text="Current state of the transaction (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                (
                    "gateway_transaction_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Identifier assigned by the gateway",
                        max_length=255,
                        null=True,
                    ),
                ),
                ("gateway_status", models.CharField(blank=True, max_length=64, null=True)),
                (
                    "gateway_response",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Last gateway payload, stored as serialized JSON",
                    ),
                ),
                ("payment_method", models.CharField(blank=True, default="", max_length=50)),
                ("description", models.TextField(blank=True, default="")),
                ("notes", models.TextField(blank=True, default="")),
                ("failure_reason", models.TextField(blank=True, null=True)),
                ("refund_reason", models.TextField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                (
                    "gateway_setting",
                    models.ForeignKey(
                        blank=True,
                        help_text="Gateway configuration used to initiate the payment",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="payments.paymentgatewaysetting",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        help_text="Order fulfilled when this transaction completes",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="payments.order",
                    ),
                ),
            ],
            options={
                "verbose_name": "Transaction",
                "verbose_name_plural": "Transactions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["environment_id", "status"],
                        name="payments_tr_environ_3b8e41_idx",
                    ),
                    models.Index(
                        fields=["scope", "status"],
                        name="payments_tr_scope_9d02f7_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            total_amount=models.F("amount")
                            + models.F("fee_amount")
                            + models.F("tax_amount")
                        ),
                        name="transaction_total_matches_components",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(amount__gte=0),
                        name="transaction_amount_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Commission",
            fields=[
                _bigauto(),
                *_timestamps(),
                ("environment_id", models.PositiveIntegerField(db_index=True)),
                ("rate", models.DecimalField(decimal_places=2, max_digits=5)),
                (
                    "amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0"), max_digits=12),
                ),
                ("currency", CURRENCY.clone()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("paid", "Paid"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                (
                    "transaction",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="commission",
                        to="payments.transaction",
                    ),
                ),
            ],
            options={
                "verbose_name": "Commission",
                "verbose_name_plural": "Commissions",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                *_timestamps(),
                (
                    "log_type",
                    models.CharField(
                        choices=[
                            ("webhook", "Webhook"),
                            ("callback", "Callback"),
                            ("admin", "Admin"),
                            ("replay", "Replay"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("gateway", models.CharField(blank=True, db_index=True, default="", max_length=20)),
                ("action", models.CharField(blank=True, default="", max_length=50)),
                (
                    "environment_id",
                    models.PositiveIntegerField(blank=True, db_index=True, null=True),
                ),
                ("raw_body", models.TextField(blank=True, default="")),
                ("request_data", models.JSONField(blank=True, default=dict)),
                ("headers", models.JSONField(blank=True, default=dict)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.CharField(blank=True, default="", max_length=255)),
                ("entity_type", models.CharField(blank=True, max_length=50, null=True)),
                (
                    "entity_id",
                    models.CharField(blank=True, db_index=True, max_length=64, null=True),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("received", "Received"),
                            ("success", "Success"),
                            ("failure", "Failure"),
                            ("error", "Error"),
                        ],
                        db_index=True,
                        default="received",
                        max_length=20,
                    ),
                ),
                (
                    "outcome",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("processed", "Processed"),
                            ("duplicate", "Duplicate"),
                            ("not_found", "No matching transaction"),
                            ("invalid_payload", "Invalid payload"),
                            ("invalid_signature", "Invalid signature"),
                            ("unknown_gateway", "Unknown gateway configuration"),
                            ("ignored", "Ignored"),
                            ("cancelled", "Cancelled"),
                            ("processing_error", "Processing error"),
                        ],
                        db_index=True,
                        max_length=30,
                        null=True,
                    ),
                ),
                ("message", models.TextField(blank=True, default="")),
                ("closed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "replay_of",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="replays",
                        to="payments.auditlog",
                    ),
                ),
            ],
            options={
                "verbose_name": "Audit Log",
                "verbose_name_plural": "Audit Logs",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["gateway", "status"],
                        name="payments_au_gateway_51c7de_idx",
                    ),
                    models.Index(
                        fields=["entity_type", "entity_id"],
                        name="payments_au_entity__a40e93_idx",
                    ),
                ],
            },
        ),
    ]
