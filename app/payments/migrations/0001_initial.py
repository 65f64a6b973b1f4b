import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="LedgerAccount",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("type", models.CharField(choices=[("external_stripe", "External Stripe"), ("platform_escrow", "Platform Escrow"), ("platform_revenue", "Platform Revenue"), ("provider_payout", "Provider Payout"), ("retainage_hold", "Retainage Hold")], help_text="Category of this account", max_length=50)),
                ("booking_id", models.UUIDField(blank=True, db_index=True, help_text="Booking this account is scoped to", null=True)),
                ("currency", models.CharField(default="usd", help_text="ISO 4217 currency code", max_length=3)),
                ("allow_negative", models.BooleanField(default=False, help_text="Whether this account can have a negative balance")),
                ("created_at", models.DateTimeField(auto_now_add=True, help_text="Timestamp when this account was created")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("type", "booking_id", "currency"), name="unique_ledger_account_per_booking"),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this entry was recorded")),
                ("amount_cents", models.PositiveBigIntegerField(help_text="Amount in cents (always positive)")),
                ("currency", models.CharField(default="usd", max_length=3)),
                ("entry_type", models.CharField(choices=[("checkout_charge", "Checkout Charge"), ("deposit_charge", "Deposit Charge"), ("delta_charge", "Delta Charge"), ("delta_refund", "Delta Refund"), ("platform_fee", "Platform Fee"), ("final_payout", "Final Payout"), ("retainage_hold", "Retainage Hold"), ("retainage_release", "Retainage Release"), ("legacy_payout", "Legacy Payout"), ("external_refund", "External Refund")], max_length=50)),
                ("booking_id", models.UUIDField(blank=True, db_index=True, help_text="Booking this movement belongs to", null=True)),
                ("stripe_object_id", models.CharField(blank=True, default="", help_text="PaymentIntent, Refund or Transfer id", max_length=255)),
                ("description", models.TextField(blank=True, default="")),
                ("metadata", models.JSONField(blank=True, default=dict)),
                ("created_by", models.CharField(blank=True, default="", max_length=255)),
                ("idempotency_key", models.CharField(help_text="Unique key to prevent duplicate entries", max_length=255, unique=True)),
                ("credit_account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="credit_entries", to="payments.ledgeraccount")),
                ("debit_account", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="debit_entries", to="payments.ledgeraccount")),
            ],
            options={
                "verbose_name_plural": "ledger entries",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["booking_id", "entry_type"], name="ledger_entry_booking_type_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount_cents__gt", 0)), name="ledger_entry_amount_cents_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PlatformSetting",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("key", models.CharField(max_length=100, unique=True)),
                ("value", models.JSONField()),
                ("updated_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["key"],
            },
        ),
        migrations.CreateModel(
            name="WebhookEvent",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("stripe_event_id", models.CharField(help_text="Stripe Event ID (evt_xxx) - unique constraint for idempotency", max_length=255, unique=True)),
                ("event_type", models.CharField(db_index=True, help_text="Stripe event type (e.g., 'payment_intent.succeeded')", max_length=100)),
                ("payload", models.JSONField(help_text="Full webhook payload from Stripe (JSON)")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("processing", "Processing"), ("processed", "Processed"), ("failed", "Failed")], db_index=True, default="pending", max_length=20)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("error_message", models.TextField(blank=True, default="")),
                ("retry_count", models.PositiveSmallIntegerField(default=0, help_text="Number of processing attempts")),
            ],
            options={
                "verbose_name": "Webhook Event",
                "verbose_name_plural": "Webhook Events",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="webhook_status_created_idx"),
                    models.Index(fields=["status", "retry_count"], name="webhook_status_retry_idx"),
                ],
            },
        ),
    ]
