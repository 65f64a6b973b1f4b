import uuid

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("version", models.PositiveIntegerField(default=1, help_text="Version for optimistic locking - incremented on each save")),
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, help_text="Unique identifier for this record", primary_key=True, serialize=False)),
                ("status", django_fsm.FSMField(choices=[("pending", "Pending"), ("accepted", "Accepted"), ("declined", "Declined"), ("canceled", "Canceled"), ("funded", "Funded"), ("in_progress", "In Progress"), ("final_proposed", "Final Proposed"), ("final_approved", "Final Approved"), ("partial_released", "Partially Released"), ("settled", "Settled"), ("paid", "Paid"), ("completed", "Completed"), ("disputed", "Disputed"), ("no_show", "No Show")], db_index=True, default="pending", help_text="Current status (managed by FSM)", max_length=50, protected=True)),
                ("start_at", models.DateTimeField(blank=True, null=True)),
                ("end_at", models.DateTimeField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("subtotal_cents", models.PositiveBigIntegerField()),
                ("platform_fee_cents", models.PositiveBigIntegerField(default=0)),
                ("total_cents", models.PositiveBigIntegerField()),
                ("amount_budgeted_cents", models.PositiveBigIntegerField(blank=True, null=True)),
                ("amount_deposit_cents", models.PositiveBigIntegerField(blank=True, null=True)),
                ("amount_final_cents", models.PositiveBigIntegerField(blank=True, null=True)),
                ("amount_delta_cents", models.BigIntegerField(blank=True, help_text="final - deposit; positive is owed by the buyer", null=True)),
                ("amount_funded_cents", models.BigIntegerField(default=0, help_text="Cents currently held in escrow")),
                ("retainage_bps", models.PositiveIntegerField(default=0)),
                ("retainage_hold_cents", models.PositiveBigIntegerField(default=0)),
                ("homeowner_pm_saved", models.BooleanField(default=False)),
                ("final_proposal_note", models.TextField(blank=True, default="")),
                ("deposit_charge_id", models.CharField(blank=True, db_index=True, default="", max_length=255)),
                ("delta_charge_id", models.CharField(blank=True, db_index=True, default="", max_length=255)),
                ("stripe_payment_intent_id", models.CharField(blank=True, db_index=True, default="", max_length=255)),
                ("stripe_transfer_id", models.CharField(blank=True, default="", max_length=255)),
                ("buyer", models.ForeignKey(help_text="Homeowner paying for the service", on_delete=django.db.models.deletion.PROTECT, related_name="bookings_as_buyer", to=settings.AUTH_USER_MODEL)),
                ("seller", models.ForeignKey(help_text="Provider performing the service", on_delete=django.db.models.deletion.PROTECT, related_name="bookings_as_seller", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["buyer", "status"], name="bookings_bo_buyer_i_3c5e1a_idx"),
                    models.Index(fields=["seller", "status"], name="bookings_bo_seller__8f2d4b_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("amount_funded_cents__gte", 0)), name="booking_funded_non_negative"),
                    models.CheckConstraint(condition=models.Q(("retainage_bps__lte", 10000)), name="booking_retainage_bps_range"),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("amount_final_cents__isnull", True),
                            ("amount_deposit_cents__isnull", True),
                            ("amount_delta_cents", models.F("amount_final_cents") - models.F("amount_deposit_cents")),
                            _connector="OR",
                        ),
                        name="booking_delta_matches_final_minus_deposit",
                    ),
                ],
            },
        ),
    ]
