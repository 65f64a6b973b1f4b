"""
Django admin for bookings.

Bookings change only through the escrow services, so every monetary and
status field is read-only here.
"""

from django.contrib import admin

from bookings.models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "status",
        "buyer",
        "seller",
        "total_cents",
        "amount_funded_cents",
        "retainage_hold_cents",
        "created_at",
    ]
    list_filter = ["status", "homeowner_pm_saved"]
    search_fields = [
        "id",
        "buyer__email",
        "seller__email",
        "stripe_payment_intent_id",
        "deposit_charge_id",
        "delta_charge_id",
        "stripe_transfer_id",
    ]
    raw_id_fields = ["buyer", "seller"]
    ordering = ["-created_at"]
    readonly_fields = [
        "id",
        "status",
        "version",
        "subtotal_cents",
        "platform_fee_cents",
        "total_cents",
        "amount_budgeted_cents",
        "amount_deposit_cents",
        "amount_final_cents",
        "amount_delta_cents",
        "amount_funded_cents",
        "retainage_bps",
        "retainage_hold_cents",
        "homeowner_pm_saved",
        "deposit_charge_id",
        "delta_charge_id",
        "stripe_payment_intent_id",
        "stripe_transfer_id",
        "created_at",
        "updated_at",
    ]

    def has_add_permission(self, request):
        return False
