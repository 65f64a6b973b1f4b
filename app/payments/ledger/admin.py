"""
Django admin for ledger models.

Ledger entries are read-only here; corrections are new entries
recorded through LedgerService.
"""

from django.contrib import admin

from .models import LedgerAccount, LedgerEntry


@admin.register(LedgerAccount)
class LedgerAccountAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "type",
        "booking_id",
        "currency",
        "balance_display",
        "allow_negative",
        "created_at",
    ]
    list_filter = ["type", "currency", "allow_negative"]
    search_fields = ["id", "booking_id"]
    readonly_fields = ["id", "created_at", "balance_display"]
    ordering = ["-created_at"]

    def balance_display(self, obj: LedgerAccount) -> str:
        """Balance computed from entries (one query per row)."""
        cents = obj.get_balance()
        return f"${cents / 100:.2f}"

    balance_display.short_description = "Balance"


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "created_at",
        "entry_type",
        "amount_display",
        "debit_account",
        "credit_account",
        "booking_id",
        "stripe_object_id",
    ]
    list_filter = ["entry_type", "created_at"]
    search_fields = ["id", "idempotency_key", "booking_id", "stripe_object_id"]
    readonly_fields = [
        "id",
        "created_at",
        "debit_account",
        "credit_account",
        "amount_cents",
        "currency",
        "entry_type",
        "booking_id",
        "stripe_object_id",
        "description",
        "metadata",
        "created_by",
        "idempotency_key",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            "Entry Details",
            {"fields": ("id", "entry_type", "amount_cents", "currency", "created_at")},
        ),
        ("Accounts", {"fields": ("debit_account", "credit_account")}),
        (
            "Reference",
            {"fields": ("booking_id", "stripe_object_id", "idempotency_key")},
        ),
        ("Additional Info", {"fields": ("description", "metadata", "created_by")}),
    )

    def amount_display(self, obj: LedgerEntry) -> str:
        return f"${obj.amount_cents / 100:.2f}"

    amount_display.short_description = "Amount"

    def has_delete_permission(self, request, obj=None) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_add_permission(self, request) -> bool:
        return False
