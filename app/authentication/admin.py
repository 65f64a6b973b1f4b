"""
Django admin configuration for authentication models.
"""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from authentication.models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """
    Admin configuration for User.

    Stripe identities are read-only here; they are written by the Connect
    endpoints and by webhook reconciliation.
    """

    list_display = (
        "email",
        "is_active",
        "is_staff",
        "payout_status",
        "date_joined",
    )
    list_filter = (
        "is_active",
        "is_staff",
        "payout_status",
        "date_joined",
    )
    search_fields = ("email", "stripe_customer_id", "stripe_connect_account_id")
    ordering = ("-date_joined",)

    fieldsets = (
        (None, {"fields": ("email", "password")}),
        (
            "Status",
            {"fields": ("email_verified", "is_active", "is_staff", "is_superuser")},
        ),
        (
            "Payments",
            {
                "fields": (
                    "stripe_customer_id",
                    "stripe_connect_account_id",
                    "payout_status",
                    "stripe_requirements",
                )
            },
        ),
        (
            "Permissions",
            {"fields": ("groups", "user_permissions")},
        ),
        (
            "Important dates",
            {"fields": ("date_joined", "last_login")},
        ),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": ("email", "password1", "password2"),
            },
        ),
    )

    readonly_fields = (
        "date_joined",
        "last_login",
        "stripe_customer_id",
        "stripe_connect_account_id",
        "payout_status",
        "stripe_requirements",
    )
