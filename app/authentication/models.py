"""
Authentication models.

- User: Custom user model with email-based authentication, carrying the
  Stripe identities used by the escrow flow

Related files:
    - managers.py: Custom user manager for email-based creation
    - payments/services/payout_eligibility.py: Maintains payout_status

Security:
    - User passwords hashed with Django's PBKDF2
    - Stripe ids are references only; no card or bank data is stored
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager
from payments.state_machines import PayoutStatus


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    A user can be the buyer (homeowner paying for work) on one booking and
    the seller (provider doing the work) on another, so both payment
    identities live on the same record.

    Fields:
        email: Primary identifier, unique, used for login
        email_verified: Whether the user's email has been verified
        is_active: Whether the user account is active
        is_staff: Platform administrator flag (also grants Django admin)
        date_joined: When the user account was created
        updated_at: When the user record was last modified
        stripe_customer_id: Stripe Customer used when this user pays
        stripe_connect_account_id: Stripe Connect account receiving payouts
        payout_status: Readiness of the Connect account (UNSET/PENDING/READY/RESTRICTED)
        stripe_requirements: Outstanding compliance items reported by Stripe

    Usage:
        user = User.objects.create_user(
            email='provider@example.com',
            password='securepassword'
        )
        user.is_admin            # False
        user.payout_status       # "UNSET"
    """

    # Primary identifier (replaces username)
    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    email_verified = models.BooleanField(
        default=False,
        help_text="Whether the user's email has been verified",
    )

    # Account status flags
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Platform administrator. Grants admin overrides and the admin site.",
    )

    # Payer side
    stripe_customer_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Stripe Customer ID (cus_xxx) used for charges",
    )

    # Payee side
    stripe_connect_account_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Stripe Connect account ID (acct_xxx) receiving payouts",
    )
    payout_status = models.CharField(
        max_length=20,
        choices=PayoutStatus.choices,
        default=PayoutStatus.UNSET,
        help_text="Connect account readiness for receiving transfers",
    )
    stripe_requirements = models.JSONField(
        default=dict,
        blank=True,
        help_text="Outstanding requirements (currently_due, disabled_reason)",
    )

    # Timestamps
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        """Return the user's email as string representation."""
        return self.email

    def get_full_name(self):
        return self.email

    def get_short_name(self):
        return self.email.split("@")[0]

    @property
    def is_admin(self) -> bool:
        """Whether this user may use administrator overrides."""
        return bool(self.is_staff)

    @property
    def has_payout_account(self) -> bool:
        return bool(self.stripe_connect_account_id)
