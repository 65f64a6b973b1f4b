"""
URL configuration for the payments app.

Routes:
    - POST /webhooks/stripe/ - Stripe webhook endpoint
    - POST /connect/create-or-link/ - Create or link payout account
    - POST /connect/onboarding-link/ - Hosted onboarding URL
    - GET /connect/status/ - Payout readiness
    - GET /settings/fees/ - Public fee settings
    - GET|POST /admin/settings/fees/ - Admin fee settings

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("payments/", include("payments.urls")),
    ]
"""

from django.urls import path

from payments import views
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    # Webhook endpoints
    path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    # Stripe Connect
    path(
        "connect/create-or-link/",
        views.ConnectCreateOrLinkView.as_view(),
        name="connect_create_or_link",
    ),
    path(
        "connect/onboarding-link/",
        views.ConnectOnboardingLinkView.as_view(),
        name="connect_onboarding_link",
    ),
    path("connect/status/", views.ConnectStatusView.as_view(), name="connect_status"),
    # Fee settings
    path("settings/fees/", views.FeeSettingsView.as_view(), name="fee_settings"),
    path(
        "admin/settings/fees/",
        views.AdminFeeSettingsView.as_view(),
        name="admin_fee_settings",
    ),
]
