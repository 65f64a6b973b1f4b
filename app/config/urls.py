"""
URL configuration for the escrow service.

The `urlpatterns` list routes URLs to views. This is the root URL configuration
that includes all app-specific routes.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (for load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/                  - Authentication endpoints
        token/                     - Obtain JWT pair
        token/refresh/             - Refresh access token
        me/                        - Current user
    /api/v1/bookings/              - Booking lifecycle
        {id}/respond/              - Provider accepts or declines
        {id}/cancel/               - Cancel booking
        {id}/flag/                 - Flag for review
        {id}/payment-intent/       - Full-payment checkout intent
        {id}/complete/             - Complete a paid booking
    /api/v1/escrow/                - Escrow actions on a booking
        {id}/deposit/              - Charge deposit, save card
        {id}/start/                - Provider starts work
        {id}/propose-final/        - Provider proposes final amount
        {id}/approve-final/        - Homeowner approves, delta charged
        {id}/settle/               - Fee, payout and retainage
        {id}/release-retainage/    - Release held retainage
        {id}/ledger/               - Ledger entries for the booking
    /api/v1/payments/              - Payment endpoints
        webhooks/stripe/           - Stripe webhook endpoint (POST)
        connect/create-or-link/    - Provider Connect account
        connect/onboarding-link/   - Hosted onboarding URL
        connect/status/            - Payout eligibility
        settings/fees/             - Public fee settings
        admin/settings/fees/       - Admin fee settings (GET/POST)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    # Authentication (simplejwt)
    path("auth/", include("authentication.urls")),
    # Bookings
    path("bookings/", include("bookings.urls")),
    # Escrow
    path("escrow/", include("bookings.escrow_urls")),
    # Payments
    path("payments/", include("payments.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Escrow Admin"
admin.site.site_title = "Escrow Admin Portal"
admin.site.index_title = "Bookings, ledger and webhooks"
