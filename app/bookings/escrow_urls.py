"""
URL configuration for escrow actions on a booking.

All routes are prefixed with /api/v1/escrow/ when included in the main URLconf.
"""

from django.urls import path

from bookings import views

app_name = "escrow"

urlpatterns = [
    path("<uuid:booking_id>/deposit/", views.DepositView.as_view(), name="deposit"),
    path("<uuid:booking_id>/start/", views.StartWorkView.as_view(), name="start"),
    path(
        "<uuid:booking_id>/propose-final/",
        views.ProposeFinalView.as_view(),
        name="propose_final",
    ),
    path(
        "<uuid:booking_id>/approve-final/",
        views.ApproveFinalView.as_view(),
        name="approve_final",
    ),
    path("<uuid:booking_id>/settle/", views.SettleView.as_view(), name="settle"),
    path(
        "<uuid:booking_id>/release-retainage/",
        views.ReleaseRetainageView.as_view(),
        name="release_retainage",
    ),
    path("<uuid:booking_id>/ledger/", views.EscrowLedgerView.as_view(), name="ledger"),
]
