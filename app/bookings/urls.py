"""
URL configuration for bookings.

All routes are prefixed with /api/v1/bookings/ when included in the main URLconf.
"""

from django.urls import path

from bookings import views

app_name = "bookings"

urlpatterns = [
    path("", views.BookingListCreateView.as_view(), name="list"),
    path("<uuid:booking_id>/", views.BookingDetailView.as_view(), name="detail"),
    path("<uuid:booking_id>/respond/", views.BookingRespondView.as_view(), name="respond"),
    path("<uuid:booking_id>/cancel/", views.BookingCancelView.as_view(), name="cancel"),
    path("<uuid:booking_id>/flag/", views.BookingFlagView.as_view(), name="flag"),
    path(
        "<uuid:booking_id>/payment-intent/",
        views.BookingPaymentIntentView.as_view(),
        name="payment_intent",
    ),
    path("<uuid:booking_id>/complete/", views.BookingCompleteView.as_view(), name="complete"),
]
