"""
Booking status enum and transition groups.

Booking lifecycle:

    pending ──> accepted ──> funded ──> in_progress ──> final_proposed
       │            │           └───────────────────────────┘ │
       │            │                                         v
       │            │                                   final_approved
       │            │                                    │          │
       │            │                                    v          v
       │            │                          partial_released ──> settled
       │            │
       │            └──> paid ──> completed        (flat-fee branch)
       │
       └──> declined / canceled   (accepted ──> canceled as well)

    disputed and no_show are absorbing states set by an administrator
    from any active state.
"""

from django.db import models


class BookingStatus(models.TextChoices):
    """
    States of a booking's financial lifecycle.

    Terminal states: DECLINED, CANCELED, SETTLED, COMPLETED, DISPUTED, NO_SHOW
    """

    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"
    DECLINED = "declined", "Declined"
    CANCELED = "canceled", "Canceled"
    FUNDED = "funded", "Funded"
    IN_PROGRESS = "in_progress", "In Progress"
    FINAL_PROPOSED = "final_proposed", "Final Proposed"
    FINAL_APPROVED = "final_approved", "Final Approved"
    PARTIAL_RELEASED = "partial_released", "Partially Released"
    SETTLED = "settled", "Settled"
    PAID = "paid", "Paid"
    COMPLETED = "completed", "Completed"
    DISPUTED = "disputed", "Disputed"
    NO_SHOW = "no_show", "No Show"


# Before any money has been collected
PRE_FUNDING_STATUSES = (BookingStatus.PENDING, BookingStatus.ACCEPTED)

# Money is held but nothing has been paid out yet
REFUNDABLE_STATUSES = (
    BookingStatus.PENDING,
    BookingStatus.ACCEPTED,
    BookingStatus.PAID,
    BookingStatus.FUNDED,
    BookingStatus.IN_PROGRESS,
    BookingStatus.FINAL_PROPOSED,
    BookingStatus.FINAL_APPROVED,
)

# Statuses an administrator may flag as disputed or no_show
FLAGGABLE_STATUSES = (
    BookingStatus.ACCEPTED,
    BookingStatus.PAID,
    BookingStatus.FUNDED,
    BookingStatus.IN_PROGRESS,
    BookingStatus.FINAL_PROPOSED,
    BookingStatus.FINAL_APPROVED,
    BookingStatus.PARTIAL_RELEASED,
)

FLAG_STATUSES = (BookingStatus.DISPUTED, BookingStatus.NO_SHOW)
