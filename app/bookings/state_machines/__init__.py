"""
Booking state machine definitions.

Usage:
    from bookings.state_machines import BookingStatus

    if booking.status == BookingStatus.FUNDED:
        ...
"""

from bookings.state_machines.states import (
    FLAG_STATUSES,
    FLAGGABLE_STATUSES,
    PRE_FUNDING_STATUSES,
    REFUNDABLE_STATUSES,
    BookingStatus,
)

__all__ = [
    "BookingStatus",
    "FLAG_STATUSES",
    "FLAGGABLE_STATUSES",
    "PRE_FUNDING_STATUSES",
    "REFUNDABLE_STATUSES",
]
