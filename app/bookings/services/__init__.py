"""
Booking services.

- BookingService: creation, listing, respond/cancel/flag, checkout intent
- EscrowService: deposit, final amount, settlement, retainage, legacy payout
"""

from bookings.services.booking_service import BookingService
from bookings.services.escrow_service import EscrowService

__all__ = ["BookingService", "EscrowService"]
