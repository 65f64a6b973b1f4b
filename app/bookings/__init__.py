"""
Bookings app.

Owns the Booking model and its escrow lifecycle: request/accept,
deposit, final-amount negotiation, settlement, retainage release, and
the flat-fee checkout branch.
"""
