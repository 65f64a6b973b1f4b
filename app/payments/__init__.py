"""
Payments app: the money side of escrow bookings.

This app handles:
- Stripe gateway access (customers, charges, refunds, Connect transfers)
- Provider payout readiness (Connect onboarding, payout_status)
- The double-entry escrow ledger
- Webhook ingestion and reconciliation
- Runtime fee settings

Related apps:
    - authentication: User carries Stripe customer and Connect account ids
    - bookings: EscrowService drives the money movements for each booking

Usage:
    from payments.adapters import StripeAdapter
    from payments.ledger import EscrowLedger

    EscrowLedger.escrow_balance(booking.id)
"""
