"""
Authentication application.

Email-based custom user model. Besides login identity, the User carries
the payment identities the escrow flow needs on both sides of a booking:

    - stripe_customer_id: payer-side billing identity (homeowner)
    - stripe_connect_account_id: payee-side payout identity (provider)
    - payout_status / stripe_requirements: Connect onboarding readiness

Usage:
    from authentication.models import User
"""
