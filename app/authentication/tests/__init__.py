"""
Tests for authentication app.

This package contains test modules for:
- test_models.py: User model and payout fields
- test_managers.py: UserManager and participant lookups
- test_views.py: JWT token and current-user endpoints

Usage:
    pytest authentication/tests/
    pytest authentication/tests/test_models.py
"""
