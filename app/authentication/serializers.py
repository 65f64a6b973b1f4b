"""
Serializers for authentication endpoints.
"""

from rest_framework import serializers

from authentication.models import User


class CurrentUserSerializer(serializers.ModelSerializer):
    """The authenticated caller, including payment readiness."""

    is_admin = serializers.BooleanField(read_only=True)
    has_payout_account = serializers.BooleanField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "email_verified",
            "is_admin",
            "has_payout_account",
            "payout_status",
            "stripe_requirements",
            "date_joined",
        ]
        read_only_fields = fields
