"""
PlatformSetting model: runtime-tunable key/value configuration.

Percentages that operators adjust without a deploy (deposit percentage,
platform fee, final-amount cap) are stored here and read at call time
through payments.services.platform_settings.PlatformSettings.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class PlatformSetting(BaseModel):
    """
    One configuration value, stored as JSON.

    Fields:
        key: Unique setting name (e.g. "deposit_percentage")
        value: JSON value (numbers for the fee settings)
        updated_by: Admin who last changed it
    """

    key = models.CharField(max_length=100, unique=True)
    value = models.JSONField()
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        ordering = ["key"]

    def __str__(self) -> str:
        return f"{self.key}={self.value}"
