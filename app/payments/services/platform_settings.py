"""
Platform configuration store.

Percentages used by the escrow flow are read at call time, in this order:

    1. PlatformSetting row (editable by admins at runtime)
    2. Django settings default (ESCROW_DEPOSIT_PERCENT, ...)
    3. Hard-coded default

Usage:
    from payments.services import PlatformSettings

    deposit_cents = percent_of(total_cents, PlatformSettings.deposit_percentage())
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from django.conf import settings

from core.services import BaseService
from payments.exceptions import PaymentValidationError
from payments.models import PlatformSetting

if TYPE_CHECKING:
    from typing import Any

    from authentication.models import User


DEPOSIT_PERCENTAGE = "deposit_percentage"
PLATFORM_FEE_PERCENT = "platform_fee_percent"
FINAL_CAP_PERCENT = "final_cap_percent"
PAYMENT_FEE_PERCENT = "payment_fee_percent"

# key -> (settings attribute, hard-coded default, maximum allowed)
FEE_SETTINGS: dict[str, tuple[str, str, Decimal]] = {
    DEPOSIT_PERCENTAGE: ("ESCROW_DEPOSIT_PERCENT", "10", Decimal("100")),
    PLATFORM_FEE_PERCENT: ("PLATFORM_FEE_PERCENT", "5", Decimal("100")),
    FINAL_CAP_PERCENT: ("ESCROW_FINAL_CAP_PERCENT", "125", Decimal("1000")),
    PAYMENT_FEE_PERCENT: ("PAYMENT_FEE_PERCENT", "2.9", Decimal("100")),
}


def _to_percent(key: str, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise PaymentValidationError(
            f"{key} must be a number",
            error_code="INVALID_SETTING",
            details={key: value},
        )
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise PaymentValidationError(
            f"{key} must be a number",
            error_code="INVALID_SETTING",
            details={key: str(value)},
        ) from e
    maximum = FEE_SETTINGS[key][2]
    if not result.is_finite() or result < 0 or result > maximum:
        raise PaymentValidationError(
            f"{key} must be between 0 and {maximum}",
            error_code="INVALID_SETTING",
            details={key: str(value), "min": 0, "max": str(maximum)},
        )
    return result


class PlatformSettings(BaseService):
    """Typed accessors over the PlatformSetting key/value table."""

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        row = PlatformSetting.objects.filter(key=key).only("value").first()
        return row.value if row is not None else default

    @classmethod
    def set(cls, key: str, value: Any, updated_by: User | None = None) -> PlatformSetting:
        row, _ = PlatformSetting.objects.update_or_create(
            key=key,
            defaults={"value": value, "updated_by": updated_by},
        )
        return row

    @classmethod
    def _percent(cls, key: str) -> Decimal:
        setting_name, fallback, _ = FEE_SETTINGS[key]
        default = getattr(settings, setting_name, fallback)
        value = cls.get(key, default)
        try:
            return _to_percent(key, value)
        except PaymentValidationError:
            cls.get_logger().error(
                "Invalid platform setting, using default",
                extra={"key": key, "value": str(value), "default": str(default)},
            )
            return _to_percent(key, default)

    @classmethod
    def deposit_percentage(cls) -> Decimal:
        return cls._percent(DEPOSIT_PERCENTAGE)

    @classmethod
    def platform_fee_percent(cls) -> Decimal:
        return cls._percent(PLATFORM_FEE_PERCENT)

    @classmethod
    def final_cap_percent(cls) -> Decimal:
        return cls._percent(FINAL_CAP_PERCENT)

    @classmethod
    def payment_fee_percent(cls) -> Decimal:
        """Card processing fee shown to users; not used in escrow math."""
        return cls._percent(PAYMENT_FEE_PERCENT)

    @classmethod
    def get_fee_settings(cls) -> dict[str, Decimal]:
        return {key: cls._percent(key) for key in FEE_SETTINGS}

    @classmethod
    def update_fee_settings(
        cls,
        values: dict[str, Any],
        updated_by: User | None = None,
    ) -> dict[str, Decimal]:
        """
        Validate and store any subset of the fee settings.

        All values are validated before any is written.

        Raises:
            PaymentValidationError: Unknown key or out-of-range value
        """
        unknown = sorted(set(values) - set(FEE_SETTINGS))
        if unknown:
            raise PaymentValidationError(
                "Unknown fee settings",
                error_code="INVALID_SETTING",
                details={"unknown_keys": unknown},
            )
        validated = {key: _to_percent(key, value) for key, value in values.items()}

        with cls.atomic():
            for key, value in validated.items():
                # JSON has no Decimal; store the exact string form
                cls.set(key, str(value), updated_by=updated_by)

        cls.get_logger().info(
            "Fee settings updated",
            extra={
                "updated_by": getattr(updated_by, "pk", None),
                "settings": {k: str(v) for k, v in validated.items()},
            },
        )
        return cls.get_fee_settings()
