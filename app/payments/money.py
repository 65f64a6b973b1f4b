"""
Integer-cents money primitives used by every escrow computation.

All amounts are integer cents. Percentages and basis points are applied
through Decimal with ROUND_HALF_UP and converted back to int, so no float
ever touches a currency amount.

Functions:
    percent_of: round(amount * percent / 100)
    bps_of: round(amount * bps / 10000)
    validate_non_negative: reject negative or non-integer cents
    validate_bps: reject basis points outside 0..10000
    max_final_amount: cap on a provider's proposed final amount
    compute_settlement: platform fee / retainage / payout split

Usage:
    from payments.money import compute_settlement, percent_of

    deposit = percent_of(50000, 10)          # 5000
    split = compute_settlement(100000, 5, 1000)
    split.payout_cents                       # 85000
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from payments.exceptions import PaymentValidationError

Percent = Union[int, float, str, Decimal]

BPS_DENOMINATOR = 10000


@dataclass(frozen=True)
class Money:
    """
    A monetary amount in the smallest currency unit.

    Attributes:
        cents: Amount in cents
        currency: ISO 4217 currency code (default: 'usd')

    Example:
        Money(cents=5000)            # "$50.00 USD"
        Money(5000) + Money(1000)    # Money(cents=6000, currency='usd')
    """

    cents: int
    currency: str = "usd"

    def __str__(self) -> str:
        sign = "-" if self.cents < 0 else ""
        whole, frac = divmod(abs(self.cents), 100)
        return f"{sign}${whole}.{frac:02d} {self.currency.upper()}"

    def _check_currency(self, other: Money) -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot combine Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return Money(cents=self.cents + other.cents, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._check_currency(other)
        return Money(cents=self.cents - other.cents, currency=self.currency)


@dataclass(frozen=True)
class SettlementAmounts:
    """
    Split of the funded escrow amount at settlement.

    Invariant: platform_fee_cents + retainage_cents + payout_cents == funded_cents
    """

    funded_cents: int
    platform_fee_cents: int
    retainage_bps: int
    retainage_cents: int
    payout_cents: int

    @property
    def has_retainage(self) -> bool:
        return self.retainage_cents > 0


def _to_decimal(value: Percent, field_name: str) -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise PaymentValidationError(
            f"{field_name} must be numeric",
            details={field_name: str(value)},
        ) from e
    if not result.is_finite():
        raise PaymentValidationError(
            f"{field_name} must be finite",
            details={field_name: str(value)},
        )
    return result


def _round_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def validate_non_negative(cents: int, field_name: str = "amount_cents") -> int:
    """
    Ensure an amount is a non-negative integer number of cents.

    Raises:
        PaymentValidationError: For bools, floats, negatives
    """
    if isinstance(cents, bool) or not isinstance(cents, int):
        raise PaymentValidationError(
            f"{field_name} must be an integer number of cents",
            error_code="INVALID_AMOUNT",
            details={field_name: repr(cents)},
        )
    if cents < 0:
        raise PaymentValidationError(
            f"{field_name} must not be negative",
            error_code="NEGATIVE_AMOUNT",
            details={field_name: cents},
        )
    return cents


def validate_bps(bps: int, field_name: str = "retainage_bps") -> int:
    """
    Ensure basis points are an integer in 0..10000.

    Raises:
        PaymentValidationError: If out of range or not an integer
    """
    if isinstance(bps, bool) or not isinstance(bps, int):
        raise PaymentValidationError(
            f"{field_name} must be an integer",
            error_code="INVALID_BPS",
            details={field_name: repr(bps)},
        )
    if not 0 <= bps <= BPS_DENOMINATOR:
        raise PaymentValidationError(
            f"{field_name} must be between 0 and {BPS_DENOMINATOR}",
            error_code="INVALID_BPS",
            details={field_name: bps, "min": 0, "max": BPS_DENOMINATOR},
        )
    return bps


def percent_of(amount_cents: int, percent: Percent) -> int:
    """
    Apply a percentage to an amount, rounding half up to whole cents.

    Example:
        percent_of(50000, 10)     # 5000
        percent_of(6000, 5)       # 300
        percent_of(4999, "2.9")   # 145
    """
    validate_non_negative(amount_cents)
    pct = _to_decimal(percent, "percent")
    if pct < 0:
        raise PaymentValidationError(
            "percent must not be negative",
            details={"percent": str(pct)},
        )
    return _round_cents(Decimal(amount_cents) * pct / Decimal(100))


def bps_of(amount_cents: int, bps: int) -> int:
    """
    Apply basis points to an amount, rounding half up to whole cents.

    Example:
        bps_of(100000, 1000)   # 10000
    """
    validate_non_negative(amount_cents)
    validate_bps(bps)
    return _round_cents(Decimal(amount_cents) * Decimal(bps) / Decimal(BPS_DENOMINATOR))


def max_final_amount(deposit_cents: int, cap_percent: Percent = 125) -> int:
    """
    Highest final amount a provider may propose without an admin override.

    Example:
        max_final_amount(5000)   # 6250
    """
    return percent_of(deposit_cents, cap_percent)


def compute_settlement(
    funded_cents: int,
    fee_percent: Percent,
    retainage_bps: int = 0,
) -> SettlementAmounts:
    """
    Split the funded amount into platform fee, retainage hold and payout.

    Args:
        funded_cents: Amount currently held in escrow
        fee_percent: Platform fee percentage (e.g. 5)
        retainage_bps: Share of the funded amount to withhold (0..10000)

    Raises:
        PaymentValidationError: If fee plus retainage exceed the funded amount

    Example:
        compute_settlement(100000, 5, 1000)
        # SettlementAmounts(funded_cents=100000, platform_fee_cents=5000,
        #                   retainage_bps=1000, retainage_cents=10000,
        #                   payout_cents=85000)
    """
    validate_non_negative(funded_cents, "funded_cents")
    validate_bps(retainage_bps)

    fee = percent_of(funded_cents, fee_percent)
    retainage = bps_of(funded_cents, retainage_bps)
    payout = funded_cents - fee - retainage

    if payout < 0:
        raise PaymentValidationError(
            "Platform fee and retainage exceed the funded amount",
            error_code="RETAINAGE_TOO_HIGH",
            details={
                "funded_cents": funded_cents,
                "platform_fee_cents": fee,
                "retainage_cents": retainage,
                "max_retainage_bps": _max_retainage_bps(funded_cents, fee),
            },
        )

    return SettlementAmounts(
        funded_cents=funded_cents,
        platform_fee_cents=fee,
        retainage_bps=retainage_bps,
        retainage_cents=retainage,
        payout_cents=payout,
    )


def _max_retainage_bps(funded_cents: int, fee_cents: int) -> int:
    if funded_cents == 0:
        return 0
    # Largest bps whose rounded hold still fits beside the fee
    remaining = Decimal(funded_cents - fee_cents)
    return int((remaining * BPS_DENOMINATOR / Decimal(funded_cents)).to_integral_value(rounding=ROUND_FLOOR))
