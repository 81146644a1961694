"""
Platform/school split of a gross payment.

platform_fee is rounded half-up to the minor unit; school_amount is the remainder,
so the two always add back to the gross amount exactly.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple, Union

MINOR_UNIT = Decimal("0.01")
DEFAULT_PLATFORM_PERCENT = Decimal("5")


class Split(NamedTuple):
    platform_fee: Decimal
    school_amount: Decimal


def _to_decimal(val: Union[Decimal, int, str, float]) -> Decimal:
    return val if isinstance(val, Decimal) else Decimal(str(val))


def compute_split(
    gross_amount: Union[Decimal, int, str, float],
    platform_percent: Union[Decimal, int, str, float] = DEFAULT_PLATFORM_PERCENT,
) -> Split:
    """
    Split gross_amount into (platform_fee, school_amount).

    Examples:
        compute_split(10000)  -> Split(Decimal("500.00"), Decimal("9500.00"))
        compute_split("0.10") -> Split(Decimal("0.01"), Decimal("0.09"))
    """
    gross = _to_decimal(gross_amount)
    percent = _to_decimal(platform_percent)
    if gross < 0:
        raise ValueError("Gross amount cannot be negative")
    if percent < 0 or percent > 100:
        raise ValueError("Platform percentage must be between 0 and 100")
    platform_fee = (gross * percent / Decimal("100")).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)
    return Split(platform_fee=platform_fee, school_amount=gross - platform_fee)


def to_minor_units(amount: Union[Decimal, int, str, float]) -> int:
    """Gateway amounts are integers in the currency's minor unit (kobo for NGN)."""
    return int((_to_decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount: Union[Decimal, int, str]) -> Decimal:
    return (_to_decimal(amount) / Decimal("100")).quantize(MINOR_UNIT)
