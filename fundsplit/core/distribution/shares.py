"""
Share conversion - fixed-point percentages to payout amounts.

Percentages are integers scaled by SCALE so fractional percentages are
representable exactly:

    SCALE = 1_000_000
    50%      -> 50_000_000
    0.0001%  -> 100
    100%     -> 100_000_000  (PERCENT_DENOMINATOR)

    amount = floor(fund * scaled_percent / (100 * SCALE))

Rounding is always toward zero. The sum of all payouts can therefore fall
short of the fund by a residual "dust" amount, which stays in the instance.
No upper bound is enforced on the percentage; a commitment whose shares sum
past 100% is the builder's responsibility.
"""

from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Iterable, Union

SCALE = 1_000_000
PERCENT_DENOMINATOR = 100 * SCALE


def scaled_amount(fund_amount: int, scaled_percent: int, scale: int = SCALE) -> int:
    """
    Convert a scaled percentage of ``fund_amount`` into an amount.

    Integer arithmetic only; floors the result.

    Raises:
        ValueError: on negative or non-integer inputs
    """
    for name, value in (("fund_amount", fund_amount), ("scaled_percent", scaled_percent)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name} must be int, got {type(value).__name__}")
        if value < 0:
            raise ValueError(f"{name} must be >= 0, got {value}")
    return fund_amount * scaled_percent // (100 * scale)


def percent_to_scaled(percent: Union[str, int, Decimal], scale: int = SCALE) -> int:
    """
    Convert a human percentage ("12.5", 12.5 as str/Decimal, or int) to scaled form.

    Digits beyond the scale's precision are truncated toward zero.

    Raises:
        ValueError: for unparseable or negative values
    """
    if isinstance(percent, float):
        raise ValueError("Pass percentages as str or Decimal, not float")
    try:
        value = Decimal(str(percent))
    except InvalidOperation:
        raise ValueError(f"Invalid percentage: {percent!r}")
    if not value.is_finite() or value < 0:
        raise ValueError(f"Percentage must be a non-negative number, got {percent!r}")
    return int((value * scale).to_integral_value(rounding=ROUND_DOWN))


def scaled_to_percent(scaled_percent: int, scale: int = SCALE) -> Decimal:
    """Inverse of percent_to_scaled, for display."""
    return Decimal(scaled_percent) / Decimal(scale)


def dust(fund_amount: int, shares: Iterable[int], scale: int = SCALE) -> int:
    """
    Residual left after paying every share in ``shares`` from ``fund_amount``.

    Negative when the shares over-allocate the fund.
    """
    return fund_amount - sum(scaled_amount(fund_amount, s, scale) for s in shares)
