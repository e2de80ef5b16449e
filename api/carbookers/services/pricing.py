"""Pricing service for rental quotes.

Multiplies billable days by the vehicle's daily rate. The lateness day is
already part of billable_days; lateness_surcharge only splits it out for
display and is never added on top of the total.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from carbookers.models.booking import TimeWindow
from carbookers.services.billing import (
    DEFAULT_LATENESS_THRESHOLD_MINUTES,
    BillingResult,
    resolve_billing_days,
)
from carbookers.services.duration import compute_duration_minutes

CENT = Decimal("0.01")


@dataclass(frozen=True)
class PriceQuote:
    daily_rate: Decimal
    billable_days: int
    base_amount: Decimal
    lateness_surcharge: Decimal
    total_amount: Decimal


def _exact(value: Decimal | int | float | str) -> Decimal:
    # str() first so floats like 85.1 don't carry binary noise
    return Decimal(str(value))


def _to_amount(value: Decimal | int | float | str) -> Decimal:
    return _exact(value).quantize(CENT, rounding=ROUND_HALF_UP)


def quote_price(daily_rate: Decimal | int | float | str, billing: BillingResult) -> PriceQuote:
    """Price a rental from its billing result.

    85/day over 3 billable days -> total 255.00. When the third day comes from
    the lateness rule the quote reads base 170.00 + surcharge 85.00.
    Amounts are rounded to cents only after multiplying.
    """
    rate = _exact(daily_rate)
    if rate < 0:
        raise ValueError(f"daily_rate must be >= 0, got {daily_rate}")

    total = _to_amount(rate * billing.billable_days)

    # A sub-day rental is the one-day minimum, not a late return
    if billing.lateness_fee_applied and billing.full_day_blocks > 0:
        surcharge = _to_amount(rate)
    else:
        surcharge = _to_amount(0)

    return PriceQuote(
        daily_rate=_to_amount(rate),
        billable_days=billing.billable_days,
        base_amount=total - surcharge,
        lateness_surcharge=surcharge,
        total_amount=total,
    )


def quote_window(
    daily_rate: Decimal | int | float | str,
    window: TimeWindow,
    lateness_threshold_minutes: int = DEFAULT_LATENESS_THRESHOLD_MINUTES,
) -> tuple[BillingResult, PriceQuote]:
    """Duration -> billing days -> price for a pickup/return window.

    Raises InvalidWindow for malformed or backwards windows.
    """
    billing = resolve_billing_days(compute_duration_minutes(window), lateness_threshold_minutes)
    return billing, quote_price(daily_rate, billing)
