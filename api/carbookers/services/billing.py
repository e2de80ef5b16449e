"""Billable-day resolution.

A rental is billed per full 24 hour block, plus one extra day when the
return happens more than the lateness threshold after the pickup time of
day. Sub-day rentals are charged one day.
"""

from dataclasses import dataclass

from carbookers.services.duration import MINUTES_PER_DAY

DEFAULT_LATENESS_THRESHOLD_MINUTES = 60


@dataclass(frozen=True)
class BillingResult:
    elapsed_minutes: int
    full_day_blocks: int
    lateness_minutes: int
    lateness_fee_applied: bool
    billable_days: int


def resolve_billing_days(
    elapsed_minutes: int,
    lateness_threshold_minutes: int = DEFAULT_LATENESS_THRESHOLD_MINUTES,
) -> BillingResult:
    """Convert elapsed rental minutes into billable days.

    2880 min -> 2 days. 3000 min with a 60 min threshold -> 2 full days plus
    120 late minutes -> 3 days. 0 min -> 1 day.
    """
    if elapsed_minutes < 0:
        raise ValueError(f"elapsed_minutes must be >= 0, got {elapsed_minutes}")
    if lateness_threshold_minutes < 0:
        raise ValueError(f"lateness_threshold_minutes must be >= 0, got {lateness_threshold_minutes}")

    full_day_blocks = elapsed_minutes // MINUTES_PER_DAY
    lateness_minutes = elapsed_minutes - full_day_blocks * MINUTES_PER_DAY
    lateness_fee_applied = lateness_minutes > lateness_threshold_minutes
    billable_days = max(1, full_day_blocks + (1 if lateness_fee_applied else 0))

    return BillingResult(
        elapsed_minutes=elapsed_minutes,
        full_day_blocks=full_day_blocks,
        lateness_minutes=lateness_minutes,
        lateness_fee_applied=lateness_fee_applied,
        billable_days=billable_days,
    )
