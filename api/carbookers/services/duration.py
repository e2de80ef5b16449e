"""Rental duration from a pickup/return date-time pair.

Pure calculation module: no backend, no async, no FastAPI dependencies.
Dates and times are the rental location's wall-clock time and are combined
into naive datetimes, so no UTC conversion ever takes place.
"""

import re
from datetime import date, datetime, time

from carbookers.models.booking import TimeWindow

MINUTES_PER_DAY = 1440

TIME_PATTERN = re.compile(r"([01]?[0-9]|2[0-3]):([0-5][0-9])")
DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


class InvalidWindow(ValueError):
    """Raised when a pickup/return window is malformed or runs backwards."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(message)


def is_valid_time(value: str) -> bool:
    """True for H:MM or HH:MM between 00:00 and 23:59."""
    return bool(TIME_PATTERN.fullmatch(value or ""))


def parse_time(value: str, field: str = "time") -> time:
    match = TIME_PATTERN.fullmatch(value or "")
    if not match:
        raise InvalidWindow(field, f"Invalid time {value!r} (use HH:MM)")
    return time(int(match.group(1)), int(match.group(2)))


def parse_date(value: date | str, field: str = "date") -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    # fromisoformat alone also takes "20240601" and week dates
    try:
        if not DATE_PATTERN.fullmatch(value or ""):
            raise ValueError(value)
        return date.fromisoformat(value)
    except ValueError:
        raise InvalidWindow(field, f"Invalid date {value!r} (use YYYY-MM-DD)") from None


def time_to_minutes(value: str) -> int:
    """Minutes since midnight for an HH:MM string."""
    t = parse_time(value)
    return t.hour * 60 + t.minute


def combine(day: date | str, hhmm: str, field_prefix: str = "") -> datetime:
    """Combine an ISO date and an HH:MM time into one wall-clock instant."""
    date_field = f"{field_prefix}_date" if field_prefix else "date"
    time_field = f"{field_prefix}_time" if field_prefix else "time"
    return datetime.combine(parse_date(day, date_field), parse_time(hhmm, time_field))


def window_bounds(window: TimeWindow) -> tuple[datetime, datetime]:
    """Return (pickup, return) instants. Raises InvalidWindow if pickup is after return."""
    start = combine(window.pickup_date, window.pickup_time, "pickup")
    end = combine(window.return_date, window.return_time, "return")
    if start > end:
        raise InvalidWindow("return_date", "Return must not be before pickup.")
    return start, end


def compute_duration_minutes(window: TimeWindow) -> int:
    """Elapsed whole minutes between pickup and return.

    Same-day windows are allowed (including zero length). Seconds never appear
    in HH:MM input, so flooring only matters for direct datetime callers.
    """
    start, end = window_bounds(window)
    return int((end - start).total_seconds() // 60)
