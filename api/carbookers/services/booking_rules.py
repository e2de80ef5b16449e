"""Booking rules enforcement.

All booking form validation lives here, separate from the route handlers.
Each rule returns a BookingViolation or None if the rule passes. The
validate_* functions run every rule and collect violations into a
ValidationResult; nothing short-circuits, and the first violation reported
for a field is the one shown against it.

Validation is advisory. Availability is reported as a warning only; the
backend decides conflicts when the booking is written.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from carbookers.models.booking import (
    BookingForm,
    BookingInterval,
    PickupLocation,
    TimeWindow,
    WebsiteBookingForm,
)
from carbookers.models.fleet import Customer, CustomerStatus, Vehicle
from carbookers.services.availability import find_conflicts
from carbookers.services.duration import (
    InvalidWindow,
    compute_duration_minutes,
    is_valid_time,
    parse_date,
    time_to_minutes,
)

ADMIN_MIN_DURATION_MINUTES = 15
WEBSITE_MIN_DURATION_MINUTES = 1440

VALID_LOCATIONS = frozenset(loc.value for loc in PickupLocation)

_REQUIRED_LABELS = {
    "customer_id": "Customer selection",
    "first_name": "First name",
    "last_name": "Last name",
    "phone": "Phone number",
    "vehicle_id": "Vehicle selection",
    "pickup_date": "Pickup date",
    "return_date": "Return date",
    "pickup_time": "Pickup time",
    "return_time": "Return time",
    "pickup_location": "Pickup location",
    "return_location": "Return location",
}


class BookingViolation(Exception):
    """Raised when a booking rule is violated."""

    def __init__(self, field: str, rule: str, message: str):
        self.field = field
        self.rule = rule
        self.message = message
        super().__init__(message)

    def as_dict(self) -> dict:
        return {"field": self.field, "rule": self.rule, "message": self.message}


@dataclass
class ValidationResult:
    violations: list[BookingViolation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.violations

    @property
    def field_errors(self) -> dict[str, str]:
        errors: dict[str, str] = {}
        for v in self.violations:
            errors.setdefault(v.field, v.message)
        return errors


def _fmt_duration(minutes: int) -> str:
    """Format minutes as days or hours when evenly divisible, otherwise minutes.

    1440 -> "1 day", 120 -> "2 hours", 60 -> "1 hour", 15 -> "15 minutes"
    """
    if minutes and minutes % 1440 == 0:
        days = minutes // 1440
        return f"{days} day{'s' if days != 1 else ''}"
    if minutes and minutes % 60 == 0:
        hours = minutes // 60
        return f"{hours} hour{'s' if hours != 1 else ''}"
    return f"{minutes} minutes"


def _blank(value: str | None) -> bool:
    return not (value or "").strip()


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def validate_booking(
    form: BookingForm,
    customers: Iterable[Customer],
    vehicles: Iterable[Vehicle],
    existing_bookings: Iterable[BookingInterval],
    *,
    min_duration_minutes: int = ADMIN_MIN_DURATION_MINUTES,
    today: date | None = None,
) -> ValidationResult:
    """Validate an admin booking form against the backend snapshots."""
    result = ValidationResult()
    existing_bookings = list(existing_bookings)

    # 1. Required fields
    for name in (
        "customer_id",
        "vehicle_id",
        "pickup_date",
        "return_date",
        "pickup_time",
        "return_time",
        "pickup_location",
        "return_location",
    ):
        _add(result, check_required(name, getattr(form, name)))

    # 2. Customer reference
    if not _blank(form.customer_id):
        _add(result, check_customer(form.customer_id, customers))

    _validate_common(result, form, vehicles, existing_bookings, min_duration_minutes, today)
    return result


def validate_website_booking(
    form: WebsiteBookingForm,
    vehicles: Iterable[Vehicle],
    existing_bookings: Iterable[BookingInterval],
    *,
    min_duration_minutes: int = WEBSITE_MIN_DURATION_MINUTES,
    today: date | None = None,
) -> ValidationResult:
    """Validate a public website booking form (customer details given inline)."""
    result = ValidationResult()
    existing_bookings = list(existing_bookings)

    for name in (
        "first_name",
        "last_name",
        "phone",
        "vehicle_id",
        "pickup_date",
        "return_date",
        "pickup_time",
        "return_time",
        "pickup_location",
        "return_location",
    ):
        _add(result, check_required(name, getattr(form, name)))

    _validate_common(result, form, vehicles, existing_bookings, min_duration_minutes, today)
    return result


def _validate_common(
    result: ValidationResult,
    form: BookingForm | WebsiteBookingForm,
    vehicles: Iterable[Vehicle],
    existing_bookings: list[BookingInterval],
    min_duration_minutes: int,
    today: date | None,
) -> None:
    # Vehicle reference
    if not _blank(form.vehicle_id):
        _add(result, check_vehicle(form.vehicle_id, vehicles))

    # Dates
    pickup_date = _parsed_date(result, "pickup_date", form.pickup_date)
    return_date = _parsed_date(result, "return_date", form.return_date)
    if pickup_date and today is not None:
        _add(result, check_not_in_past(pickup_date, today))
    if pickup_date and return_date:
        _add(result, check_date_order(pickup_date, return_date))

    # Times
    pickup_time_ok = _time_ok(result, "pickup_time", form.pickup_time)
    return_time_ok = _time_ok(result, "return_time", form.return_time)

    if pickup_date and return_date and pickup_time_ok and return_time_ok and pickup_date <= return_date:
        window = form.window
        same_day = check_same_day_times(form.pickup_time, form.return_time) if pickup_date == return_date else None
        if same_day:
            _add(result, same_day)
        else:
            _add(result, check_min_duration(window, min_duration_minutes))

            # Availability is advisory only: surface, never fail
            if not _blank(form.vehicle_id):
                warning = check_availability(form.vehicle_id, window, existing_bookings)
                if warning:
                    result.warnings.append(warning.message)

    # Locations
    for name in ("pickup_location", "return_location"):
        value = getattr(form, name)
        if not _blank(value):
            _add(result, check_location(name, value))


def _add(result: ValidationResult, violation: BookingViolation | None) -> None:
    if violation:
        result.violations.append(violation)


def _parsed_date(result: ValidationResult, name: str, value: str) -> date | None:
    if _blank(value):
        return None
    try:
        return parse_date(value, name)
    except InvalidWindow as exc:
        result.violations.append(BookingViolation(name, "invalid_date", exc.message))
        return None


def _time_ok(result: ValidationResult, name: str, value: str) -> bool:
    if _blank(value):
        return False
    v = check_time_format(name, value)
    _add(result, v)
    return v is None


# ---------------------------------------------------------------------------
# Individual rules
# ---------------------------------------------------------------------------


def check_required(name: str, value: str | None) -> BookingViolation | None:
    if _blank(value):
        return BookingViolation(name, "required", f"{_REQUIRED_LABELS[name]} is required")
    return None


def check_customer(customer_id: str, customers: Iterable[Customer]) -> BookingViolation | None:
    """Customer must exist and be active."""
    customer = next((c for c in customers if c.id == customer_id), None)
    if customer is None:
        return BookingViolation("customer_id", "unknown_customer", "Selected customer not found")
    if customer.status != CustomerStatus.ACTIVE:
        return BookingViolation("customer_id", "inactive_customer", "Selected customer is not active")
    return None


def check_vehicle(vehicle_id: str, vehicles: Iterable[Vehicle]) -> BookingViolation | None:
    """Vehicle must exist and be flagged available."""
    vehicle = next((v for v in vehicles if v.id == vehicle_id), None)
    if vehicle is None:
        return BookingViolation("vehicle_id", "unknown_vehicle", "Selected vehicle not found")
    if not vehicle.available:
        return BookingViolation("vehicle_id", "vehicle_unavailable", "Selected vehicle is not available")
    return None


def check_not_in_past(pickup_date: date, today: date) -> BookingViolation | None:
    if pickup_date < today:
        return BookingViolation("pickup_date", "past_booking", "Pickup date cannot be in the past")
    return None


def check_date_order(pickup_date: date, return_date: date) -> BookingViolation | None:
    """Return date on or after pickup date. Same-day returns are legal."""
    if return_date < pickup_date:
        return BookingViolation("return_date", "date_order", "Return date must be on or after pickup date")
    return None


def check_time_format(name: str, value: str) -> BookingViolation | None:
    if not is_valid_time(value):
        return BookingViolation(name, "time_format", "Invalid time format (use HH:MM)")
    return None


def check_same_day_times(pickup_time: str, return_time: str) -> BookingViolation | None:
    if time_to_minutes(return_time) <= time_to_minutes(pickup_time):
        return BookingViolation(
            "return_time",
            "same_day_order",
            "Return time must be after pickup time for same-day bookings",
        )
    return None


def check_min_duration(window: TimeWindow, min_duration_minutes: int) -> BookingViolation | None:
    try:
        minutes = compute_duration_minutes(window)
    except InvalidWindow as exc:
        return BookingViolation(exc.field, "invalid_window", exc.message)

    if minutes < min_duration_minutes:
        return BookingViolation(
            "return_time",
            "min_duration",
            f"Minimum rental duration is {_fmt_duration(min_duration_minutes)}",
        )
    return None


def check_location(name: str, value: str) -> BookingViolation | None:
    if value not in VALID_LOCATIONS:
        label = "pickup" if name == "pickup_location" else "return"
        return BookingViolation(name, "invalid_location", f"Invalid {label} location selected")
    return None


def check_availability(
    vehicle_id: str,
    window: TimeWindow,
    existing_bookings: Iterable[BookingInterval],
    exclude_booking_id: str | None = None,
) -> BookingViolation | None:
    """Vehicle should have no confirmed/active booking overlapping the window."""
    conflicts = find_conflicts(vehicle_id, window, existing_bookings, exclude_booking_id)
    if conflicts:
        details = ", ".join(
            f"{b.id} ({b.start:%Y-%m-%d %H:%M} - {b.end:%Y-%m-%d %H:%M})" for b in conflicts
        )
        return BookingViolation(
            "vehicle_id",
            "vehicle_conflict",
            f"Vehicle not available for selected dates. Conflicting bookings: {details}",
        )
    return None
