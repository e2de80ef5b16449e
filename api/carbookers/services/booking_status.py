"""Booking lifecycle guards.

The backend owns status changes; these checks stop the dashboard from
asking for transitions that can never succeed.
"""

from carbookers.models.booking import BookingStatus
from carbookers.services.booking_rules import BookingViolation

ACTION_CONFIRM = "confirm"
ACTION_CANCEL = "cancel"
ACTION_PICKUP = "pickup"
ACTION_RETURN = "return"

# action -> statuses the booking may be in beforehand
_ALLOWED_FROM: dict[str, frozenset[BookingStatus]] = {
    ACTION_CONFIRM: frozenset({BookingStatus.PENDING}),
    ACTION_CANCEL: frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.ACTIVE}),
    ACTION_PICKUP: frozenset({BookingStatus.CONFIRMED}),
    ACTION_RETURN: frozenset({BookingStatus.ACTIVE}),
}

_MESSAGES = {
    ACTION_CONFIRM: "Only pending bookings can be confirmed",
    ACTION_CANCEL: "Booking cannot be cancelled",
    ACTION_PICKUP: "Only confirmed bookings can be picked up",
    ACTION_RETURN: "Only active bookings can be returned",
}

CONTRACT_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.ACTIVE})


def check_transition(status: BookingStatus, action: str) -> BookingViolation | None:
    if action not in _ALLOWED_FROM:
        raise ValueError(f"Unknown booking action: {action!r}")
    if status not in _ALLOWED_FROM[action]:
        return BookingViolation("status", f"{action}_not_allowed", _MESSAGES[action])
    return None


def can_download_contract(status: BookingStatus) -> bool:
    return status in CONTRACT_STATUSES
