"""Domain records shared by the services and routes."""

from carbookers.models.booking import (
    BLOCKING_STATUSES,
    BookingForm,
    BookingInterval,
    BookingSource,
    BookingStatus,
    PickupLocation,
    TimeWindow,
    WebsiteBookingForm,
)
from carbookers.models.fleet import Customer, CustomerStatus, Vehicle

__all__ = [
    "BLOCKING_STATUSES",
    "BookingForm",
    "BookingInterval",
    "BookingSource",
    "BookingStatus",
    "PickupLocation",
    "TimeWindow",
    "WebsiteBookingForm",
    "Customer",
    "CustomerStatus",
    "Vehicle",
]
