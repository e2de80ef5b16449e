"""Vehicles and customers as seen by the booking rules."""

import enum
from dataclasses import dataclass
from decimal import Decimal


class CustomerStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class Vehicle:
    id: str
    name: str
    brand: str
    daily_rate: Decimal
    available: bool = True
    license_plate: str | None = None

    @property
    def display_name(self) -> str:
        return f"{self.brand} {self.name}".strip()


@dataclass(frozen=True)
class Customer:
    id: str
    first_name: str
    last_name: str
    status: CustomerStatus = CustomerStatus.ACTIVE

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
