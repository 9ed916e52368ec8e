"""
Domain: Vehicles held in the dealership inventory.

Contract excerpts implemented here:
- A vehicle is in exactly one of AVAILABLE, RESERVED, SOLD, MAINTENANCE.
- status == RESERVED iff reserved_customer_id is set AND deposit_amount is set and > 0.
  In every other status both fields are None.
- VIN is globally unique (enforced by the inventory service and the store);
  this module only normalises it.
- date_added is immutable once set.

This module contains only pure domain entities/value objects: no I/O, no database, no frameworks.
Status changes are performed by `domain.inventory_state`, which returns new snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .errors import ValidationError
from .time import require_utc_timestamp


class VehicleStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    SOLD = "SOLD"
    MAINTENANCE = "MAINTENANCE"


def normalize_vin(vin: str) -> str:
    return vin.strip().upper()


@dataclass(frozen=True, slots=True)
class Vehicle:
    """
    Immutable snapshot of a vehicle.

    Mutations return a new instance (see `with_changes` and the transition
    functions in `domain.inventory_state`).
    """

    vehicle_id: str
    make: str
    model: str
    year: int
    listing_price: Decimal
    vin: str
    date_added: datetime
    status: VehicleStatus = VehicleStatus.AVAILABLE
    cost_price: Optional[Decimal] = None
    mileage: Optional[int] = None
    color: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None

    # Reservation staging data (only while RESERVED)
    reserved_customer_id: Optional[str] = None
    deposit_amount: Optional[Decimal] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("date_added", self.date_added)
        if not self.vin or not self.vin.strip():
            raise ValidationError("VIN is required", code="VIN_REQUIRED")
        if self.listing_price < 0:
            raise ValidationError("listing_price must not be negative", code="INVALID_PRICE")
        if self.cost_price is not None and self.cost_price < 0:
            raise ValidationError("cost_price must not be negative", code="INVALID_PRICE")
        self._check_reservation_fields()

    def _check_reservation_fields(self) -> None:
        has_customer = bool(self.reserved_customer_id)
        has_deposit = self.deposit_amount is not None and self.deposit_amount > 0

        if self.status is VehicleStatus.RESERVED:
            if not has_customer:
                raise ValidationError("A reserved vehicle must reference a customer", code="CUSTOMER_REQUIRED")
            if not has_deposit:
                raise ValidationError("A reserved vehicle must carry a positive deposit", code="DEPOSIT_REQUIRED")
        elif self.reserved_customer_id is not None or self.deposit_amount is not None:
            raise ValidationError(
                f"Reservation fields must be empty while {self.status.value}",
                code="RESERVATION_FIELDS_SET",
            )

    @property
    def display_name(self) -> str:
        """`"{year} {make} {model}"`, the text matched by vehicle searches."""

        return f"{self.year} {self.make} {self.model}"

    @property
    def is_on_sale(self) -> bool:
        return self.status in (VehicleStatus.AVAILABLE, VehicleStatus.RESERVED)

    def with_changes(self, **changes) -> "Vehicle":
        """Return a copy with attribute changes applied; identity and date_added never change."""

        changes.pop("vehicle_id", None)
        changes.pop("date_added", None)
        if "vin" in changes and changes["vin"] is not None:
            changes["vin"] = normalize_vin(changes["vin"])
        return replace(self, **changes)


__all__ = ["VehicleStatus", "Vehicle", "normalize_vin"]
