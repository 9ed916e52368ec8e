"""
Domain: Inventory state machine.

Owns a vehicle's status field. Every function takes an immutable Vehicle
snapshot and returns a Transition: the new snapshot plus the SaleIntent that
the caller must apply to the sale ledger in the same store transaction.

Legal transitions:
- AVAILABLE | MAINTENANCE -> RESERVED   (reserve; needs customer + deposit > 0)
- RESERVED -> AVAILABLE                 (cancel reservation; clears reservation fields)
- RESERVED -> SOLD                      (complete reservation; needs final price > 0)
- AVAILABLE | MAINTENANCE -> SOLD       (direct sale)
- AVAILABLE <-> MAINTENANCE             (workshop hold / release)

SOLD is terminal. Anything else raises IllegalTransitionError.

No I/O happens here; guards that need the store (customer exists, VIN unique)
belong to the services.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import FrozenSet, Tuple

from .errors import IllegalTransitionError, ValidationError
from .vehicle import Vehicle, VehicleStatus


class SaleIntent(str, Enum):
    """What the sale ledger must do alongside a vehicle transition."""

    NONE = "NONE"
    OPEN_RESERVATION = "OPEN_RESERVATION"
    CANCEL_RESERVATION = "CANCEL_RESERVATION"
    COMPLETE_RESERVATION = "COMPLETE_RESERVATION"
    RECORD_DIRECT_SALE = "RECORD_DIRECT_SALE"


@dataclass(frozen=True, slots=True)
class Transition:
    vehicle: Vehicle
    intent: SaleIntent


_A = VehicleStatus.AVAILABLE
_R = VehicleStatus.RESERVED
_S = VehicleStatus.SOLD
_M = VehicleStatus.MAINTENANCE

LEGAL_TRANSITIONS: FrozenSet[Tuple[VehicleStatus, VehicleStatus]] = frozenset(
    {
        (_A, _R),
        (_M, _R),
        (_R, _A),
        (_R, _S),
        (_A, _S),
        (_M, _S),
        (_A, _M),
        (_M, _A),
    }
)


def can_transition(current: VehicleStatus, target: VehicleStatus) -> bool:
    return (current, target) in LEGAL_TRANSITIONS


def _require_transition(vehicle: Vehicle, target: VehicleStatus) -> None:
    if not can_transition(vehicle.status, target):
        raise IllegalTransitionError(
            f"Vehicle {vehicle.vehicle_id} cannot move from {vehicle.status.value} to {target.value}"
        )


def _require_positive(name: str, amount: Decimal | None) -> Decimal:
    if amount is None or amount <= 0:
        raise ValidationError(f"{name} must be greater than zero", code=f"INVALID_{name.upper()}")
    return amount


def reserve(vehicle: Vehicle, customer_id: str, deposit_amount: Decimal) -> Transition:
    """Place a deposit-backed hold on the vehicle for `customer_id`."""

    if not customer_id or not customer_id.strip():
        raise ValidationError("A reservation must reference a customer", code="CUSTOMER_REQUIRED")
    _require_positive("deposit_amount", deposit_amount)
    _require_transition(vehicle, _R)

    updated = replace(
        vehicle,
        status=_R,
        reserved_customer_id=customer_id.strip(),
        deposit_amount=deposit_amount,
    )
    return Transition(updated, SaleIntent.OPEN_RESERVATION)


def cancel_reservation(vehicle: Vehicle) -> Transition:
    """Put a reserved vehicle back on sale. The open SaleRecord is the caller's to retire."""

    _require_transition(vehicle, _A)
    if vehicle.status is not _R:
        raise IllegalTransitionError(f"Vehicle {vehicle.vehicle_id} is not reserved")

    updated = replace(vehicle, status=_A, reserved_customer_id=None, deposit_amount=None)
    return Transition(updated, SaleIntent.CANCEL_RESERVATION)


def complete_reservation(vehicle: Vehicle, final_price: Decimal) -> Transition:
    """Sell a reserved vehicle. Reservation fields are staging data and are cleared."""

    _require_positive("final_price", final_price)
    if vehicle.status is not _R:
        raise IllegalTransitionError(
            f"Only a reserved vehicle can complete a reservation (vehicle {vehicle.vehicle_id} "
            f"is {vehicle.status.value})"
        )

    updated = replace(vehicle, status=_S, reserved_customer_id=None, deposit_amount=None)
    return Transition(updated, SaleIntent.COMPLETE_RESERVATION)


def direct_sale(vehicle: Vehicle) -> Transition:
    """Sell a vehicle without a prior reservation."""

    if vehicle.status is _R:
        raise IllegalTransitionError(
            f"Vehicle {vehicle.vehicle_id} is reserved; complete or cancel the reservation instead"
        )
    _require_transition(vehicle, _S)
    return Transition(replace(vehicle, status=_S), SaleIntent.RECORD_DIRECT_SALE)


def send_to_maintenance(vehicle: Vehicle) -> Transition:
    _require_transition(vehicle, _M)
    if vehicle.status is not _A:
        raise IllegalTransitionError(f"Only an available vehicle can go to maintenance ({vehicle.vehicle_id})")
    return Transition(replace(vehicle, status=_M), SaleIntent.NONE)


def release_from_maintenance(vehicle: Vehicle) -> Transition:
    if vehicle.status is not _M:
        raise IllegalTransitionError(f"Vehicle {vehicle.vehicle_id} is not in maintenance")
    return Transition(replace(vehicle, status=_A), SaleIntent.NONE)


__all__ = [
    "SaleIntent",
    "Transition",
    "LEGAL_TRANSITIONS",
    "can_transition",
    "reserve",
    "cancel_reservation",
    "complete_reservation",
    "direct_sale",
    "send_to_maintenance",
    "release_from_maintenance",
]
