"""
Inventory service for vehicle records.

Handles:
- Vehicle intake (VIN uniqueness, optional reservation at creation)
- Attribute updates (VIN uniqueness excluding the vehicle itself, date_added kept)
- Workshop holds (AVAILABLE <-> MAINTENANCE) through the inventory state machine
- Deletion, blocked while any SaleRecord references the vehicle

Reservations and sales are not edited here; they go through SaleWorkflow so
that the ledger stays consistent with the vehicle's status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from domain import inventory_state
from domain.errors import ConflictError, NotFoundError, ValidationError
from domain.time import utc_now
from domain.vehicle import Vehicle, VehicleStatus, normalize_vin
from repositories.store import EntityKind, EntityStore, UnitOfWork
from services.sale_workflow import SaleWorkflow

logger = logging.getLogger(__name__)

# Fields a caller may change through update_vehicle
EDITABLE_FIELDS = (
    "make",
    "model",
    "year",
    "listing_price",
    "cost_price",
    "mileage",
    "color",
    "vin",
    "description",
    "image_url",
)


@dataclass(frozen=True, slots=True)
class VehicleDraft:
    """
    Input for vehicle intake.

    status may be AVAILABLE or MAINTENANCE. Supplying reserved_customer_id and
    deposit_amount creates the vehicle already reserved (with its open
    SaleRecord) in the same transaction.
    """

    make: str
    model: str
    year: int
    listing_price: Decimal
    vin: str
    cost_price: Optional[Decimal] = None
    mileage: Optional[int] = None
    color: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: VehicleStatus = VehicleStatus.AVAILABLE
    reserved_customer_id: Optional[str] = None
    deposit_amount: Optional[Decimal] = None


def _require_text(name: str, value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{name} is required", code="PARAM_ERROR")
    return str(value).strip()


def _find_vin_holder(tx: UnitOfWork | EntityStore, vin: str) -> Optional[Vehicle]:
    holders = tx.query_by_field(EntityKind.VEHICLES, "vin", normalize_vin(vin))
    return holders[0] if holders else None


class InventoryService:
    def __init__(self, store: EntityStore, clock: Callable[[], datetime] = utc_now) -> None:
        self._store = store
        self._clock = clock
        self._workflow = SaleWorkflow(store, clock)

    def get_vehicle(self, vehicle_id: str) -> Vehicle:
        vehicle = self._store.get(EntityKind.VEHICLES, vehicle_id)
        if vehicle is None:
            raise NotFoundError(f"Vehicle not found: {vehicle_id}", code="VEHICLE_NOT_FOUND")
        return vehicle

    def list_vehicles(self, status: Optional[VehicleStatus] = None) -> List[Vehicle]:
        if status is None:
            return self._store.list_all(EntityKind.VEHICLES)
        return self._store.query_by_field(EntityKind.VEHICLES, "status", status)

    def vin_exists(self, vin: str, exclude_id: Optional[str] = None) -> bool:
        """True when a vehicle other than `exclude_id` already holds `vin`."""

        vin = _require_text("vin", vin)
        holder = _find_vin_holder(self._store, vin)
        return holder is not None and holder.vehicle_id != exclude_id

    def create_vehicle(self, draft: VehicleDraft) -> Vehicle:
        make = _require_text("make", draft.make)
        model = _require_text("model", draft.model)
        vin = normalize_vin(_require_text("vin", draft.vin))
        if draft.year is None:
            raise ValidationError("year is required", code="PARAM_ERROR")
        if draft.listing_price is None:
            raise ValidationError("listing_price is required", code="PARAM_ERROR")
        if draft.status not in (VehicleStatus.AVAILABLE, VehicleStatus.MAINTENANCE):
            raise ValidationError(
                "A new vehicle starts AVAILABLE or MAINTENANCE; reserve it by supplying "
                "reserved_customer_id and deposit_amount",
                code="INVALID_STATUS",
            )

        wants_reservation = draft.reserved_customer_id is not None or draft.deposit_amount is not None
        if wants_reservation:
            if not draft.reserved_customer_id or not draft.reserved_customer_id.strip():
                raise ValidationError("A reservation must reference a customer", code="CUSTOMER_REQUIRED")
            if draft.deposit_amount is None or Decimal(str(draft.deposit_amount)) <= 0:
                raise ValidationError("A reservation needs a positive deposit", code="DEPOSIT_REQUIRED")

        vehicle = Vehicle(
            vehicle_id=str(uuid4()),
            make=make,
            model=model,
            year=int(draft.year),
            listing_price=Decimal(str(draft.listing_price)),
            cost_price=Decimal(str(draft.cost_price)) if draft.cost_price is not None else None,
            mileage=draft.mileage,
            color=draft.color,
            vin=vin,
            status=draft.status,
            description=draft.description,
            image_url=draft.image_url,
            date_added=self._clock(),
        )

        def apply(tx: UnitOfWork) -> Vehicle:
            if _find_vin_holder(tx, vin) is not None:
                raise ConflictError("VIN already exists", code="VIN_DUPLICATE")
            tx.put(EntityKind.VEHICLES, vehicle)
            if not wants_reservation:
                return vehicle
            outcome = self._workflow.reserve_in_transaction(
                tx,
                vehicle.vehicle_id,
                draft.reserved_customer_id.strip(),
                Decimal(str(draft.deposit_amount)),
                None,
                None,
            )
            return outcome.vehicle

        created = self._store.with_transaction(apply)
        logger.info(
            "Vehicle added to inventory",
            extra={"vehicle_id": created.vehicle_id, "vin": created.vin, "vehicle_status": created.status.value},
        )
        return created

    def update_vehicle(self, vehicle_id: str, changes: Dict[str, Any]) -> Vehicle:
        """
        Apply attribute changes and, optionally, a workshop status change.

        `changes` may hold any of EDITABLE_FIELDS plus `status`. Only
        AVAILABLE <-> MAINTENANCE can be requested here; any other status
        change is rejected as an illegal transition.
        """

        unknown = set(changes) - set(EDITABLE_FIELDS) - {"status"}
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}", code="PARAM_ERROR")

        attributes = {name: value for name, value in changes.items() if name in EDITABLE_FIELDS}
        for name in ("make", "model", "vin"):
            if name in attributes:
                attributes[name] = _require_text(name, attributes[name])
        for name in ("year", "listing_price"):
            if name in attributes and attributes[name] is None:
                raise ValidationError(f"{name} is required", code="PARAM_ERROR")
        target_status = changes.get("status")

        def apply(tx: UnitOfWork) -> Vehicle:
            current = tx.get(EntityKind.VEHICLES, vehicle_id)
            if current is None:
                raise NotFoundError(f"Vehicle not found: {vehicle_id}", code="VEHICLE_NOT_FOUND")

            if "vin" in attributes:
                holder = _find_vin_holder(tx, attributes["vin"])
                if holder is not None and holder.vehicle_id != vehicle_id:
                    raise ConflictError("VIN already exists", code="VIN_DUPLICATE")

            updated = current.with_changes(**attributes)
            if target_status is not None and VehicleStatus(target_status) is not current.status:
                updated = self._workshop_transition(updated, VehicleStatus(target_status))

            tx.put(EntityKind.VEHICLES, updated)
            return updated

        return self._store.with_transaction(apply)

    @staticmethod
    def _workshop_transition(vehicle: Vehicle, target: VehicleStatus) -> Vehicle:
        if target is VehicleStatus.MAINTENANCE:
            return inventory_state.send_to_maintenance(vehicle).vehicle
        if target is VehicleStatus.AVAILABLE and vehicle.status is VehicleStatus.MAINTENANCE:
            return inventory_state.release_from_maintenance(vehicle).vehicle
        raise ConflictError(
            f"Status {vehicle.status.value} -> {target.value} must go through the sale workflow",
            code="ILLEGAL_STATE",
        )

    def delete_vehicle(self, vehicle_id: str) -> None:
        """Delete a vehicle. Fails with ConflictError while a SaleRecord references it."""

        def apply(tx: UnitOfWork) -> None:
            if tx.get(EntityKind.VEHICLES, vehicle_id) is None:
                raise NotFoundError(f"Vehicle not found: {vehicle_id}", code="VEHICLE_NOT_FOUND")
            if tx.query_by_field(EntityKind.SALE_RECORDS, "vehicle_id", vehicle_id):
                raise ConflictError(
                    f"Vehicle {vehicle_id} is referenced by sale records and cannot be deleted",
                    code="REFERENCED",
                )
            tx.delete(EntityKind.VEHICLES, vehicle_id)

        self._store.with_transaction(apply)
        logger.info("Vehicle deleted", extra={"vehicle_id": vehicle_id})


__all__ = ["InventoryService", "VehicleDraft", "EDITABLE_FIELDS"]
