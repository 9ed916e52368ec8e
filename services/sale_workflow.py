"""
Sale workflow service.

Orchestrates the four ways a vehicle changes hands:
- create_direct_sale: AVAILABLE|MAINTENANCE -> SOLD plus a COMPLETED SaleRecord
- reserve: AVAILABLE|MAINTENANCE -> RESERVED plus a RESERVED SaleRecord
- cancel_reservation: RESERVED -> AVAILABLE, open SaleRecord marked CANCELLED
- complete_reservation: RESERVED -> SOLD, open SaleRecord marked COMPLETED

Each operation:
1. Validates its input (fail fast, before touching the store)
2. Opens one store transaction
3. Reads the vehicle and runs the inventory state machine
4. Applies the resulting SaleIntent to the ledger
5. Writes vehicle and SaleRecord together

Either both writes land or neither does. When two callers race on the same
vehicle, the store's version check lets exactly one commit; the other gets a
ConflictError and is not retried here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional
from uuid import uuid4

from domain import inventory_state
from domain.customer import Customer
from domain.errors import ConflictError, NotFoundError, StorageError, ValidationError
from domain.inventory_state import SaleIntent, Transition
from domain.sale import SaleRecord, SaleStatus
from domain.time import utc_now
from domain.vehicle import Vehicle, VehicleStatus
from repositories.store import EntityKind, EntityStore, UnitOfWork

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SaleOutcome:
    """Vehicle and SaleRecord as committed by one workflow operation."""

    vehicle: Vehicle
    sale_record: SaleRecord


def _positive_amount(name: str, value: Decimal | int | str | None) -> Decimal:
    if value is None:
        raise ValidationError(f"{name} is required", code=f"{name.upper()}_REQUIRED")
    try:
        amount = Decimal(str(value))
    except ArithmeticError:
        raise ValidationError(f"{name} must be a number", code=f"INVALID_{name.upper()}") from None
    if not amount.is_finite() or amount <= 0:
        raise ValidationError(f"{name} must be greater than zero", code=f"INVALID_{name.upper()}")
    return amount


def _required_id(name: str, value: Optional[str]) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{name} is required", code=f"{name.upper()}_REQUIRED")
    return str(value).strip()


def _optional_id(value: Optional[str]) -> Optional[str]:
    """Blank handler ids are treated as absent."""

    if value is None or not value.strip():
        return None
    return value.strip()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def open_reservations(tx: UnitOfWork | EntityStore, vehicle_id: str) -> List[SaleRecord]:
    """All RESERVED SaleRecords for a vehicle (derived index vehicle_id -> open record)."""

    return [
        sale
        for sale in tx.query_by_field(EntityKind.SALE_RECORDS, "vehicle_id", vehicle_id)
        if sale.status is SaleStatus.RESERVED
    ]


class SaleWorkflow:
    def __init__(self, store: EntityStore, clock: Callable[[], datetime] = utc_now) -> None:
        self._store = store
        self._clock = clock

    # -- lookups inside a transaction ------------------------------------

    @staticmethod
    def _vehicle(tx: UnitOfWork, vehicle_id: str) -> Vehicle:
        vehicle = tx.get(EntityKind.VEHICLES, vehicle_id)
        if vehicle is None:
            raise NotFoundError(f"Vehicle not found: {vehicle_id}", code="VEHICLE_NOT_FOUND")
        return vehicle

    @staticmethod
    def _customer(tx: UnitOfWork, customer_id: str) -> Customer:
        customer = tx.get(EntityKind.CUSTOMERS, customer_id)
        if customer is None:
            raise NotFoundError(f"Customer not found: {customer_id}", code="CUSTOMER_NOT_FOUND")
        return customer

    @staticmethod
    def _check_handler(tx: UnitOfWork, handled_by_user_id: Optional[str]) -> None:
        if handled_by_user_id is not None and tx.get(EntityKind.USERS, handled_by_user_id) is None:
            raise ConflictError(f"Handler does not exist: {handled_by_user_id}", code="HANDLER_NOT_FOUND")

    @staticmethod
    def _single_open_reservation(tx: UnitOfWork, vehicle_id: str) -> SaleRecord:
        records = open_reservations(tx, vehicle_id)
        if not records:
            raise NotFoundError(f"No open reservation for vehicle {vehicle_id}", code="RESERVATION_NOT_FOUND")
        if len(records) > 1:
            logger.error(
                "Multiple open reservations for one vehicle",
                extra={"vehicle_id": vehicle_id, "sale_ids": [r.sale_id for r in records]},
            )
            raise StorageError(f"Ledger holds {len(records)} open reservations for vehicle {vehicle_id}")
        return records[0]

    def _log(self, event: str, outcome: SaleOutcome) -> None:
        logger.info(
            "Sale workflow committed %s",
            event,
            extra={
                "event": event,
                "vehicle_id": outcome.vehicle.vehicle_id,
                "sale_id": outcome.sale_record.sale_id,
                "vehicle_status": outcome.vehicle.status.value,
                "sale_status": outcome.sale_record.status.value,
            },
        )

    # -- operations ------------------------------------------------------

    def create_direct_sale(
        self,
        vehicle_id: str,
        customer_id: str,
        price: Decimal | int | str,
        handled_by_user_id: Optional[str] = None,
        transaction_date: Optional[datetime] = None,
    ) -> SaleOutcome:
        """
        Sell a vehicle without a prior reservation.

        Raises:
            ValidationError: price missing or not positive
            NotFoundError: vehicle or customer missing
            ConflictError: vehicle already SOLD or RESERVED, unknown handler,
                or a concurrent change won the race
        """

        vehicle_id = _required_id("vehicle_id", vehicle_id)
        customer_id = _required_id("customer_id", customer_id)
        amount = _positive_amount("price", price)
        handler = _optional_id(handled_by_user_id)
        sold_at = _as_utc(transaction_date) if transaction_date is not None else self._clock()

        def apply(tx: UnitOfWork) -> SaleOutcome:
            vehicle = self._vehicle(tx, vehicle_id)
            if vehicle.status is VehicleStatus.SOLD:
                raise ConflictError(f"Vehicle {vehicle_id} is already sold", code="VEHICLE_SOLD")
            self._customer(tx, customer_id)
            self._check_handler(tx, handler)

            transition = inventory_state.direct_sale(vehicle)
            sale = SaleRecord(
                sale_id=str(uuid4()),
                vehicle_id=vehicle_id,
                customer_id=customer_id,
                agreed_price=amount,
                final_price=amount,
                status=SaleStatus.COMPLETED,
                transaction_date=sold_at,
                handled_by_user_id=handler,
            )
            return self._commit(tx, transition, sale)

        outcome = self._store.with_transaction(apply)
        self._log("direct_sale", outcome)
        return outcome

    def reserve(
        self,
        vehicle_id: str,
        customer_id: str,
        deposit_amount: Decimal | int | str,
        asking_price: Decimal | int | str | None = None,
        handled_by_user_id: Optional[str] = None,
    ) -> SaleOutcome:
        """
        Place a deposit-backed hold on an AVAILABLE or MAINTENANCE vehicle.

        The RESERVED SaleRecord's agreed price is the asking price when given,
        otherwise the vehicle's listing price.
        """

        vehicle_id = _required_id("vehicle_id", vehicle_id)
        customer_id = _required_id("customer_id", customer_id)
        deposit = _positive_amount("deposit_amount", deposit_amount)
        agreed = _positive_amount("asking_price", asking_price) if asking_price is not None else None
        handler = _optional_id(handled_by_user_id)

        outcome = self._store.with_transaction(
            lambda tx: self.reserve_in_transaction(tx, vehicle_id, customer_id, deposit, agreed, handler)
        )
        self._log("reserve", outcome)
        return outcome

    def reserve_in_transaction(
        self,
        tx: UnitOfWork,
        vehicle_id: str,
        customer_id: str,
        deposit: Decimal,
        agreed: Optional[Decimal],
        handler: Optional[str],
    ) -> SaleOutcome:
        """Reservation body, reusable by callers that already hold a transaction."""

        vehicle = self._vehicle(tx, vehicle_id)
        self._customer(tx, customer_id)
        self._check_handler(tx, handler)

        transition = inventory_state.reserve(vehicle, customer_id, deposit)
        if open_reservations(tx, vehicle_id):
            raise ConflictError(f"Vehicle {vehicle_id} already has an open reservation", code="ALREADY_RESERVED")

        sale = SaleRecord(
            sale_id=str(uuid4()),
            vehicle_id=vehicle_id,
            customer_id=customer_id,
            agreed_price=agreed if agreed is not None else vehicle.listing_price,
            deposit_amount=deposit,
            status=SaleStatus.RESERVED,
            transaction_date=self._clock(),
            handled_by_user_id=handler,
        )
        return self._commit(tx, transition, sale)

    def cancel_reservation(self, vehicle_id: str) -> SaleOutcome:
        """Return a reserved vehicle to AVAILABLE and mark its open SaleRecord CANCELLED."""

        vehicle_id = _required_id("vehicle_id", vehicle_id)

        def apply(tx: UnitOfWork) -> SaleOutcome:
            vehicle = self._vehicle(tx, vehicle_id)
            transition = inventory_state.cancel_reservation(vehicle)
            sale = self._single_open_reservation(tx, vehicle_id).cancelled()
            return self._commit(tx, transition, sale)

        outcome = self._store.with_transaction(apply)
        self._log("cancel_reservation", outcome)
        return outcome

    def complete_reservation(
        self,
        vehicle_id: str,
        final_price: Decimal | int | str,
        handled_by_user_id: Optional[str] = None,
    ) -> SaleOutcome:
        """
        Finalize a reservation: SaleRecord -> COMPLETED, vehicle -> SOLD.

        Raises:
            NotFoundError: vehicle missing or no open reservation
            ConflictError: final price missing or not positive
                (INVALID_FINAL_PRICE), or vehicle not RESERVED (e.g. already
                completed)
        """

        vehicle_id = _required_id("vehicle_id", vehicle_id)
        try:
            amount = _positive_amount("final_price", final_price)
        except ValidationError as e:
            raise ConflictError(e.message, code="INVALID_FINAL_PRICE") from None
        handler = _optional_id(handled_by_user_id)

        def apply(tx: UnitOfWork) -> SaleOutcome:
            vehicle = self._vehicle(tx, vehicle_id)
            self._check_handler(tx, handler)
            transition = inventory_state.complete_reservation(vehicle, amount)
            open_sale = self._single_open_reservation(tx, vehicle_id)
            sale = open_sale.completed(amount, self._clock(), handler)
            return self._commit(tx, transition, sale)

        outcome = self._store.with_transaction(apply)
        self._log("complete_reservation", outcome)
        return outcome

    def get_sale(self, sale_id: str) -> SaleRecord:
        sale = self._store.get(EntityKind.SALE_RECORDS, sale_id)
        if sale is None:
            raise NotFoundError(f"Sale record not found: {sale_id}", code="SALE_NOT_FOUND")
        return sale

    def open_reservation(self, vehicle_id: str) -> Optional[SaleRecord]:
        """The open SaleRecord for a vehicle, or None."""

        records = open_reservations(self._store, vehicle_id)
        return records[0] if records else None

    # -- commit ----------------------------------------------------------

    @staticmethod
    def _commit(tx: UnitOfWork, transition: Transition, sale: SaleRecord) -> SaleOutcome:
        expected = {
            SaleIntent.OPEN_RESERVATION: SaleStatus.RESERVED,
            SaleIntent.CANCEL_RESERVATION: SaleStatus.CANCELLED,
            SaleIntent.COMPLETE_RESERVATION: SaleStatus.COMPLETED,
            SaleIntent.RECORD_DIRECT_SALE: SaleStatus.COMPLETED,
        }.get(transition.intent)
        if expected is None or sale.status is not expected:
            raise StorageError(
                f"SaleRecord status {sale.status.value} does not match intent {transition.intent.value}"
            )

        # Vehicle first: the sale row references it.
        tx.put(EntityKind.VEHICLES, transition.vehicle)
        tx.put(EntityKind.SALE_RECORDS, sale)
        return SaleOutcome(vehicle=transition.vehicle, sale_record=sale)


__all__ = ["SaleWorkflow", "SaleOutcome", "open_reservations"]
