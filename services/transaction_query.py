"""
Transaction search over the sale ledger.

Every criterion is optional and they are AND-combined. Blank strings count as
"not given". Vehicle and customer references are resolved once per search so
the descriptor filters and the caller both see the joined entities.

Price matching depends on the record's status:
- COMPLETED (and CANCELLED): final price, falling back to agreed price
- RESERVED: deposit amount, falling back to agreed price

Date bounds are calendar days (YYYY-MM-DD) in the business time zone,
inclusive from 00:00:00 on the start day to 23:59:59 on the end day. A
malformed date leaves that bound unconstrained.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from domain.customer import Customer
from domain.sale import SaleRecord, SaleStatus
from domain.time import end_of_day, parse_calendar_day, start_of_day
from domain.vehicle import Vehicle
from repositories.store import EntityKind, EntityStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransactionSearchCriteria:
    status: Optional[SaleStatus] = None
    order_id: Optional[str] = None
    vehicle_descriptor: Optional[str] = None
    customer_descriptor: Optional[str] = None
    price: Optional[Decimal] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


@dataclass(frozen=True, slots=True)
class TransactionView:
    """A sale record joined with its vehicle and customer (either may be None)."""

    sale: SaleRecord
    vehicle: Optional[Vehicle]
    customer: Optional[Customer]


def _text(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value.strip().lower()


def _price(value: Decimal | str | None) -> Optional[Decimal]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        amount = None
    if amount is None or not amount.is_finite():
        logger.debug("Ignoring malformed price filter", extra={"price": value})
        return None
    return amount


def _bound(text: Optional[str], name: str, tz: tzinfo, end: bool) -> Optional[datetime]:
    if text is None or not text.strip():
        return None
    day = parse_calendar_day(text)
    if day is None:
        logger.debug("Ignoring malformed date filter", extra={"field": name, "value": text})
        return None
    return end_of_day(day, tz) if end else start_of_day(day, tz)


def price_matches(sale: SaleRecord, price: Decimal) -> bool:
    if sale.status is SaleStatus.RESERVED:
        candidate = sale.deposit_amount if sale.deposit_amount is not None else sale.agreed_price
    else:
        candidate = sale.effective_price
    return candidate == price


def search_transactions(
    store: EntityStore,
    criteria: TransactionSearchCriteria,
    tz: Optional[tzinfo] = None,
) -> List[TransactionView]:
    """
    Filter sale records by `criteria`.

    Results follow the store's order; callers needing a particular order sort
    afterwards.
    """

    tz = tz or timezone.utc
    order_id = _text(criteria.order_id)
    vehicle_text = _text(criteria.vehicle_descriptor)
    customer_text = _text(criteria.customer_descriptor)
    price = _price(criteria.price)
    start = _bound(criteria.start_date, "start_date", tz, end=False)
    end = _bound(criteria.end_date, "end_date", tz, end=True)

    data = store.snapshot(EntityKind.SALE_RECORDS, EntityKind.VEHICLES, EntityKind.CUSTOMERS)
    vehicles: Dict[str, Vehicle] = {v.vehicle_id: v for v in data[EntityKind.VEHICLES]}
    customers: Dict[str, Customer] = {c.customer_id: c for c in data[EntityKind.CUSTOMERS]}

    results: List[TransactionView] = []
    for sale in data[EntityKind.SALE_RECORDS]:
        if criteria.status is not None and sale.status is not SaleStatus(criteria.status):
            continue
        if order_id is not None and order_id not in sale.sale_id.lower():
            continue

        vehicle = vehicles.get(sale.vehicle_id)
        if vehicle_text is not None and (vehicle is None or vehicle_text not in vehicle.display_name.lower()):
            continue

        customer = customers.get(sale.customer_id)
        if customer_text is not None and (customer is None or customer_text not in customer.display_name.lower()):
            continue

        if price is not None and not price_matches(sale, price):
            continue
        if start is not None and sale.transaction_date < start:
            continue
        if end is not None and sale.transaction_date > end:
            continue

        results.append(TransactionView(sale=sale, vehicle=vehicle, customer=customer))

    logger.debug("Transaction search", extra={"matches": len(results)})
    return results


__all__ = [
    "TransactionSearchCriteria",
    "TransactionView",
    "search_transactions",
    "price_matches",
]
