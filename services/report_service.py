"""
Reporting service for the sales dashboard.

Two read-only reports over the vehicle and sale ledger:
- Dashboard snapshot: inventory value and counts, revenue, profit and margin,
  customer count
- Revenue trend: completed-sale revenue per calendar month over a trailing window

Missing cross-references (a sale whose vehicle is gone, a vehicle without a
cost price) contribute zero to profit and are logged at WARNING, so the
dashboard stays available on a partially inconsistent dataset.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, Iterable, List, Optional

from domain.errors import DealershipError, StorageError, ValidationError
from domain.sale import SaleRecord, SaleStatus
from domain.time import month_window, trailing_months, utc_now
from domain.vehicle import Vehicle, VehicleStatus
from repositories.store import EntityKind, EntityStore

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
ONE_DECIMAL = Decimal("0.1")

# Statuses whose listing price counts towards inventory value
VALUED_STATUSES = (VehicleStatus.AVAILABLE, VehicleStatus.RESERVED)


@dataclass(frozen=True, slots=True)
class DashboardSnapshot:
    """
    Point-in-time business metrics.

    avg_profit_rate is a percentage rounded half-up to one decimal place
    (0 when there is no revenue).
    """

    inventory_value: Decimal
    inventory_count: int
    status_counts: Dict[VehicleStatus, int]
    revenue: Decimal
    sales_count: int
    profit: Decimal
    avg_profit_rate: Decimal
    customer_count: int


@dataclass(frozen=True, slots=True)
class TrendPoint:
    label: str  # YYYY-MM
    revenue: Decimal


def profit_rate(profit: Decimal, revenue: Decimal) -> Decimal:
    if revenue <= 0:
        return ZERO.quantize(ONE_DECIMAL)
    return (profit / revenue * 100).quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP)


def _sale_profit(sale: SaleRecord, vehicle: Optional[Vehicle]) -> Decimal:
    if vehicle is None:
        logger.warning(
            "Sale references a missing vehicle; profit contribution is zero",
            extra={"sale_id": sale.sale_id, "vehicle_id": sale.vehicle_id},
        )
        return ZERO
    if vehicle.cost_price is None:
        logger.warning(
            "Vehicle has no cost price; profit contribution is zero",
            extra={"sale_id": sale.sale_id, "vehicle_id": sale.vehicle_id},
        )
        return ZERO
    return sale.effective_price - vehicle.cost_price


def build_snapshot(
    vehicles: Iterable[Vehicle],
    sales: Iterable[SaleRecord],
    customer_count: int,
) -> DashboardSnapshot:
    """Aggregate one consistent read of vehicles and sale records."""

    vehicles = list(vehicles)
    by_id = {vehicle.vehicle_id: vehicle for vehicle in vehicles}

    status_counts = {status: 0 for status in VehicleStatus}
    inventory_value = ZERO
    for vehicle in vehicles:
        status_counts[vehicle.status] += 1
        if vehicle.status in VALUED_STATUSES:
            inventory_value += vehicle.listing_price

    revenue = ZERO
    profit = ZERO
    sales_count = 0
    for sale in sales:
        if sale.status is not SaleStatus.COMPLETED:
            continue
        sales_count += 1
        revenue += sale.effective_price
        profit += _sale_profit(sale, by_id.get(sale.vehicle_id))

    return DashboardSnapshot(
        inventory_value=inventory_value,
        inventory_count=len(vehicles),
        status_counts=status_counts,
        revenue=revenue,
        sales_count=sales_count,
        profit=profit,
        avg_profit_rate=profit_rate(profit, revenue),
        customer_count=customer_count,
    )


def build_trend(
    sales: Iterable[SaleRecord],
    now: datetime,
    window_months: int,
    tz: tzinfo,
) -> List[TrendPoint]:
    """Monthly completed-sale revenue, oldest month first, zero-revenue months included."""

    if window_months < 1:
        raise ValidationError("window_months must be at least 1", code="INVALID_WINDOW")

    completed = [sale for sale in sales if sale.status is SaleStatus.COMPLETED]
    points: List[TrendPoint] = []
    for year, month in trailing_months(now, window_months, tz):
        start, end = month_window(year, month, tz)
        revenue = sum(
            (sale.effective_price for sale in completed if start <= sale.transaction_date <= end),
            ZERO,
        )
        points.append(TrendPoint(label=f"{year:04d}-{month:02d}", revenue=revenue))
    return points


class ReportAggregator:
    def __init__(
        self,
        store: EntityStore,
        clock: Callable[[], datetime] = utc_now,
        tz: Optional[tzinfo] = None,
        default_window: int = 6,
    ) -> None:
        self._store = store
        self._clock = clock
        self._tz = tz or timezone.utc
        self._default_window = default_window

    def compute_snapshot(self) -> DashboardSnapshot:
        """
        Raises:
            StorageError: reading the store failed
        """

        try:
            data = self._store.snapshot(EntityKind.VEHICLES, EntityKind.SALE_RECORDS, EntityKind.CUSTOMERS)
            return build_snapshot(
                data[EntityKind.VEHICLES],
                data[EntityKind.SALE_RECORDS],
                len(data[EntityKind.CUSTOMERS]),
            )
        except DealershipError:
            raise
        except Exception as e:
            logger.exception("Dashboard snapshot failed")
            raise StorageError(f"Failed to compute dashboard snapshot: {e}") from e

    def compute_trend(self, window_months: Optional[int] = None) -> List[TrendPoint]:
        """
        Revenue per month for the trailing window ending at the current month.

        Raises:
            ValidationError: window_months < 1
            StorageError: reading the store failed
        """

        window = self._default_window if window_months is None else window_months
        if window < 1:
            raise ValidationError("window_months must be at least 1", code="INVALID_WINDOW")

        try:
            sales = self._store.query_by_field(EntityKind.SALE_RECORDS, "status", SaleStatus.COMPLETED)
            return build_trend(sales, self._clock(), window, self._tz)
        except DealershipError:
            raise
        except Exception as e:
            logger.exception("Revenue trend failed", extra={"window_months": window})
            raise StorageError(f"Failed to compute revenue trend: {e}") from e


__all__ = [
    "DashboardSnapshot",
    "TrendPoint",
    "ReportAggregator",
    "build_snapshot",
    "build_trend",
    "profit_rate",
]
