#!/usr/bin/env python3
"""
Check inventory status - vehicles per status, sales totals and recent revenue.

Usage:
    python scripts/check_inventory_status.py
    python scripts/check_inventory_status.py --months 12
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from domain.vehicle import VehicleStatus
from repositories.config import load_settings
from repositories.factory import create_store
from services.report_service import ReportAggregator


def check_inventory_status(months: int | None = None) -> None:
    """Print the dashboard snapshot and the monthly revenue trend."""

    settings = load_settings()
    aggregator = ReportAggregator(
        create_store(settings),
        tz=settings.timezone,
        default_window=settings.trend_months,
    )
    snapshot = aggregator.compute_snapshot()

    print("=" * 50)
    print("INVENTORY STATUS")
    print("=" * 50)
    print(f"Total vehicles:            {snapshot.inventory_count}")
    for status in VehicleStatus:
        print(f"{status.value.title() + ':':<27}{snapshot.status_counts[status]}")
    print(f"Inventory value:           {snapshot.inventory_value}")
    print("=" * 50)

    print(f"Completed sales:           {snapshot.sales_count}")
    print(f"Revenue:                   {snapshot.revenue}")
    print(f"Profit:                    {snapshot.profit}")
    print(f"Average profit rate:       {snapshot.avg_profit_rate}%")
    print(f"Customers:                 {snapshot.customer_count}")

    print("\nRevenue by month:")
    print("-" * 50)
    for point in aggregator.compute_trend(months):
        print(f"{point.label}: {point.revenue}")
    print("-" * 50)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Print inventory and sales status")
    parser.add_argument("--months", type=int, default=None, help="Trend window in months")
    args = parser.parse_args()
    check_inventory_status(args.months)
