"""
Report API Endpoints.

Dashboard metrics and the monthly revenue trend.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_report_aggregator
from api.errors import to_http_exception, unexpected_error
from api.models import DashboardResponse, TrendPointResponse, TrendResponse
from domain.errors import DealershipError
from services.report_service import ReportAggregator

router = APIRouter()


@router.get(
    "/reports/dashboard",
    response_model=DashboardResponse,
    summary="Dashboard Snapshot",
    description="Inventory value, status counts, revenue, profit and customer count."
)
def dashboard(aggregator: ReportAggregator = Depends(get_report_aggregator)):
    """
    **Metrics:**
    - inventory_value: listing price of AVAILABLE and RESERVED vehicles
    - revenue / sales_count: completed sale records
    - profit: final price minus vehicle cost (missing cost counts as zero)
    - avg_profit_rate: profit / revenue x 100, one decimal place
    """
    try:
        snapshot = aggregator.compute_snapshot()
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("compute dashboard")
    return DashboardResponse.from_domain(snapshot)


@router.get(
    "/reports/trend",
    response_model=TrendResponse,
    summary="Revenue Trend",
    description="Completed-sale revenue per calendar month, oldest first, ending at the current month."
)
def revenue_trend(
    months: Optional[int] = Query(None, description="Window size in months (default from configuration)"),
    aggregator: ReportAggregator = Depends(get_report_aggregator),
):
    try:
        points = aggregator.compute_trend(months)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("compute revenue trend")
    return TrendResponse(
        months=len(points),
        points=[TrendPointResponse.from_domain(p) for p in points],
    )
