"""
Sales API Endpoints.

Endpoints for the sale lifecycle (direct sale, reserve, cancel, complete)
and for searching and exporting the transaction ledger.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from api.dependencies import get_sale_workflow, get_settings, get_store
from api.errors import to_http_exception, unexpected_error
from api.models import (
    CompleteReservationRequest,
    DirectSaleRequest,
    ReservationRequest,
    SaleOutcomeResponse,
    SaleRecordResponse,
    TransactionListResponse,
    TransactionResponse,
)
from domain.errors import DealershipError
from domain.sale import SaleStatus
from repositories.config import Settings
from repositories.store import EntityKind, EntityStore
from services.csv_export_service import generate_transactions_csv
from services.sale_workflow import SaleWorkflow
from services.transaction_query import TransactionSearchCriteria, search_transactions

router = APIRouter()


def _criteria(
    status: Optional[SaleStatus] = Query(None, description="RESERVED, COMPLETED or CANCELLED"),
    order_id: Optional[str] = Query(None, description="Substring of the sale id"),
    vehicle: Optional[str] = Query(None, description="Substring of '{year} {make} {model}'"),
    customer: Optional[str] = Query(None, description="Substring of '{name} {phone}'"),
    price: Optional[str] = Query(None, description="Exact price (final/agreed or deposit/agreed)"),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
) -> TransactionSearchCriteria:
    return TransactionSearchCriteria(
        status=status,
        order_id=order_id,
        vehicle_descriptor=vehicle,
        customer_descriptor=customer,
        price=price,
        start_date=start_date,
        end_date=end_date,
    )


def _filters_applied(criteria: TransactionSearchCriteria) -> dict:
    applied = {
        "status": criteria.status.value if criteria.status else None,
        "order_id": criteria.order_id,
        "vehicle": criteria.vehicle_descriptor,
        "customer": criteria.customer_descriptor,
        "price": criteria.price,
        "start_date": criteria.start_date,
        "end_date": criteria.end_date,
    }
    return {name: value for name, value in applied.items() if value not in (None, "")}


@router.post(
    "/sales",
    response_model=SaleOutcomeResponse,
    status_code=201,
    summary="Direct Sale",
    description="Sell an AVAILABLE or MAINTENANCE vehicle without a prior reservation."
)
def create_direct_sale(
    request: DirectSaleRequest,
    workflow: SaleWorkflow = Depends(get_sale_workflow),
):
    """
    Record a completed sale and mark the vehicle SOLD in one transaction.

    **Errors:**
    - 400: price missing or not positive
    - 404: vehicle or customer not found
    - 409: vehicle already sold or reserved, unknown handler, or another
      request changed the vehicle first
    """
    try:
        outcome = workflow.create_direct_sale(
            vehicle_id=request.vehicle_id,
            customer_id=request.customer_id,
            price=request.price,
            handled_by_user_id=request.handled_by_user_id,
            transaction_date=request.transaction_date,
        )
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("record direct sale")
    return SaleOutcomeResponse.from_domain(outcome)


@router.post(
    "/vehicles/{vehicle_id}/reservation",
    response_model=SaleOutcomeResponse,
    status_code=201,
    summary="Reserve Vehicle",
    description="Place a deposit-backed hold on a vehicle for a customer."
)
def reserve_vehicle(
    vehicle_id: str,
    request: ReservationRequest,
    workflow: SaleWorkflow = Depends(get_sale_workflow),
):
    try:
        outcome = workflow.reserve(
            vehicle_id=vehicle_id,
            customer_id=request.customer_id,
            deposit_amount=request.deposit_amount,
            asking_price=request.asking_price,
            handled_by_user_id=request.handled_by_user_id,
        )
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("reserve vehicle")
    return SaleOutcomeResponse.from_domain(outcome)


@router.delete(
    "/vehicles/{vehicle_id}/reservation",
    response_model=SaleOutcomeResponse,
    summary="Cancel Reservation",
    description="Return a reserved vehicle to AVAILABLE; the reservation record is kept as CANCELLED."
)
def cancel_reservation(vehicle_id: str, workflow: SaleWorkflow = Depends(get_sale_workflow)):
    try:
        outcome = workflow.cancel_reservation(vehicle_id)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("cancel reservation")
    return SaleOutcomeResponse.from_domain(outcome)


@router.post(
    "/vehicles/{vehicle_id}/reservation/complete",
    response_model=SaleOutcomeResponse,
    summary="Complete Reservation",
    description="Finalize a reservation at the agreed final price; the vehicle becomes SOLD."
)
def complete_reservation(
    vehicle_id: str,
    request: CompleteReservationRequest,
    workflow: SaleWorkflow = Depends(get_sale_workflow),
):
    try:
        outcome = workflow.complete_reservation(
            vehicle_id=vehicle_id,
            final_price=request.final_price,
            handled_by_user_id=request.handled_by_user_id,
        )
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("complete reservation")
    return SaleOutcomeResponse.from_domain(outcome)


@router.get(
    "/sales",
    response_model=TransactionListResponse,
    summary="Search Transactions",
    description="Filter the sale ledger; every filter is optional and they are combined with AND."
)
def search_sales(
    criteria: TransactionSearchCriteria = Depends(_criteria),
    store: EntityStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """
    **Example usage:**
    - Open reservations: `GET /api/v1/sales?status=RESERVED`
    - A customer's purchases in March: `GET /api/v1/sales?customer=138&start_date=2025-03-01&end_date=2025-03-31`

    Malformed dates are ignored rather than rejected.
    """
    try:
        views = search_transactions(store, criteria, settings.timezone)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("search transactions")

    return TransactionListResponse(
        items=[TransactionResponse.from_view(view) for view in views],
        total_count=len(views),
        filters_applied=_filters_applied(criteria),
    )


@router.get(
    "/sales/export",
    summary="Export Transactions CSV",
    description="Download the filtered transaction list as CSV.",
    response_class=Response
)
def export_sales(
    criteria: TransactionSearchCriteria = Depends(_criteria),
    store: EntityStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """
    Accepts the same filters as `GET /sales`.

    **Security:**
    - CSV injection prevention (dangerous characters stripped)
    - Stripped values are logged for audit
    """
    try:
        views = search_transactions(store, criteria, settings.timezone)
        users = {user.user_id: user for user in store.list_all(EntityKind.USERS)}
        csv_content = generate_transactions_csv(views, users, settings.timezone)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("export transactions")

    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=transactions.csv"}
    )


@router.get(
    "/sales/{sale_id}",
    response_model=SaleRecordResponse,
    summary="Get Sale Record"
)
def get_sale(sale_id: str, workflow: SaleWorkflow = Depends(get_sale_workflow)):
    try:
        sale = workflow.get_sale(sale_id)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("get sale record")
    return SaleRecordResponse.from_domain(sale)
