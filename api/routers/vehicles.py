"""
Vehicle API Endpoints.

Inventory CRUD plus the VIN availability check used by the edit form.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from api.dependencies import get_inventory_service
from api.errors import to_http_exception, unexpected_error
from api.models import (
    VehicleCreateRequest,
    VehicleListResponse,
    VehicleResponse,
    VehicleUpdateRequest,
    VinCheckResponse,
)
from domain.errors import DealershipError
from domain.vehicle import VehicleStatus
from services.inventory_service import InventoryService, VehicleDraft

router = APIRouter()


@router.get(
    "/vehicles",
    response_model=VehicleListResponse,
    summary="List Vehicles",
    description="List inventory, optionally filtered by status."
)
def list_vehicles(
    status: Optional[VehicleStatus] = Query(None, description="AVAILABLE, RESERVED, SOLD or MAINTENANCE"),
    service: InventoryService = Depends(get_inventory_service),
):
    """
    **Example usage:**
    - All vehicles: `GET /api/v1/vehicles`
    - Only cars on the lot: `GET /api/v1/vehicles?status=AVAILABLE`
    """
    try:
        vehicles = service.list_vehicles(status)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("list vehicles")

    return VehicleListResponse(
        items=[VehicleResponse.from_domain(v) for v in vehicles],
        total_count=len(vehicles),
        filters_applied={"status": status.value} if status else {},
    )


@router.get(
    "/vehicles/check-vin",
    response_model=VinCheckResponse,
    summary="Check VIN",
    description="Whether a VIN is already held by another vehicle."
)
def check_vin(
    vin: str = Query(..., description="VIN to check"),
    exclude_id: Optional[str] = Query(None, description="Vehicle being edited (ignored in the check)"),
    service: InventoryService = Depends(get_inventory_service),
):
    try:
        exists = service.vin_exists(vin, exclude_id=exclude_id)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("check VIN")
    return VinCheckResponse(vin=vin.strip().upper(), exists=exists)


@router.post(
    "/vehicles",
    response_model=VehicleResponse,
    status_code=201,
    summary="Add Vehicle",
    description="Add a vehicle to inventory, optionally already reserved for a customer."
)
def create_vehicle(
    request: VehicleCreateRequest,
    service: InventoryService = Depends(get_inventory_service),
):
    """
    **Errors:**
    - 400: missing field, invalid status, reservation data incomplete
    - 404: reservation customer does not exist
    - 409: VIN already exists
    """
    try:
        vehicle = service.create_vehicle(VehicleDraft(**request.model_dump()))
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("create vehicle")
    return VehicleResponse.from_domain(vehicle)


@router.get(
    "/vehicles/{vehicle_id}",
    response_model=VehicleResponse,
    summary="Get Vehicle"
)
def get_vehicle(vehicle_id: str, service: InventoryService = Depends(get_inventory_service)):
    try:
        vehicle = service.get_vehicle(vehicle_id)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("get vehicle")
    return VehicleResponse.from_domain(vehicle)


@router.put(
    "/vehicles/{vehicle_id}",
    response_model=VehicleResponse,
    summary="Update Vehicle",
    description="Change vehicle attributes, or move it in or out of maintenance."
)
def update_vehicle(
    vehicle_id: str,
    request: VehicleUpdateRequest,
    service: InventoryService = Depends(get_inventory_service),
):
    changes = request.model_dump(exclude_unset=True)
    try:
        vehicle = service.update_vehicle(vehicle_id, changes)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("update vehicle")
    return VehicleResponse.from_domain(vehicle)


@router.delete(
    "/vehicles/{vehicle_id}",
    status_code=204,
    response_class=Response,
    summary="Delete Vehicle",
    description="Delete a vehicle that no sale record references."
)
def delete_vehicle(vehicle_id: str, service: InventoryService = Depends(get_inventory_service)):
    try:
        service.delete_vehicle(vehicle_id)
    except DealershipError as e:
        raise to_http_exception(e)
    except Exception:
        raise unexpected_error("delete vehicle")
    return Response(status_code=204)
