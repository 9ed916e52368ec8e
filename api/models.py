"""
API Request and Response Models.

Pydantic models for validating API requests and serializing responses.
Amounts are validated for sign by the services (400), not here, so that a
zero or negative price gets the same error body as every other domain rule.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from domain.customer import Customer, CustomerCategory
from domain.sale import SaleRecord, SaleStatus
from domain.user import User, UserRole
from domain.vehicle import Vehicle, VehicleStatus
from services.report_service import DashboardSnapshot, TrendPoint
from services.sale_workflow import SaleOutcome
from services.transaction_query import TransactionView


# ============================================================================
# Vehicle Models
# ============================================================================

class VehicleCreateRequest(BaseModel):
    """Request to add a vehicle to inventory."""
    make: str
    model: str
    year: int = Field(..., ge=1900, le=2100)
    listing_price: Decimal
    vin: str
    cost_price: Optional[Decimal] = None
    mileage: Optional[int] = Field(None, ge=0)
    color: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: VehicleStatus = VehicleStatus.AVAILABLE
    reserved_customer_id: Optional[str] = Field(
        None,
        description="Create the vehicle already reserved for this customer (requires deposit_amount)"
    )
    deposit_amount: Optional[Decimal] = None

    class Config:
        json_schema_extra = {
            "example": {
                "make": "Toyota",
                "model": "Camry",
                "year": 2019,
                "listing_price": "100000.00",
                "cost_price": "80000.00",
                "mileage": 42000,
                "color": "White",
                "vin": "4T1B11HK5KU000001",
                "status": "AVAILABLE"
            }
        }


class VehicleUpdateRequest(BaseModel):
    """Partial update; only the fields sent are changed."""
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(None, ge=1900, le=2100)
    listing_price: Optional[Decimal] = None
    cost_price: Optional[Decimal] = None
    mileage: Optional[int] = Field(None, ge=0)
    color: Optional[str] = None
    vin: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    status: Optional[VehicleStatus] = Field(
        None,
        description="Only AVAILABLE <-> MAINTENANCE; reservations and sales use their own endpoints"
    )


class VehicleResponse(BaseModel):
    """Single vehicle in API response."""
    vehicle_id: str
    display_name: str
    make: str
    model: str
    year: int
    listing_price: Decimal
    cost_price: Optional[Decimal] = None
    mileage: Optional[int] = None
    color: Optional[str] = None
    vin: str
    status: VehicleStatus
    description: Optional[str] = None
    image_url: Optional[str] = None
    date_added: datetime
    reserved_customer_id: Optional[str] = None
    deposit_amount: Optional[Decimal] = None

    @classmethod
    def from_domain(cls, vehicle: Vehicle) -> "VehicleResponse":
        return cls(
            vehicle_id=vehicle.vehicle_id,
            display_name=vehicle.display_name,
            make=vehicle.make,
            model=vehicle.model,
            year=vehicle.year,
            listing_price=vehicle.listing_price,
            cost_price=vehicle.cost_price,
            mileage=vehicle.mileage,
            color=vehicle.color,
            vin=vehicle.vin,
            status=vehicle.status,
            description=vehicle.description,
            image_url=vehicle.image_url,
            date_added=vehicle.date_added,
            reserved_customer_id=vehicle.reserved_customer_id,
            deposit_amount=vehicle.deposit_amount,
        )


class VehicleListResponse(BaseModel):
    """Response for vehicle listing."""
    items: List[VehicleResponse]
    total_count: int
    filters_applied: dict


class VinCheckResponse(BaseModel):
    vin: str
    exists: bool


# ============================================================================
# Sale Models
# ============================================================================

class DirectSaleRequest(BaseModel):
    """Request to sell a vehicle without a prior reservation."""
    vehicle_id: str
    customer_id: str
    price: Decimal
    handled_by_user_id: Optional[str] = None
    transaction_date: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "vehicle_id": "6f1c2a9e-6a43-4c5e-9f0e-0d6c2b1f7a10",
                "customer_id": "b0d7a3f2-1c59-4b7e-8d35-8e2f4a6c9d01",
                "price": "95000.00"
            }
        }


class ReservationRequest(BaseModel):
    """Request to place a deposit-backed hold on a vehicle."""
    customer_id: str
    deposit_amount: Decimal
    asking_price: Optional[Decimal] = Field(
        None,
        description="Agreed price for the sale record; defaults to the listing price"
    )
    handled_by_user_id: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "customer_id": "b0d7a3f2-1c59-4b7e-8d35-8e2f4a6c9d01",
                "deposit_amount": "2000.00"
            }
        }


class CompleteReservationRequest(BaseModel):
    """Request to finalize a reservation."""
    final_price: Decimal
    handled_by_user_id: Optional[str] = None


class SaleRecordResponse(BaseModel):
    sale_id: str
    vehicle_id: str
    customer_id: str
    agreed_price: Decimal
    final_price: Optional[Decimal] = None
    deposit_amount: Optional[Decimal] = None
    status: SaleStatus
    transaction_date: datetime
    handled_by_user_id: Optional[str] = None

    @classmethod
    def from_domain(cls, sale: SaleRecord) -> "SaleRecordResponse":
        return cls(
            sale_id=sale.sale_id,
            vehicle_id=sale.vehicle_id,
            customer_id=sale.customer_id,
            agreed_price=sale.agreed_price,
            final_price=sale.final_price,
            deposit_amount=sale.deposit_amount,
            status=sale.status,
            transaction_date=sale.transaction_date,
            handled_by_user_id=sale.handled_by_user_id,
        )


class SaleOutcomeResponse(BaseModel):
    """Vehicle and sale record after a workflow operation."""
    vehicle: VehicleResponse
    sale_record: SaleRecordResponse

    @classmethod
    def from_domain(cls, outcome: SaleOutcome) -> "SaleOutcomeResponse":
        return cls(
            vehicle=VehicleResponse.from_domain(outcome.vehicle),
            sale_record=SaleRecordResponse.from_domain(outcome.sale_record),
        )


class TransactionResponse(BaseModel):
    """Sale record joined with vehicle and customer descriptions."""
    sale_record: SaleRecordResponse
    vehicle_display_name: Optional[str] = None
    vin: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None

    @classmethod
    def from_view(cls, view: TransactionView) -> "TransactionResponse":
        return cls(
            sale_record=SaleRecordResponse.from_domain(view.sale),
            vehicle_display_name=view.vehicle.display_name if view.vehicle else None,
            vin=view.vehicle.vin if view.vehicle else None,
            customer_name=view.customer.name if view.customer else None,
            customer_phone=view.customer.phone if view.customer else None,
        )


class TransactionListResponse(BaseModel):
    items: List[TransactionResponse]
    total_count: int
    filters_applied: dict


# ============================================================================
# Customer Models
# ============================================================================

class CustomerCreateRequest(BaseModel):
    name: str
    phone: str
    category: CustomerCategory = CustomerCategory.BUYER
    contact_info: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Li Wei",
                "phone": "13800000000",
                "category": "BUYER"
            }
        }


class CustomerUpdateRequest(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    category: Optional[CustomerCategory] = None
    contact_info: Optional[str] = None
    notes: Optional[str] = None


class CustomerResponse(BaseModel):
    customer_id: str
    name: str
    phone: str
    category: CustomerCategory
    contact_info: Optional[str] = None
    notes: Optional[str] = None
    date_added: datetime

    @classmethod
    def from_domain(cls, customer: Customer) -> "CustomerResponse":
        return cls(
            customer_id=customer.customer_id,
            name=customer.name,
            phone=customer.phone,
            category=customer.category,
            contact_info=customer.contact_info,
            notes=customer.notes,
            date_added=customer.date_added,
        )


# ============================================================================
# User Models
# ============================================================================

class UserCreateRequest(BaseModel):
    username: str
    display_name: Optional[str] = None
    role: UserRole = UserRole.SALES
    active: bool = True


class UserResponse(BaseModel):
    user_id: str
    username: str
    display_name: str
    role: UserRole
    active: bool

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            user_id=user.user_id,
            username=user.username,
            display_name=user.display_name,
            role=user.role,
            active=user.active,
        )


# ============================================================================
# Report Models
# ============================================================================

class DashboardResponse(BaseModel):
    inventory_value: Decimal
    inventory_count: int
    status_counts: Dict[str, int]
    revenue: Decimal
    sales_count: int
    profit: Decimal
    avg_profit_rate: Decimal
    customer_count: int

    @classmethod
    def from_domain(cls, snapshot: DashboardSnapshot) -> "DashboardResponse":
        return cls(
            inventory_value=snapshot.inventory_value,
            inventory_count=snapshot.inventory_count,
            status_counts={status.value: count for status, count in snapshot.status_counts.items()},
            revenue=snapshot.revenue,
            sales_count=snapshot.sales_count,
            profit=snapshot.profit,
            avg_profit_rate=snapshot.avg_profit_rate,
            customer_count=snapshot.customer_count,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "inventory_value": "250000.00",
                "inventory_count": 4,
                "status_counts": {"AVAILABLE": 2, "RESERVED": 1, "SOLD": 1, "MAINTENANCE": 0},
                "revenue": "95000.00",
                "sales_count": 1,
                "profit": "15000.00",
                "avg_profit_rate": "15.8",
                "customer_count": 3
            }
        }


class TrendPointResponse(BaseModel):
    label: str
    revenue: Decimal

    @classmethod
    def from_domain(cls, point: TrendPoint) -> "TrendPointResponse":
        return cls(label=point.label, revenue=point.revenue)


class TrendResponse(BaseModel):
    months: int
    points: List[TrendPointResponse]


# ============================================================================
# Error Models
# ============================================================================

class ErrorDetail(BaseModel):
    """Body of `detail` in every 4xx/5xx produced by the services."""
    code: str
    message: str

    class Config:
        json_schema_extra = {
            "example": {
                "code": "VEHICLE_SOLD",
                "message": "Vehicle 6f1c2a9e-6a43-4c5e-9f0e-0d6c2b1f7a10 is already sold"
            }
        }
