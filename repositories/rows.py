"""
Row codecs between domain entities and JSON-safe table rows.

Column names match the dataclass field names. Money is sent as strings to
keep Decimal precision; timestamps are ISO-8601 UTC.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Mapping, Optional

from domain.customer import Customer, CustomerCategory
from domain.sale import SaleRecord, SaleStatus
from domain.time import require_utc_timestamp
from domain.user import User, UserRole
from domain.vehicle import Vehicle, VehicleStatus
from repositories.store import EntityKind


def _to_iso_utc(dt: datetime, *, name: str) -> str:
    """Serialize a UTC datetime to ISO-8601 (timezone-aware, offset 0)."""

    require_utc_timestamp(name, dt)
    return dt.astimezone(timezone.utc).isoformat()


def _parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _money(value: Any) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


def _money_str(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


def vehicle_to_row(vehicle: Vehicle) -> Dict[str, Any]:
    return {
        "vehicle_id": vehicle.vehicle_id,
        "make": vehicle.make,
        "model": vehicle.model,
        "year": vehicle.year,
        "listing_price": _money_str(vehicle.listing_price),
        "cost_price": _money_str(vehicle.cost_price),
        "mileage": vehicle.mileage,
        "color": vehicle.color,
        "vin": vehicle.vin,
        "status": vehicle.status.value,
        "description": vehicle.description,
        "image_url": vehicle.image_url,
        "date_added": _to_iso_utc(vehicle.date_added, name="date_added"),
        "reserved_customer_id": vehicle.reserved_customer_id,
        "deposit_amount": _money_str(vehicle.deposit_amount),
    }


def row_to_vehicle(row: Mapping[str, Any]) -> Vehicle:
    return Vehicle(
        vehicle_id=str(row["vehicle_id"]),
        make=str(row["make"]),
        model=str(row["model"]),
        year=int(row["year"]),
        listing_price=Decimal(str(row["listing_price"])),
        cost_price=_money(row.get("cost_price")),
        mileage=row.get("mileage"),
        color=row.get("color"),
        vin=str(row["vin"]),
        status=VehicleStatus(str(row["status"])),
        description=row.get("description"),
        image_url=row.get("image_url"),
        date_added=_parse_utc_datetime(row["date_added"]),
        reserved_customer_id=row.get("reserved_customer_id"),
        deposit_amount=_money(row.get("deposit_amount")),
    )


def customer_to_row(customer: Customer) -> Dict[str, Any]:
    return {
        "customer_id": customer.customer_id,
        "name": customer.name,
        "phone": customer.phone,
        "category": customer.category.value,
        "contact_info": customer.contact_info,
        "notes": customer.notes,
        "date_added": _to_iso_utc(customer.date_added, name="date_added"),
    }


def row_to_customer(row: Mapping[str, Any]) -> Customer:
    return Customer(
        customer_id=str(row["customer_id"]),
        name=str(row["name"]),
        phone=str(row["phone"]),
        category=CustomerCategory(str(row.get("category") or "BUYER")),
        contact_info=row.get("contact_info"),
        notes=row.get("notes"),
        date_added=_parse_utc_datetime(row["date_added"]),
    )


def sale_to_row(sale: SaleRecord) -> Dict[str, Any]:
    return {
        "sale_id": sale.sale_id,
        "vehicle_id": sale.vehicle_id,
        "customer_id": sale.customer_id,
        "agreed_price": _money_str(sale.agreed_price),
        "final_price": _money_str(sale.final_price),
        "deposit_amount": _money_str(sale.deposit_amount),
        "status": sale.status.value,
        "transaction_date": _to_iso_utc(sale.transaction_date, name="transaction_date"),
        "handled_by_user_id": sale.handled_by_user_id,
    }


def row_to_sale(row: Mapping[str, Any]) -> SaleRecord:
    return SaleRecord(
        sale_id=str(row["sale_id"]),
        vehicle_id=str(row["vehicle_id"]),
        customer_id=str(row["customer_id"]),
        agreed_price=Decimal(str(row["agreed_price"])),
        final_price=_money(row.get("final_price")),
        deposit_amount=_money(row.get("deposit_amount")),
        status=SaleStatus(str(row["status"])),
        transaction_date=_parse_utc_datetime(row["transaction_date"]),
        handled_by_user_id=row.get("handled_by_user_id"),
    )


def user_to_row(user: User) -> Dict[str, Any]:
    return {
        "user_id": user.user_id,
        "username": user.username,
        "display_name": user.display_name,
        "role": user.role.value,
        "active": user.active,
    }


def row_to_user(row: Mapping[str, Any]) -> User:
    return User(
        user_id=str(row["user_id"]),
        username=str(row["username"]),
        display_name=str(row.get("display_name") or row["username"]),
        role=UserRole(str(row.get("role") or "SALES")),
        active=bool(row.get("active", True)),
    )


ENCODERS: Dict[EntityKind, Callable[[Any], Dict[str, Any]]] = {
    EntityKind.VEHICLES: vehicle_to_row,
    EntityKind.CUSTOMERS: customer_to_row,
    EntityKind.SALE_RECORDS: sale_to_row,
    EntityKind.USERS: user_to_row,
}

DECODERS: Dict[EntityKind, Callable[[Mapping[str, Any]], Any]] = {
    EntityKind.VEHICLES: row_to_vehicle,
    EntityKind.CUSTOMERS: row_to_customer,
    EntityKind.SALE_RECORDS: row_to_sale,
    EntityKind.USERS: row_to_user,
}


def encode_value(value: Any) -> Any:
    """Encode a single filter value the way the row codecs would."""

    if isinstance(value, (VehicleStatus, SaleStatus, CustomerCategory, UserRole)):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return _to_iso_utc(value, name="value")
    return value


__all__ = [
    "ENCODERS",
    "DECODERS",
    "encode_value",
    "vehicle_to_row",
    "row_to_vehicle",
    "customer_to_row",
    "row_to_customer",
    "sale_to_row",
    "row_to_sale",
    "user_to_row",
    "row_to_user",
]
