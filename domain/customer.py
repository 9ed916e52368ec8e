"""
Domain: Customers (buyers and sellers of vehicles).

A customer may be referenced by any number of SaleRecords and by at most one
vehicle reservation at a time. Phone numbers are unique across customers.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from .errors import ValidationError
from .time import require_utc_timestamp


class CustomerCategory(str, Enum):
    BUYER = "BUYER"
    SELLER = "SELLER"


@dataclass(frozen=True, slots=True)
class Customer:
    """Customer record. `date_added` is set once and kept on every update."""

    customer_id: str
    name: str
    phone: str
    date_added: datetime
    category: CustomerCategory = CustomerCategory.BUYER
    contact_info: Optional[str] = None
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("date_added", self.date_added)
        if not self.name or not self.name.strip():
            raise ValidationError("Customer name is required", code="NAME_REQUIRED")
        if not self.phone or not self.phone.strip():
            raise ValidationError("Customer phone is required", code="PHONE_REQUIRED")

    @property
    def display_name(self) -> str:
        return f"{self.name} {self.phone}"

    def with_changes(self, **changes) -> "Customer":
        changes.pop("customer_id", None)
        changes.pop("date_added", None)
        return replace(self, **changes)


__all__ = ["CustomerCategory", "Customer"]
