"""
Domain: Sale records (the transaction ledger).

Contract excerpts relevant here:
- A SaleRecord is created either as RESERVED (deposit-backed hold) or directly
  as COMPLETED (direct sale).
- RESERVED -> COMPLETED sets final_price and transaction_date; a COMPLETED
  record is never mutated again.
- RESERVED -> CANCELLED retires an abandoned reservation while keeping it as
  an audit trail entry.
- At most one RESERVED record exists per vehicle; that is enforced by the
  sale workflow together with the vehicle's RESERVED status.

All timestamps must be passed explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from .errors import IllegalTransitionError, ValidationError
from .time import require_utc_timestamp


class SaleStatus(str, Enum):
    RESERVED = "RESERVED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True, slots=True)
class SaleRecord:
    """
    Immutable ledger entry for a reservation or a completed sale.

    Captures:
    - What was sold (vehicle_id) and to whom (customer_id)
    - The agreed price, and the final price once completed
    - The deposit taken for a reservation
    - When the transaction happened and which staff member handled it
    """

    sale_id: str
    vehicle_id: str
    customer_id: str
    agreed_price: Decimal
    status: SaleStatus
    transaction_date: datetime
    final_price: Optional[Decimal] = None
    deposit_amount: Optional[Decimal] = None
    handled_by_user_id: Optional[str] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("transaction_date", self.transaction_date)
        if self.agreed_price <= 0:
            raise ValidationError("agreed_price must be positive", code="INVALID_PRICE")
        if self.status is SaleStatus.COMPLETED and self.final_price is None:
            raise ValidationError("A completed sale requires final_price", code="INVALID_PRICE")

    @property
    def is_open(self) -> bool:
        return self.status is SaleStatus.RESERVED

    @property
    def effective_price(self) -> Decimal:
        """final_price when known, otherwise the agreed price."""

        return self.final_price if self.final_price is not None else self.agreed_price

    def completed(
        self,
        final_price: Decimal,
        completed_at: datetime,
        handled_by_user_id: Optional[str] = None,
    ) -> "SaleRecord":
        """Return the COMPLETED version of an open reservation."""

        if not self.is_open:
            raise IllegalTransitionError(
                f"Only a reserved sale can be completed (sale {self.sale_id} is {self.status.value})"
            )
        if final_price <= 0:
            raise ValidationError("final_price must be positive", code="INVALID_PRICE")
        return replace(
            self,
            status=SaleStatus.COMPLETED,
            final_price=final_price,
            transaction_date=completed_at,
            handled_by_user_id=handled_by_user_id or self.handled_by_user_id,
        )

    def cancelled(self) -> "SaleRecord":
        """Return the CANCELLED version of an open reservation; the reservation date is kept."""

        if not self.is_open:
            raise IllegalTransitionError(
                f"Only a reserved sale can be cancelled (sale {self.sale_id} is {self.status.value})"
            )
        return replace(self, status=SaleStatus.CANCELLED)


__all__ = ["SaleStatus", "SaleRecord"]
