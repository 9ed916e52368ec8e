"""
Tests for `domain/sale.py`.

Covers contract rules:
- SaleRecord.transaction_date is required and must be a UTC timestamp.
- SaleRecord is immutable (frozen).
- RESERVED -> COMPLETED / CANCELLED only; COMPLETED is never mutated again.
"""

from __future__ import annotations

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from domain.errors import IllegalTransitionError, ValidationError
from domain.sale import SaleRecord, SaleStatus

RESERVED_AT = datetime(2025, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


def _reservation() -> SaleRecord:
    return SaleRecord(
        sale_id="sale-1",
        vehicle_id="veh-1",
        customer_id="cust-1",
        agreed_price=Decimal("100000"),
        deposit_amount=Decimal("2000"),
        status=SaleStatus.RESERVED,
        transaction_date=RESERVED_AT,
    )


def test_sale_record_transaction_date_must_be_utc() -> None:
    """Verify transaction_date enforces UTC timezone-aware timestamp."""

    with pytest.raises(ValueError):
        SaleRecord(
            sale_id="s",
            vehicle_id="v",
            customer_id="c",
            agreed_price=Decimal("1"),
            status=SaleStatus.RESERVED,
            transaction_date=datetime(2025, 1, 1, 0, 0, 0),
        )

    with pytest.raises(ValueError):
        SaleRecord(
            sale_id="s",
            vehicle_id="v",
            customer_id="c",
            agreed_price=Decimal("1"),
            status=SaleStatus.RESERVED,
            transaction_date=datetime(2025, 1, 1, 0, 0, 0, tzinfo=timezone(timedelta(hours=8))),
        )


def test_sale_record_is_immutable() -> None:
    """Verify SaleRecord cannot be mutated after creation (frozen entity)."""

    sale = _reservation()

    with pytest.raises(FrozenInstanceError):
        sale.status = SaleStatus.COMPLETED  # type: ignore[misc]


def test_completed_sale_requires_final_price() -> None:
    with pytest.raises(ValidationError):
        SaleRecord(
            sale_id="s",
            vehicle_id="v",
            customer_id="c",
            agreed_price=Decimal("1000"),
            status=SaleStatus.COMPLETED,
            transaction_date=RESERVED_AT,
        )


def test_agreed_price_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        SaleRecord(
            sale_id="s",
            vehicle_id="v",
            customer_id="c",
            agreed_price=Decimal("0"),
            status=SaleStatus.RESERVED,
            transaction_date=RESERVED_AT,
        )


def test_completed_sets_final_price_and_date() -> None:
    completed_at = RESERVED_AT + timedelta(days=3)
    sale = _reservation().completed(Decimal("98000"), completed_at, "user-1")

    assert sale.status is SaleStatus.COMPLETED
    assert sale.final_price == Decimal("98000")
    assert sale.effective_price == Decimal("98000")
    assert sale.transaction_date == completed_at
    assert sale.handled_by_user_id == "user-1"
    assert sale.deposit_amount == Decimal("2000")


def test_completed_sale_cannot_change_again() -> None:
    """A COMPLETED record is never mutated: completing or cancelling it again is illegal."""

    sale = _reservation().completed(Decimal("98000"), RESERVED_AT)

    with pytest.raises(IllegalTransitionError):
        sale.completed(Decimal("99000"), RESERVED_AT)
    with pytest.raises(IllegalTransitionError):
        sale.cancelled()


def test_cancelled_keeps_reservation_date() -> None:
    sale = _reservation().cancelled()

    assert sale.status is SaleStatus.CANCELLED
    assert not sale.is_open
    assert sale.transaction_date == RESERVED_AT
    assert sale.effective_price == Decimal("100000")
