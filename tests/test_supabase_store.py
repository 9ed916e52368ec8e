"""
Tests for `repositories/supabase_store.py` and `repositories/rows.py`.

The supabase client is a MagicMock; these tests check the query-builder calls,
the commit payload sent to `commit_unit_of_work`, and error translation.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from postgrest.exceptions import APIError

from conftest import make_vehicle
from domain.errors import ConcurrentModificationError, ConflictError, StorageError
from domain.sale import SaleRecord, SaleStatus
from domain.vehicle import VehicleStatus
from repositories.rows import row_to_sale, row_to_vehicle, sale_to_row, vehicle_to_row
from repositories.store import EntityKind
from repositories.supabase_store import SupabaseStore


def _vehicle_row(version: int = 3) -> dict:
    row = vehicle_to_row(make_vehicle("veh-1"))
    row["version"] = version
    return row


def _client_returning(rows: list) -> MagicMock:
    client = MagicMock()
    response = SimpleNamespace(data=rows, error=None)
    table = client.table.return_value
    table.select.return_value.eq.return_value.limit.return_value.execute.return_value = response
    table.select.return_value.eq.return_value.order.return_value.execute.return_value = response
    table.select.return_value.order.return_value.execute.return_value = response
    client.rpc.return_value.execute.return_value = SimpleNamespace(data={"success": True}, error=None)
    return client


def test_vehicle_row_round_trip_keeps_decimals_and_utc() -> None:
    vehicle = make_vehicle("veh-1", listing_price="100000.50")
    row = vehicle_to_row(vehicle)

    assert row["listing_price"] == "100000.50"
    assert row["status"] == "AVAILABLE"
    assert row_to_vehicle(row) == vehicle


def test_sale_row_parses_z_suffix() -> None:
    sale = SaleRecord(
        sale_id="s",
        vehicle_id="v",
        customer_id="c",
        agreed_price=Decimal("10"),
        status=SaleStatus.RESERVED,
        deposit_amount=Decimal("2"),
        transaction_date=datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc),
    )
    row = sale_to_row(sale)
    row["transaction_date"] = "2025-01-01T08:00:00Z"

    assert row_to_sale(row) == sale


def test_get_queries_by_id() -> None:
    client = _client_returning([_vehicle_row()])
    store = SupabaseStore(client)

    vehicle = store.get(EntityKind.VEHICLES, "veh-1")

    assert vehicle.vehicle_id == "veh-1"
    client.table.assert_called_with("vehicles")
    client.table.return_value.select.return_value.eq.assert_called_with("vehicle_id", "veh-1")


def test_query_by_field_encodes_enums() -> None:
    client = _client_returning([_vehicle_row()])
    store = SupabaseStore(client)

    store.query_by_field(EntityKind.VEHICLES, "status", VehicleStatus.AVAILABLE)

    client.table.return_value.select.return_value.eq.assert_called_with("status", "AVAILABLE")


def test_transaction_commits_one_rpc_with_read_versions() -> None:
    client = _client_returning([_vehicle_row(version=3)])
    store = SupabaseStore(client)

    def apply(tx):
        vehicle = tx.get(EntityKind.VEHICLES, "veh-1")
        tx.put(EntityKind.VEHICLES, replace(vehicle, status=VehicleStatus.SOLD))

    store.with_transaction(apply)

    client.rpc.assert_called_once()
    name, params = client.rpc.call_args.args
    assert name == "commit_unit_of_work"
    [write] = params["p_writes"]
    assert write["table"] == "vehicles"
    assert write["id_field"] == "vehicle_id"
    assert write["id"] == "veh-1"
    assert write["expected_version"] == 3
    assert write["row"]["status"] == "SOLD"


def test_read_only_transaction_makes_no_rpc() -> None:
    client = _client_returning([_vehicle_row()])
    SupabaseStore(client).with_transaction(lambda tx: tx.get(EntityKind.VEHICLES, "veh-1"))

    client.rpc.assert_not_called()


@pytest.mark.parametrize(
    "result, error_type, code",
    [
        ({"success": False, "error": "VERSION_CONFLICT", "message": "stale"}, ConcurrentModificationError, None),
        ({"success": False, "error": "23505", "message": "dup"}, ConflictError, "DUPLICATE"),
        ({"success": False, "error": "23503", "message": "fk"}, ConflictError, "REFERENCED"),
        ({"success": False, "error": "23514", "message": "check"}, StorageError, None),
    ],
)
def test_failed_commit_result_is_translated(result: dict, error_type: type, code: str | None) -> None:
    client = _client_returning([])
    client.rpc.return_value.execute.return_value = SimpleNamespace(data=result, error=None)
    store = SupabaseStore(client)

    with pytest.raises(error_type) as exc:
        store.put(EntityKind.VEHICLES, make_vehicle("veh-1"))
    if code is not None:
        assert exc.value.code == code


def test_api_error_carrying_success_result_is_not_a_failure() -> None:
    """Some supabase-py versions raise APIError for a JSON function result."""

    client = _client_returning([])
    client.rpc.return_value.execute.side_effect = APIError({"success": True})
    store = SupabaseStore(client)

    store.put(EntityKind.VEHICLES, make_vehicle("veh-1"))


def test_api_error_carrying_conflict_result() -> None:
    client = _client_returning([])
    client.rpc.return_value.execute.side_effect = APIError(
        {"success": False, "error": "VERSION_CONFLICT", "message": "vehicles entry veh-1 was modified concurrently"}
    )
    store = SupabaseStore(client)

    with pytest.raises(ConcurrentModificationError):
        store.put(EntityKind.VEHICLES, make_vehicle("veh-1"))


def test_unexpected_api_error_becomes_storage_error() -> None:
    client = _client_returning([])
    client.rpc.return_value.execute.side_effect = APIError({"message": "connection reset", "code": "08006"})
    store = SupabaseStore(client)

    with pytest.raises(StorageError):
        store.put(EntityKind.VEHICLES, make_vehicle("veh-1"))
