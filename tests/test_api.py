"""
HTTP tests for the FastAPI app.

The store is replaced by an in-memory one per test through
`app.dependency_overrides`, so nothing here needs a database.
"""

from __future__ import annotations

import csv
from io import StringIO
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_sale_workflow, get_settings, get_store
from api.main import app
from repositories.config import Settings
from repositories.memory_store import InMemoryStore
from repositories.store import EntityKind

API = "/api/v1"


@pytest.fixture
def client(seeded_store: InMemoryStore):
    app.dependency_overrides[get_store] = lambda: seeded_store
    app.dependency_overrides[get_settings] = lambda: Settings()
    yield TestClient(app)
    app.dependency_overrides.clear()


def _vehicle_payload(**overrides) -> dict:
    payload = {
        "make": "Mazda",
        "model": "CX-5",
        "year": 2021,
        "listing_price": "120000",
        "cost_price": "100000",
        "vin": "jm3kfbdm1m0000001",
    }
    payload.update(overrides)
    return payload


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["store_backend"] == "memory"
        assert body["timezone"] == "UTC"

    def test_root(self, client: TestClient) -> None:
        assert client.get("/").json()["docs"] == "/docs"


class TestVehicles:
    def test_create_and_get(self, client: TestClient) -> None:
        created = client.post(f"{API}/vehicles", json=_vehicle_payload())

        assert created.status_code == 201
        body = created.json()
        assert body["status"] == "AVAILABLE"
        assert body["vin"] == "JM3KFBDM1M0000001"
        assert body["display_name"] == "2021 Mazda CX-5"

        fetched = client.get(f"{API}/vehicles/{body['vehicle_id']}")
        assert fetched.status_code == 200
        assert fetched.json()["vehicle_id"] == body["vehicle_id"]

    def test_duplicate_vin_is_409(self, client: TestClient) -> None:
        response = client.post(f"{API}/vehicles", json=_vehicle_payload(vin="VIN-VEH-A"))

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "VIN_DUPLICATE"

    def test_create_as_sold_is_400(self, client: TestClient) -> None:
        response = client.post(f"{API}/vehicles", json=_vehicle_payload(status="SOLD"))

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_STATUS"

    def test_create_reserved_vehicle(self, client: TestClient) -> None:
        response = client.post(
            f"{API}/vehicles",
            json=_vehicle_payload(reserved_customer_id="cust-1", deposit_amount="3000"),
        )

        assert response.status_code == 201
        vehicle = response.json()
        assert vehicle["status"] == "RESERVED"
        sales = client.get(f"{API}/sales", params={"status": "RESERVED"}).json()
        assert [item["sale_record"]["vehicle_id"] for item in sales["items"]] == [vehicle["vehicle_id"]]

    def test_list_by_status(self, client: TestClient) -> None:
        body = client.get(f"{API}/vehicles", params={"status": "AVAILABLE"}).json()

        assert body["total_count"] == 2
        assert body["filters_applied"] == {"status": "AVAILABLE"}

    def test_missing_vehicle_is_404(self, client: TestClient) -> None:
        response = client.get(f"{API}/vehicles/nope")

        assert response.status_code == 404
        detail = response.json()["detail"]
        assert detail["code"] == "VEHICLE_NOT_FOUND"
        assert "nope" in detail["message"]

    def test_check_vin(self, client: TestClient) -> None:
        taken = client.get(f"{API}/vehicles/check-vin", params={"vin": "vin-veh-a"}).json()
        own = client.get(f"{API}/vehicles/check-vin", params={"vin": "VIN-VEH-A", "exclude_id": "veh-a"}).json()

        assert taken == {"vin": "VIN-VEH-A", "exists": True}
        assert own["exists"] is False

    def test_maintenance_round_trip_through_update(self, client: TestClient) -> None:
        to_shop = client.put(f"{API}/vehicles/veh-a", json={"status": "MAINTENANCE", "mileage": 51000})
        back = client.put(f"{API}/vehicles/veh-a", json={"status": "AVAILABLE"})

        assert to_shop.json()["status"] == "MAINTENANCE"
        assert to_shop.json()["mileage"] == 51000
        assert back.json()["status"] == "AVAILABLE"

    def test_update_to_sold_is_409(self, client: TestClient) -> None:
        response = client.put(f"{API}/vehicles/veh-a", json={"status": "SOLD"})

        assert response.status_code == 409

    def test_delete(self, client: TestClient) -> None:
        assert client.delete(f"{API}/vehicles/veh-b").status_code == 204
        assert client.get(f"{API}/vehicles/veh-b").status_code == 404

    def test_delete_sold_vehicle_is_409(self, client: TestClient) -> None:
        client.post(f"{API}/sales", json={"vehicle_id": "veh-a", "customer_id": "cust-1", "price": "95000"})

        response = client.delete(f"{API}/vehicles/veh-a")

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "REFERENCED"


class TestSales:
    def test_direct_sale(self, client: TestClient) -> None:
        response = client.post(
            f"{API}/sales",
            json={"vehicle_id": "veh-a", "customer_id": "cust-1", "price": "95000", "handled_by_user_id": "user-1"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["vehicle"]["status"] == "SOLD"
        assert body["sale_record"]["status"] == "COMPLETED"
        assert body["sale_record"]["final_price"] == "95000"

        again = client.post(f"{API}/sales", json={"vehicle_id": "veh-a", "customer_id": "cust-1", "price": "95000"})
        assert again.status_code == 409

    def test_non_positive_price_is_400(self, client: TestClient) -> None:
        response = client.post(f"{API}/sales", json={"vehicle_id": "veh-a", "customer_id": "cust-1", "price": "0"})

        assert response.status_code == 400
        assert client.get(f"{API}/vehicles/veh-a").json()["status"] == "AVAILABLE"

    def test_missing_price_is_422(self, client: TestClient) -> None:
        response = client.post(f"{API}/sales", json={"vehicle_id": "veh-a", "customer_id": "cust-1"})

        assert response.status_code == 422

    def test_unknown_customer_is_404(self, client: TestClient) -> None:
        response = client.post(f"{API}/sales", json={"vehicle_id": "veh-a", "customer_id": "ghost", "price": "1"})

        assert response.status_code == 404

    def test_reserve_then_complete(self, client: TestClient) -> None:
        reserved = client.post(f"{API}/vehicles/veh-b/reservation", json={"customer_id": "cust-1", "deposit_amount": "2000"})
        assert reserved.status_code == 201
        assert reserved.json()["vehicle"]["status"] == "RESERVED"
        assert reserved.json()["sale_record"]["agreed_price"] == "70000"

        direct = client.post(f"{API}/sales", json={"vehicle_id": "veh-b", "customer_id": "cust-1", "price": "70000"})
        assert direct.status_code == 409

        completed = client.post(f"{API}/vehicles/veh-b/reservation/complete", json={"final_price": "68000"})
        assert completed.status_code == 200
        assert completed.json()["vehicle"]["status"] == "SOLD"
        assert completed.json()["sale_record"]["sale_id"] == reserved.json()["sale_record"]["sale_id"]

        twice = client.post(f"{API}/vehicles/veh-b/reservation/complete", json={"final_price": "68000"})
        assert twice.status_code == 409

    def test_complete_with_non_positive_price_is_409(self, client: TestClient) -> None:
        client.post(f"{API}/vehicles/veh-b/reservation", json={"customer_id": "cust-1", "deposit_amount": "2000"})

        response = client.post(f"{API}/vehicles/veh-b/reservation/complete", json={"final_price": "0"})

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "INVALID_FINAL_PRICE"
        assert client.get(f"{API}/vehicles/veh-b").json()["status"] == "RESERVED"

    def test_cancel_reservation(self, client: TestClient) -> None:
        client.post(f"{API}/vehicles/veh-b/reservation", json={"customer_id": "cust-1", "deposit_amount": "2000"})

        response = client.delete(f"{API}/vehicles/veh-b/reservation")

        assert response.status_code == 200
        assert response.json()["vehicle"]["status"] == "AVAILABLE"
        assert response.json()["vehicle"]["reserved_customer_id"] is None
        assert response.json()["sale_record"]["status"] == "CANCELLED"

    def test_cancel_without_reservation_is_409(self, client: TestClient) -> None:
        assert client.delete(f"{API}/vehicles/veh-a/reservation").status_code == 409

    def test_get_sale(self, client: TestClient) -> None:
        sale_id = client.post(
            f"{API}/sales", json={"vehicle_id": "veh-a", "customer_id": "cust-1", "price": "95000"}
        ).json()["sale_record"]["sale_id"]

        assert client.get(f"{API}/sales/{sale_id}").json()["sale_id"] == sale_id
        assert client.get(f"{API}/sales/unknown").status_code == 404

    def test_search(self, client: TestClient) -> None:
        client.post(f"{API}/sales", json={"vehicle_id": "veh-a", "customer_id": "cust-1", "price": "95000"})
        client.post(f"{API}/vehicles/veh-b/reservation", json={"customer_id": "cust-1", "deposit_amount": "2000"})

        body = client.get(f"{API}/sales", params={"vehicle": "honda", "price": "2000", "start_date": "bad"}).json()

        assert body["total_count"] == 1
        assert body["items"][0]["vehicle_display_name"] == "2018 Honda Accord"
        assert body["items"][0]["customer_name"] == "Li Wei"
        assert body["filters_applied"] == {"vehicle": "honda", "price": "2000", "start_date": "bad"}

    def test_non_finite_price_filter_is_ignored(self, client: TestClient) -> None:
        client.post(f"{API}/sales", json={"vehicle_id": "veh-a", "customer_id": "cust-1", "price": "95000"})

        search = client.get(f"{API}/sales", params={"price": "sNaN"})
        export = client.get(f"{API}/sales/export", params={"price": "sNaN"})

        assert search.status_code == 200
        assert search.json()["total_count"] == 1
        assert export.status_code == 200

    def test_export_csv(self, client: TestClient) -> None:
        client.post(
            f"{API}/sales",
            json={"vehicle_id": "veh-a", "customer_id": "cust-1", "price": "95000", "handled_by_user_id": "user-1"},
        )

        response = client.get(f"{API}/sales/export", params={"status": "COMPLETED"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        rows = list(csv.reader(StringIO(response.text)))
        assert rows[0][0] == "Order ID"
        assert len(rows) == 2
        assert rows[1][-1] == "Zhang San"

    def test_unexpected_failure_is_generic_500(self, client: TestClient) -> None:
        broken = MagicMock()
        broken.get_sale.side_effect = RuntimeError("connection pool exhausted")
        app.dependency_overrides[get_sale_workflow] = lambda: broken

        response = client.get(f"{API}/sales/anything")

        assert response.status_code == 500
        assert response.json()["detail"] == {"code": "INTERNAL_ERROR", "message": "Internal server error"}


class TestCustomersAndUsers:
    def test_customer_crud(self, client: TestClient) -> None:
        created = client.post(f"{API}/customers", json={"name": "Wang Fang", "phone": "13900000002"})
        assert created.status_code == 201
        customer_id = created.json()["customer_id"]

        found = client.get(f"{API}/customers", params={"keyword": "wang"}).json()
        assert [c["customer_id"] for c in found] == [customer_id]

        updated = client.put(f"{API}/customers/{customer_id}", json={"notes": "prefers SUVs"})
        assert updated.json()["notes"] == "prefers SUVs"

        assert client.delete(f"{API}/customers/{customer_id}").status_code == 204
        assert client.get(f"{API}/customers/{customer_id}").status_code == 404

    def test_unpurchased_customers(self, client: TestClient) -> None:
        other = client.post(f"{API}/customers", json={"name": "Wang Fang", "phone": "13900000002"}).json()
        client.post(f"{API}/customers", json={"name": "Chen Jie", "phone": "13700000003", "category": "SELLER"})
        client.post(f"{API}/sales", json={"vehicle_id": "veh-a", "customer_id": "cust-1", "price": "95000"})

        listed = client.get(f"{API}/customers/unpurchased")
        searched = client.get(f"{API}/customers/unpurchased", params={"keyword": "li wei"})

        assert listed.status_code == 200
        assert [c["customer_id"] for c in listed.json()] == [other["customer_id"]]
        assert searched.json() == []

    def test_duplicate_phone_is_409(self, client: TestClient) -> None:
        response = client.post(f"{API}/customers", json={"name": "Someone", "phone": "13800000001"})

        assert response.status_code == 409

    def test_users(self, client: TestClient) -> None:
        created = client.post(f"{API}/users", json={"username": "li", "display_name": "Li Si"})

        assert created.status_code == 201
        assert len(client.get(f"{API}/users").json()) == 2
        assert client.get(f"{API}/users/{created.json()['user_id']}").json()["display_name"] == "Li Si"


class TestReports:
    def test_dashboard(self, client: TestClient, seeded_store: InMemoryStore) -> None:
        seeded_store.delete(EntityKind.VEHICLES, "veh-b")
        client.post(f"{API}/sales", json={"vehicle_id": "veh-a", "customer_id": "cust-1", "price": "95000"})

        body = client.get(f"{API}/reports/dashboard").json()

        assert body["revenue"] == "95000"
        assert body["profit"] == "15000"
        assert body["avg_profit_rate"] == "15.8"
        assert body["status_counts"] == {"AVAILABLE": 0, "RESERVED": 0, "SOLD": 1, "MAINTENANCE": 0}

    def test_trend_default_window(self, client: TestClient) -> None:
        body = client.get(f"{API}/reports/trend").json()

        assert body["months"] == 6
        assert all(point["revenue"] == "0" for point in body["points"])

    def test_trend_invalid_window_is_400(self, client: TestClient) -> None:
        response = client.get(f"{API}/reports/trend", params={"months": 0})

        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_WINDOW"

    def test_storage_failure_hides_message(self, client: TestClient) -> None:
        broken = MagicMock()
        broken.snapshot.side_effect = OSError("password=hunter2")
        app.dependency_overrides[get_store] = lambda: broken

        response = client.get(f"{API}/reports/dashboard")

        assert response.status_code == 500
        assert response.json()["detail"] == {"code": "STORAGE_ERROR", "message": "Internal server error"}
