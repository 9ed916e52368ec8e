"""
Pytest configuration.

Adds the project root to the Python path so that tests can import domain,
repositories, services and api, and provides in-memory fixtures shared by the
service and API tests.
"""

import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

# Add the project root to the Python path
# so tests can import domain, repositories, etc.
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from domain.customer import Customer  # noqa: E402
from domain.user import User  # noqa: E402
from domain.vehicle import Vehicle, VehicleStatus  # noqa: E402
from repositories.memory_store import InMemoryStore  # noqa: E402
from repositories.store import EntityKind  # noqa: E402
from services.sale_workflow import SaleWorkflow  # noqa: E402

FIXED_NOW = datetime(2025, 6, 15, 10, 30, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


def make_vehicle(
    vehicle_id: str = "veh-1",
    *,
    listing_price: str = "100000",
    cost_price: str | None = "80000",
    status: VehicleStatus = VehicleStatus.AVAILABLE,
    vin: str | None = None,
    make: str = "Toyota",
    model: str = "Camry",
    year: int = 2019,
    **extra,
) -> Vehicle:
    return Vehicle(
        vehicle_id=vehicle_id,
        make=make,
        model=model,
        year=year,
        listing_price=Decimal(listing_price),
        cost_price=Decimal(cost_price) if cost_price is not None else None,
        vin=vin or f"VIN-{vehicle_id}".upper(),
        status=status,
        date_added=datetime(2025, 1, 1, tzinfo=timezone.utc),
        **extra,
    )


def make_customer(customer_id: str = "cust-1", *, name: str = "Li Wei", phone: str = "13800000001") -> Customer:
    return Customer(
        customer_id=customer_id,
        name=name,
        phone=phone,
        date_added=datetime(2025, 1, 2, tzinfo=timezone.utc),
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def seeded_store(store: InMemoryStore) -> InMemoryStore:
    """Two available vehicles (A: 100000/80000, B: 70000/50000), one customer, one user."""

    store.put(EntityKind.CUSTOMERS, make_customer())
    store.put(EntityKind.USERS, User(user_id="user-1", username="zhang", display_name="Zhang San"))
    store.put(EntityKind.VEHICLES, make_vehicle("veh-a"))
    store.put(
        EntityKind.VEHICLES,
        make_vehicle("veh-b", listing_price="70000", cost_price="50000", make="Honda", model="Accord", year=2018),
    )
    return store


@pytest.fixture
def workflow(seeded_store: InMemoryStore) -> SaleWorkflow:
    return SaleWorkflow(seeded_store, clock=fixed_clock)
