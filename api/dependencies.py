"""
FastAPI dependencies.

Settings and the store are built once per process. Services are cheap
wrappers around the store and are built per request. Tests replace
`get_store` (and, if needed, `get_settings`) through
`app.dependency_overrides`.
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from repositories.config import Settings, load_settings
from repositories.factory import create_store
from repositories.store import EntityStore
from services.customer_service import CustomerService
from services.inventory_service import InventoryService
from services.report_service import ReportAggregator
from services.sale_workflow import SaleWorkflow
from services.user_service import UserService


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def _default_store() -> EntityStore:
    return create_store(get_settings())


def get_store() -> EntityStore:
    return _default_store()


def get_sale_workflow(store: EntityStore = Depends(get_store)) -> SaleWorkflow:
    return SaleWorkflow(store)


def get_inventory_service(store: EntityStore = Depends(get_store)) -> InventoryService:
    return InventoryService(store)


def get_customer_service(store: EntityStore = Depends(get_store)) -> CustomerService:
    return CustomerService(store)


def get_user_service(store: EntityStore = Depends(get_store)) -> UserService:
    return UserService(store)


def get_report_aggregator(
    store: EntityStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> ReportAggregator:
    return ReportAggregator(store, tz=settings.timezone, default_window=settings.trend_months)
