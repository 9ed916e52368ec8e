"""
Customer service.

CRUD for buyers and sellers. Phone numbers are unique; a customer cannot be
deleted while a SaleRecord or a vehicle reservation references them.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from domain.customer import Customer, CustomerCategory
from domain.errors import ConflictError, NotFoundError, ValidationError
from domain.sale import SaleStatus
from domain.time import utc_now
from repositories.store import EntityKind, EntityStore, UnitOfWork

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "phone", "category", "contact_info", "notes")

# Picker size when no keyword narrows the unpurchased list
UNPURCHASED_DEFAULT_LIMIT = 10


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _matches(customer: Customer, needle: str) -> bool:
    return needle in customer.name.lower() or needle in customer.phone.lower()


def _phone_taken(tx: UnitOfWork, phone: str, exclude_id: Optional[str] = None) -> bool:
    return any(c.customer_id != exclude_id for c in tx.query_by_field(EntityKind.CUSTOMERS, "phone", phone))


class CustomerService:
    def __init__(self, store: EntityStore, clock: Callable[[], datetime] = utc_now) -> None:
        self._store = store
        self._clock = clock

    def get_customer(self, customer_id: str) -> Customer:
        customer = self._store.get(EntityKind.CUSTOMERS, customer_id)
        if customer is None:
            raise NotFoundError(f"Customer not found: {customer_id}", code="CUSTOMER_NOT_FOUND")
        return customer

    def list_customers(self) -> List[Customer]:
        return self._store.list_all(EntityKind.CUSTOMERS)

    def search_customers(self, keyword: Optional[str]) -> List[Customer]:
        """Case-insensitive substring match on name or phone; blank keyword lists everyone."""

        keyword = _clean(keyword)
        customers = self.list_customers()
        if keyword is None:
            return customers
        needle = keyword.lower()
        return [c for c in customers if _matches(c, needle)]

    def list_unpurchased_customers(self, keyword: Optional[str] = None) -> List[Customer]:
        """
        Buyers without a COMPLETED sale, newest first, for the sale form's customer picker.

        A keyword filters by name or phone like `search_customers`; without one
        only the UNPURCHASED_DEFAULT_LIMIT most recently added buyers are returned.
        Open reservations and cancelled records do not count as purchases.
        """

        keyword = _clean(keyword)
        data = self._store.snapshot(EntityKind.CUSTOMERS, EntityKind.SALE_RECORDS)
        purchased = {
            sale.customer_id
            for sale in data[EntityKind.SALE_RECORDS]
            if sale.status is SaleStatus.COMPLETED
        }

        candidates = [
            c
            for c in data[EntityKind.CUSTOMERS]
            if c.category is CustomerCategory.BUYER and c.customer_id not in purchased
        ]
        if keyword is not None:
            needle = keyword.lower()
            candidates = [c for c in candidates if _matches(c, needle)]
        candidates.sort(key=lambda c: c.date_added, reverse=True)

        return candidates if keyword is not None else candidates[:UNPURCHASED_DEFAULT_LIMIT]

    def create_customer(
        self,
        name: str,
        phone: str,
        category: CustomerCategory = CustomerCategory.BUYER,
        contact_info: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Customer:
        customer = Customer(
            customer_id=str(uuid4()),
            name=(name or "").strip(),
            phone=(phone or "").strip(),
            category=CustomerCategory(category),
            contact_info=_clean(contact_info),
            notes=_clean(notes),
            date_added=self._clock(),
        )

        def apply(tx: UnitOfWork) -> Customer:
            if _phone_taken(tx, customer.phone):
                raise ConflictError("Phone number already exists", code="PHONE_DUPLICATE")
            return tx.put(EntityKind.CUSTOMERS, customer)

        created = self._store.with_transaction(apply)
        logger.info("Customer created", extra={"customer_id": created.customer_id})
        return created

    def update_customer(self, customer_id: str, changes: Dict[str, Any]) -> Customer:
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}", code="PARAM_ERROR")

        updates = dict(changes)
        for name in ("name", "phone"):
            if name in updates:
                updates[name] = (updates[name] or "").strip()
        for name in ("contact_info", "notes"):
            if name in updates:
                updates[name] = _clean(updates[name])
        if "category" in updates:
            updates["category"] = CustomerCategory(updates["category"])

        def apply(tx: UnitOfWork) -> Customer:
            current = tx.get(EntityKind.CUSTOMERS, customer_id)
            if current is None:
                raise NotFoundError(f"Customer not found: {customer_id}", code="CUSTOMER_NOT_FOUND")
            updated = current.with_changes(**updates)
            if updated.phone != current.phone and _phone_taken(tx, updated.phone, exclude_id=customer_id):
                raise ConflictError("Phone number already exists", code="PHONE_DUPLICATE")
            return tx.put(EntityKind.CUSTOMERS, updated)

        return self._store.with_transaction(apply)

    def delete_customer(self, customer_id: str) -> None:
        def apply(tx: UnitOfWork) -> None:
            if tx.get(EntityKind.CUSTOMERS, customer_id) is None:
                raise NotFoundError(f"Customer not found: {customer_id}", code="CUSTOMER_NOT_FOUND")
            if tx.query_by_field(EntityKind.VEHICLES, "reserved_customer_id", customer_id):
                raise ConflictError(
                    f"Customer {customer_id} holds a vehicle reservation and cannot be deleted",
                    code="REFERENCED",
                )
            if tx.query_by_field(EntityKind.SALE_RECORDS, "customer_id", customer_id):
                raise ConflictError(
                    f"Customer {customer_id} is referenced by sale records and cannot be deleted",
                    code="REFERENCED",
                )
            tx.delete(EntityKind.CUSTOMERS, customer_id)

        self._store.with_transaction(apply)
        logger.info("Customer deleted", extra={"customer_id": customer_id})


__all__ = ["CustomerService", "EDITABLE_FIELDS", "UNPURCHASED_DEFAULT_LIMIT"]
