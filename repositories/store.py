"""
Entity store contract.

The store is the only collaborator the workflow and reporting services talk
to. It keeps four collections (vehicles, customers, sale_records, users) keyed
by opaque string ids and offers:

- get / put / query_by_field / list_all / delete
- with_transaction(fn): fn receives a unit of work exposing the same surface;
  its writes are buffered and committed all-or-nothing.

Concurrency is optimistic. Every stored row carries a version. A unit of work
remembers the version of each row it read; at commit every row it writes or
deletes must still carry that version (or still be absent for inserts),
otherwise the whole unit is rejected with ConcurrentModificationError and
nothing is applied. Commit also enforces unique keys and references.

Backends implement `_load`, `_load_by_field`, `_load_all` and `_commit`; the
buffering logic lives in `UnitOfWork` and `BaseStore`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    runtime_checkable,
)

from domain.errors import NotFoundError

T = TypeVar("T")

# (entity, version) pair as held by a backend
VersionedRow = Tuple[Any, int]


class EntityKind(str, Enum):
    """Collections in the store; values are the table names."""

    VEHICLES = "vehicles"
    CUSTOMERS = "customers"
    SALE_RECORDS = "sale_records"
    USERS = "users"


ID_FIELDS: Dict[EntityKind, str] = {
    EntityKind.VEHICLES: "vehicle_id",
    EntityKind.CUSTOMERS: "customer_id",
    EntityKind.SALE_RECORDS: "sale_id",
    EntityKind.USERS: "user_id",
}

# (kind, field) -> conflict code
UNIQUE_FIELDS: Dict[Tuple[EntityKind, str], str] = {
    (EntityKind.VEHICLES, "vin"): "VIN_DUPLICATE",
    (EntityKind.CUSTOMERS, "phone"): "PHONE_DUPLICATE",
    (EntityKind.USERS, "username"): "USERNAME_DUPLICATE",
}

# (referencing kind, field, referenced kind)
REFERENCES: Tuple[Tuple[EntityKind, str, EntityKind], ...] = (
    (EntityKind.SALE_RECORDS, "vehicle_id", EntityKind.VEHICLES),
    (EntityKind.SALE_RECORDS, "customer_id", EntityKind.CUSTOMERS),
    (EntityKind.SALE_RECORDS, "handled_by_user_id", EntityKind.USERS),
    (EntityKind.VEHICLES, "reserved_customer_id", EntityKind.CUSTOMERS),
)

# Expected version meaning "the row must not exist yet"
ABSENT = 0


def entity_id(kind: EntityKind, entity: Any) -> str:
    return getattr(entity, ID_FIELDS[kind])


@dataclass(frozen=True, slots=True)
class Write:
    """
    One buffered change.

    entity is None for a delete. expected_version is None for a blind write,
    ABSENT when the row must not exist, or the version read in this unit.
    """

    kind: EntityKind
    entity_id: str
    entity: Optional[Any]
    expected_version: Optional[int]

    @property
    def is_delete(self) -> bool:
        return self.entity is None


@runtime_checkable
class EntityReader(Protocol):
    def get(self, kind: EntityKind, entity_id: str) -> Optional[Any]: ...

    def query_by_field(self, kind: EntityKind, field: str, value: Any) -> List[Any]: ...

    def list_all(self, kind: EntityKind) -> List[Any]: ...


@runtime_checkable
class EntityStore(EntityReader, Protocol):
    def snapshot(self, *kinds: EntityKind) -> Dict[EntityKind, List[Any]]: ...

    def put(self, kind: EntityKind, entity: T) -> T: ...

    def delete(self, kind: EntityKind, entity_id: str) -> None: ...

    def with_transaction(self, fn: Callable[["UnitOfWork"], T]) -> T: ...


_DELETED = object()


class UnitOfWork:
    """
    Transaction-scoped view of a store.

    Reads go to the backend (overlaid with this unit's own pending writes);
    writes are buffered until the owning store commits them.
    """

    def __init__(self, store: "BaseStore") -> None:
        self._store = store
        self._read_versions: Dict[Tuple[EntityKind, str], int] = {}
        self._pending: Dict[Tuple[EntityKind, str], Any] = {}
        self._expected: Dict[Tuple[EntityKind, str], Optional[int]] = {}

    def _remember(self, kind: EntityKind, row: VersionedRow) -> Any:
        entity, version = row
        self._read_versions.setdefault((kind, entity_id(kind, entity)), version)
        return entity

    def _overlay(self, kind: EntityKind, rows: List[VersionedRow], keep: Callable[[Any], bool]) -> List[Any]:
        seen = set()
        result: List[Any] = []
        for row in rows:
            entity = self._remember(kind, row)
            key = (kind, entity_id(kind, entity))
            seen.add(key)
            if key in self._pending:
                entity = self._pending[key]
                if entity is _DELETED or not keep(entity):
                    continue
            result.append(entity)
        for key, entity in self._pending.items():
            if key[0] is kind and key not in seen and entity is not _DELETED and keep(entity):
                result.append(entity)
        return result

    def get(self, kind: EntityKind, entity_id: str) -> Optional[Any]:
        key = (kind, entity_id)
        if key in self._pending:
            pending = self._pending[key]
            return None if pending is _DELETED else pending

        row = self._store._load(kind, entity_id)
        if row is None:
            self._read_versions.setdefault(key, ABSENT)
            return None
        return self._remember(kind, row)

    def query_by_field(self, kind: EntityKind, field: str, value: Any) -> List[Any]:
        rows = self._store._load_by_field(kind, field, value)
        return self._overlay(kind, rows, lambda entity: getattr(entity, field) == value)

    def list_all(self, kind: EntityKind) -> List[Any]:
        return self._overlay(kind, self._store._load_all(kind), lambda entity: True)

    def put(self, kind: EntityKind, entity: T) -> T:
        key = (kind, entity_id(kind, entity))
        if key not in self._expected:
            self._expected[key] = self._read_versions.get(key)
        self._pending[key] = entity
        return entity

    def delete(self, kind: EntityKind, entity_id: str) -> None:
        if self.get(kind, entity_id) is None:
            raise NotFoundError(f"{kind.value} entry not found: {entity_id}")
        key = (kind, entity_id)
        if key not in self._expected:
            self._expected[key] = self._read_versions.get(key)
        self._pending[key] = _DELETED

    def writes(self) -> List[Write]:
        return [
            Write(
                kind=kind,
                entity_id=key_id,
                entity=None if entity is _DELETED else entity,
                expected_version=self._expected.get((kind, key_id)),
            )
            for (kind, key_id), entity in self._pending.items()
        ]


class BaseStore:
    """Shared EntityStore surface; subclasses provide the backend primitives."""

    def _load(self, kind: EntityKind, entity_id: str) -> Optional[VersionedRow]:
        raise NotImplementedError

    def _load_by_field(self, kind: EntityKind, field: str, value: Any) -> List[VersionedRow]:
        raise NotImplementedError

    def _load_all(self, kind: EntityKind) -> List[VersionedRow]:
        raise NotImplementedError

    def _commit(self, writes: List[Write]) -> None:
        raise NotImplementedError

    def _load_many(self, kinds: Tuple[EntityKind, ...]) -> Dict[EntityKind, List[VersionedRow]]:
        return {kind: self._load_all(kind) for kind in kinds}

    def get(self, kind: EntityKind, entity_id: str) -> Optional[Any]:
        row = self._load(kind, entity_id)
        return row[0] if row is not None else None

    def query_by_field(self, kind: EntityKind, field: str, value: Any) -> List[Any]:
        return [entity for entity, _ in self._load_by_field(kind, field, value)]

    def list_all(self, kind: EntityKind) -> List[Any]:
        return [entity for entity, _ in self._load_all(kind)]

    def snapshot(self, *kinds: EntityKind) -> Dict[EntityKind, List[Any]]:
        """Whole collections read together; backends that can, read them under one lock."""

        rows = self._load_many(tuple(kinds))
        return {kind: [entity for entity, _ in rows[kind]] for kind in kinds}

    def put(self, kind: EntityKind, entity: T) -> T:
        return self.with_transaction(lambda tx: tx.put(kind, entity))

    def delete(self, kind: EntityKind, entity_id: str) -> None:
        self.with_transaction(lambda tx: tx.delete(kind, entity_id))

    def with_transaction(self, fn: Callable[[UnitOfWork], T]) -> T:
        unit = UnitOfWork(self)
        result = fn(unit)
        writes = unit.writes()
        if writes:
            self._commit(writes)
        return result


__all__ = [
    "EntityKind",
    "EntityReader",
    "EntityStore",
    "UnitOfWork",
    "BaseStore",
    "Write",
    "ID_FIELDS",
    "UNIQUE_FIELDS",
    "REFERENCES",
    "ABSENT",
    "entity_id",
]
