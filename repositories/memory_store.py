"""
In-memory entity store.

Default backend for local development and tests. Tables are dicts of
(entity, version) guarded by one lock. Reads copy under the lock; a commit
validates versions, unique keys and references against a staged copy of the
tables and only then swaps it in, so a rejected unit of work leaves no trace.

Entities are frozen dataclasses, so handing out the stored instances is safe.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from domain.errors import ConcurrentModificationError, ConflictError
from repositories.store import (
    ABSENT,
    REFERENCES,
    UNIQUE_FIELDS,
    BaseStore,
    EntityKind,
    VersionedRow,
    Write,
    entity_id,
)

logger = logging.getLogger(__name__)

Table = Dict[str, VersionedRow]


class InMemoryStore(BaseStore):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tables: Dict[EntityKind, Table] = {kind: {} for kind in EntityKind}

    # -- backend primitives ---------------------------------------------

    def _load(self, kind: EntityKind, entity_id: str) -> Optional[VersionedRow]:
        with self._lock:
            return self._tables[kind].get(entity_id)

    def _load_by_field(self, kind: EntityKind, field: str, value: Any) -> List[VersionedRow]:
        with self._lock:
            rows = list(self._tables[kind].values())
        return [row for row in rows if getattr(row[0], field) == value]

    def _load_all(self, kind: EntityKind) -> List[VersionedRow]:
        with self._lock:
            return list(self._tables[kind].values())

    def _load_many(self, kinds: Tuple[EntityKind, ...]) -> Dict[EntityKind, List[VersionedRow]]:
        with self._lock:
            return {kind: list(self._tables[kind].values()) for kind in kinds}

    def _commit(self, writes: List[Write]) -> None:
        with self._lock:
            staged = {kind: dict(table) for kind, table in self._tables.items()}

            for write in writes:
                current = staged[write.kind].get(write.entity_id)
                current_version = current[1] if current is not None else ABSENT
                if write.expected_version is not None and write.expected_version != current_version:
                    logger.info(
                        "Rejected stale write",
                        extra={
                            "table": write.kind.value,
                            "entity_id": write.entity_id,
                            "expected_version": write.expected_version,
                            "current_version": current_version,
                        },
                    )
                    raise ConcurrentModificationError(
                        f"{write.kind.value} entry {write.entity_id} was modified concurrently"
                    )
                if write.is_delete:
                    staged[write.kind].pop(write.entity_id, None)
                else:
                    staged[write.kind][write.entity_id] = (write.entity, current_version + 1)

            for write in writes:
                if write.is_delete:
                    _check_not_referenced(staged, write.kind, write.entity_id)
                else:
                    _check_unique(staged, write.kind, write.entity)
                    _check_references(staged, write.kind, write.entity)

            self._tables = staged

    def clear(self) -> None:
        with self._lock:
            self._tables = {kind: {} for kind in EntityKind}


def _check_unique(tables: Dict[EntityKind, Table], kind: EntityKind, entity: Any) -> None:
    own_id = entity_id(kind, entity)
    for (unique_kind, field), code in UNIQUE_FIELDS.items():
        if unique_kind is not kind:
            continue
        value = getattr(entity, field)
        for other_id, (other, _) in tables[kind].items():
            if other_id != own_id and getattr(other, field) == value:
                raise ConflictError(f"{field} already in use: {value}", code=code)


def _check_references(tables: Dict[EntityKind, Table], kind: EntityKind, entity: Any) -> None:
    for source_kind, field, target_kind in REFERENCES:
        if source_kind is not kind:
            continue
        target_id = getattr(entity, field)
        if target_id is not None and target_id not in tables[target_kind]:
            raise ConflictError(
                f"{kind.value}.{field} references missing {target_kind.value} entry {target_id}",
                code="REFERENCE_MISSING",
            )


def _check_not_referenced(tables: Dict[EntityKind, Table], kind: EntityKind, target_id: str) -> None:
    for source_kind, field, target_kind in REFERENCES:
        if target_kind is not kind:
            continue
        for other, _ in tables[source_kind].values():
            if getattr(other, field) == target_id:
                raise ConflictError(
                    f"{kind.value} entry {target_id} is still referenced by {source_kind.value}",
                    code="REFERENCED",
                )


__all__ = ["InMemoryStore"]
