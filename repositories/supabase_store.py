"""
Supabase-backed entity store (persistence).

Reads use the supabase query builder directly. Writes never go through
`.insert()` / `.update()`: a committed unit of work is sent as one call to the
PostgreSQL function `commit_unit_of_work()` (see db/schema.sql), which:
- Locks every touched row
- Checks each row still has the version this unit read
- Applies every insert/update/delete
All in a single atomic transaction.

Every table has a `version` column maintained by that function.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from domain.errors import ConcurrentModificationError, ConflictError, StorageError
from repositories.rows import DECODERS, ENCODERS, encode_value
from repositories.store import ID_FIELDS, BaseStore, EntityKind, VersionedRow, Write

logger = logging.getLogger(__name__)

_COMMIT_FUNCTION: str = "commit_unit_of_work"

# PostgreSQL / function error codes
_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"
_VERSION_CONFLICT = "VERSION_CONFLICT"


def _rows_of(response: Any, action: str) -> List[Mapping[str, Any]]:
    error = getattr(response, "error", None)
    if error:
        raise StorageError(f"Failed to {action}: {error}")
    return getattr(response, "data", None) or []


def _versioned(kind: EntityKind, row: Mapping[str, Any]) -> VersionedRow:
    return DECODERS[kind](row), int(row.get("version") or 1)


def _write_payload(write: Write) -> Dict[str, Any]:
    return {
        "table": write.kind.value,
        "id_field": ID_FIELDS[write.kind],
        "id": write.entity_id,
        "row": None if write.is_delete else ENCODERS[write.kind](write.entity),
        "expected_version": write.expected_version,
    }


def _raise_for_result(result: Mapping[str, Any]) -> None:
    """Translate a failed commit result into the domain error taxonomy."""

    code = str(result.get("error") or "")
    message = str(result.get("message") or "commit rejected")

    if code == _VERSION_CONFLICT:
        raise ConcurrentModificationError(message)
    if code == _UNIQUE_VIOLATION:
        raise ConflictError(message, code="DUPLICATE")
    if code == _FOREIGN_KEY_VIOLATION:
        raise ConflictError(message, code="REFERENCED")
    raise StorageError(f"Commit failed ({code or 'UNKNOWN'}): {message}")


class SupabaseStore(BaseStore):
    def __init__(self, client: Any) -> None:
        self._client = client

    def _load(self, kind: EntityKind, entity_id: str) -> Optional[VersionedRow]:
        response = (
            self._client.table(kind.value)
            .select("*")
            .eq(ID_FIELDS[kind], entity_id)
            .limit(1)
            .execute()
        )
        rows = _rows_of(response, f"get {kind.value} entry")
        if not rows:
            return None
        return _versioned(kind, rows[0])

    def _load_by_field(self, kind: EntityKind, field: str, value: Any) -> List[VersionedRow]:
        query = self._client.table(kind.value).select("*")
        if value is None:
            query = query.is_(field, "null")
        else:
            query = query.eq(field, encode_value(value))
        response = query.order(ID_FIELDS[kind]).execute()
        rows = _rows_of(response, f"query {kind.value}")
        return [_versioned(kind, row) for row in rows]

    def _load_all(self, kind: EntityKind) -> List[VersionedRow]:
        response = self._client.table(kind.value).select("*").order(ID_FIELDS[kind]).execute()
        rows = _rows_of(response, f"list {kind.value}")
        return [_versioned(kind, row) for row in rows]

    def _commit(self, writes: List[Write]) -> None:
        from postgrest.exceptions import APIError

        payload = [_write_payload(write) for write in writes]

        try:
            response = self._client.rpc(_COMMIT_FUNCTION, {"p_writes": payload}).execute()
        except APIError as e:
            # Supabase-py raises APIError when the function returns JSON in some
            # client versions, for both success and error results.
            error_data = e.json() if callable(getattr(e, "json", None)) else {}
            if not isinstance(error_data, Mapping):
                error_data = {}
            if error_data.get("success") is True:
                return
            if error_data.get("error"):
                _raise_for_result(error_data)
            code = str(getattr(e, "code", "") or "")
            if code in (_UNIQUE_VIOLATION, _FOREIGN_KEY_VIOLATION):
                _raise_for_result({"error": code, "message": getattr(e, "message", str(e))})
            logger.exception("Unit of work commit failed", extra={"writes": len(payload)})
            raise StorageError(f"Commit failed: {e}") from e

        error = getattr(response, "error", None)
        if error:
            raise StorageError(f"Commit failed: {error}")

        result = getattr(response, "data", None) or {}
        if not result.get("success"):
            _raise_for_result(result)


__all__ = ["SupabaseStore"]
