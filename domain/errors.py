"""
Domain: Error taxonomy.

Every failure a caller can act on is one of:
- ValidationError: malformed or missing input (caller's fault, never retried)
- NotFoundError: a referenced entity does not exist
- ConflictError: a state precondition is violated (wrong status, duplicate
  VIN/phone/username, delete blocked by a reference, lost a concurrent race)
- StorageError: the store failed or returned something unexpected

Each error carries a machine-readable `code` and a human `message` so the API
layer can render `{"code": ..., "message": ...}` without inspecting types.
"""

from __future__ import annotations


class DealershipError(Exception):
    """Base class for all domain and workflow errors."""

    status_code: int = 500
    default_code: str = "ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationError(DealershipError, ValueError):
    status_code = 400
    default_code = "VALIDATION_ERROR"


class NotFoundError(DealershipError):
    status_code = 404
    default_code = "NOT_FOUND"


class ConflictError(DealershipError):
    status_code = 409
    default_code = "CONFLICT"


class IllegalTransitionError(ConflictError):
    """Raised when a vehicle status change is not allowed from its current status."""

    default_code = "ILLEGAL_STATE"


class ConcurrentModificationError(ConflictError):
    """Raised when a unit of work lost an optimistic version check."""

    default_code = "CONCURRENT_MODIFICATION"


class StorageError(DealershipError):
    """Storage or unexpected failure. The message is never shown to API clients."""

    status_code = 500
    default_code = "STORAGE_ERROR"


__all__ = [
    "DealershipError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "IllegalTransitionError",
    "ConcurrentModificationError",
    "StorageError",
]
