"""
Error translation for the HTTP layer.

Domain errors carry a machine-readable code and a status code; routers turn
them into HTTPException with detail {"code", "message"}. Storage failures
never leak their internal message to the client.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException

from domain.errors import DealershipError, StorageError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal server error"


def to_http_exception(error: DealershipError) -> HTTPException:
    if isinstance(error, StorageError):
        logger.error("Storage failure", extra={"code": error.code, "error_message": error.message})
        return HTTPException(
            status_code=error.status_code,
            detail={"code": error.code, "message": GENERIC_ERROR_MESSAGE},
        )
    return HTTPException(
        status_code=error.status_code,
        detail={"code": error.code, "message": error.message},
    )


def unexpected_error(action: str) -> HTTPException:
    """500 for an exception outside the domain taxonomy; call from an except block."""

    logger.exception("Unexpected failure while trying to %s", action)
    return HTTPException(
        status_code=500,
        detail={"code": "INTERNAL_ERROR", "message": GENERIC_ERROR_MESSAGE},
    )


__all__ = ["to_http_exception", "unexpected_error", "GENERIC_ERROR_MESSAGE"]
