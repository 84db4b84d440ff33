"""Domain exceptions raised by the price services.

Each exception carries a stable error code and the HTTP status the API layer
renders it with. Services raise these; routes never build HTTP errors for
domain failures themselves.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ShelfPriceError(Exception):
    """Base class for errors that map onto an API response."""

    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ShelfPriceError):
    """Malformed input. Never retried."""

    error_code = ErrorCode.VALIDATION_ERROR
    status_code = 422


class NotFoundError(ShelfPriceError):
    """A referenced product, store or price does not exist. Never retried."""

    error_code = ErrorCode.NOT_FOUND
    status_code = 404


class ConflictError(ShelfPriceError):
    """Idempotency-key race on insert.

    Resolved inside the ingestion service by re-reading the winning row; it
    only reaches the API if that re-read finds nothing.
    """

    error_code = ErrorCode.CONFLICT
    status_code = 409
