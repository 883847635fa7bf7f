"""Application exceptions and the error codes surfaced to API clients."""
from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    INVALID_STATUS = "INVALID_STATUS"
    MISSING_REASON = "MISSING_REASON"
    INCOMPLETE_ACTORS = "INCOMPLETE_ACTORS"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    PAYMENT_REQUIRED = "PAYMENT_REQUIRED"
    POLICY_NOT_FOUND = "POLICY_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.original_error = original_error


class StorageUnavailable(AppError):
    """Raised when the database cannot complete a read or write."""

    code = ErrorCode.STORAGE_UNAVAILABLE
