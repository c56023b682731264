"""Exception hierarchy raised by storefront infrastructure adapters.

Services never let these escape to their callers for expected failure modes;
they are converted to sentinel returns (``None``, ``False``, empty models).
"""

from __future__ import annotations

from storefront.schemas.error import ErrorType


class StorefrontError(Exception):
    """Base class for every error raised by the storefront core."""

    error_type: ErrorType = ErrorType.REMOTE_ERROR


class StorageError(StorefrontError):
    """Raised when the persistent key/value store cannot complete an operation."""

    error_type = ErrorType.STORAGE_ERROR


class StorageQuotaExceeded(StorageError):
    """Raised when a write would push the store beyond its capacity."""

    error_type = ErrorType.QUOTA_EXCEEDED


class ApiError(StorefrontError):
    """Raised when an API call fails or returns an unusable envelope."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_type: ErrorType = ErrorType.REMOTE_ERROR,
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.url = url

    def __repr__(self) -> str:
        return (
            f"ApiError(message={self.message!r}, status_code={self.status_code!r},"
            f" error_type={self.error_type.value!r})"
        )


__all__ = [
    "ApiError",
    "StorageError",
    "StorageQuotaExceeded",
    "StorefrontError",
]
