"""Error classification shared by the storage, API and service layers."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ErrorType(str, Enum):
    """Types of errors that can occur."""

    STORAGE_ERROR = "storage_error"
    QUOTA_EXCEEDED = "quota_exceeded"
    NETWORK_ERROR = "network_error"
    TIMEOUT_ERROR = "timeout_error"
    REMOTE_ERROR = "remote_error"
    MALFORMED_RESPONSE = "malformed_response"
    AUTHENTICATION_ERROR = "authentication_error"
    AUTHORIZATION_ERROR = "authorization_error"


class StorageResult(BaseModel):
    """Outcome of a best-effort storage write.

    Public cache operations stay ``None``-returning; this result makes the
    swallowed failure path observable from tests and diagnostics.
    """

    ok: bool = Field(..., description="Whether the value reached the store")
    key: str = Field(..., description="Fully namespaced key that was written")
    error_type: ErrorType | None = Field(None, description="Category of failure")
    detail: str | None = Field(None, description="Failure message from the backend")

    @classmethod
    def success(cls, key: str) -> "StorageResult":
        return cls(ok=True, key=key)

    @classmethod
    def failure(cls, key: str, error_type: ErrorType, detail: str) -> "StorageResult":
        return cls(ok=False, key=key, error_type=error_type, detail=detail)


__all__ = ["ErrorType", "StorageResult"]
