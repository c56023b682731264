"""Pydantic schemas for partial product records shared across UI surfaces."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CachedProduct(BaseModel):
    """Product projection kept in the product reference cache."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    name: str = ""
    name_ar: str = Field("", alias="nameAr")
    price: float = 0.0
    original_price: float | None = Field(None, alias="originalPrice")
    image: str = ""
    rating: float = 0.0
    reviews: int = 0
    discount: float | None = None
    badge: str | None = None


class ProductListResponse(BaseModel):
    """Envelope returned by ``GET /api/products``."""

    ok: bool
    items: list[Any] = Field(default_factory=list)
    error: str | None = None

    @field_validator("items", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ProductSnapshot(BaseModel):
    """Persisted form of the product reference cache."""

    timestamp: int = Field(..., description="Epoch milliseconds of the write")
    items: list[CachedProduct] = Field(default_factory=list)


class StoredProductSnapshot(BaseModel):
    """Snapshot as read back from storage; items are validated one by one."""

    timestamp: int
    items: list[Any] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


__all__ = [
    "CachedProduct",
    "ProductListResponse",
    "ProductSnapshot",
    "StoredProductSnapshot",
]
