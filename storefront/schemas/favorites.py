"""Pydantic schemas that power the favorites synchronizer."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


def clean_product_ids(values: Iterable[Any]) -> list[str]:
    """Keep non-blank string IDs, dropping duplicates but preserving order."""

    seen: set[str] = set()
    cleaned: list[str] = []
    for value in values:
        if not isinstance(value, str) or not value.strip():
            continue
        if value in seen:
            continue
        seen.add(value)
        cleaned.append(value)
    return cleaned


class FavoritesState(BaseModel):
    """Immutable favorites snapshot; ``count`` always equals ``len(items)``."""

    model_config = ConfigDict(frozen=True)

    items: tuple[str, ...] = Field(
        default_factory=tuple,
        description="Favorite product IDs in server order without duplicates.",
    )

    @field_validator("items", mode="before")
    @classmethod
    def _dedupe_items(cls, value: Any) -> tuple[str, ...]:
        if value is None:
            return ()
        if isinstance(value, (str, bytes)):
            raise ValueError("items must be a sequence of product IDs")
        return tuple(clean_product_ids(value))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def count(self) -> int:
        return len(self.items)

    @classmethod
    def empty(cls) -> "FavoritesState":
        return cls(items=())


class FavoritesUpdate(BaseModel):
    """Payload broadcast on ``favorites:updated``."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    items: tuple[str, ...] = Field(default_factory=tuple)


class FavoritesResponse(BaseModel):
    """Envelope returned by the favorites endpoints.

    ``items`` is kept loose on purpose: non-string entries are filtered out
    when the response is turned into a :class:`FavoritesState`.
    """

    ok: bool
    items: list[Any] = Field(default_factory=list)
    error: str | None = None

    @field_validator("items", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def to_state(self) -> FavoritesState:
        return FavoritesState(items=self.items)


__all__ = [
    "FavoritesResponse",
    "FavoritesState",
    "FavoritesUpdate",
    "clean_product_ids",
]
