"""Typed wrappers around the favorites REST endpoints."""

from __future__ import annotations

from urllib.parse import quote

from storefront.api_client import StorefrontApiClient
from storefront.errors import ApiError
from storefront.schemas.error import ErrorType
from storefront.schemas.favorites import FavoritesResponse, FavoritesState


def _favorites_path(user_id: str, product_id: str | None = None) -> str:
    path = f"/api/users/{quote(user_id, safe='')}/favorites"
    if product_id is not None:
        path = f"{path}/{quote(product_id, safe='')}"
    return path


class FavoritesRemote:
    """Call the favorites endpoints and return the server's authoritative list.

    Every method raises :class:`ApiError` (or ``httpx.HTTPError`` for transport
    failures) when the call does not yield a usable ``{"ok": true}`` envelope.
    """

    def __init__(self, api: StorefrontApiClient) -> None:
        self._api = api

    async def fetch(self, user_id: str) -> FavoritesState:
        return self._parse(await self._api.get(_favorites_path(user_id)))

    async def add(self, user_id: str, product_id: str) -> FavoritesState:
        return self._parse(await self._api.post_json(_favorites_path(user_id, product_id), {}))

    async def remove(self, user_id: str, product_id: str) -> FavoritesState:
        return self._parse(await self._api.delete(_favorites_path(user_id, product_id)))

    async def clear(self, user_id: str) -> FavoritesState:
        return self._parse(await self._api.delete(_favorites_path(user_id)))

    @staticmethod
    def _parse(payload: dict[str, object]) -> FavoritesState:
        try:
            response = FavoritesResponse.model_validate(payload)
        except ValueError as exc:
            raise ApiError(
                f"Malformed favorites envelope: {exc}",
                error_type=ErrorType.MALFORMED_RESPONSE,
            ) from exc
        if not response.ok:
            raise ApiError(response.error or "Favorites request was rejected")
        return response.to_state()
