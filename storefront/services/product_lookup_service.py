"""Resolve product IDs to cached projections, fetching only what is missing."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import httpx
from pydantic import ValidationError

from storefront.api_client import StorefrontApiClient
from storefront.errors import ApiError
from storefront.schemas.products import CachedProduct, ProductListResponse
from storefront.services.product_cache import ProductReferenceCache, build_products_from_api

logger = logging.getLogger(__name__)

PRODUCTS_PATH = "/api/products"
DEFAULT_PRODUCT_FIELDS: tuple[str, ...] = (
    "name",
    "nameAr",
    "price",
    "originalPrice",
    "image",
    "rating",
    "reviews",
)


def _unique_ids(ids: Iterable[object]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for raw_id in ids:
        product_id = str(raw_id)
        if product_id in seen:
            continue
        seen.add(product_id)
        ordered.append(product_id)
    return ordered


class ProductLookupService:
    """Merge cache hits with a single remote fetch for the misses."""

    def __init__(self, api: StorefrontApiClient, cache: ProductReferenceCache) -> None:
        self._api = api
        self._cache = cache

    async def get_products_by_ids(
        self,
        ids: Iterable[object],
        fields: Iterable[str] = DEFAULT_PRODUCT_FIELDS,
    ) -> list[CachedProduct]:
        """Return products for ``ids`` in the order they were requested.

        IDs that neither the cache nor the API can resolve are dropped.  When
        the fetch fails the cached subset is returned on its own.
        """

        requested = _unique_ids(ids)
        if not requested:
            return []

        lookup = self._cache.get_cached_products(requested)
        if not lookup.missing:
            return [lookup.map[product_id] for product_id in requested]

        fetched = await self._fetch(lookup.missing, fields)
        if fetched is None:
            return [lookup.map[pid] for pid in requested if pid in lookup.map]

        self._cache.cache_products(fetched)
        merged = dict(lookup.map)
        for product in fetched:
            if product.id:
                merged[product.id] = product
        return [merged[pid] for pid in requested if pid in merged]

    async def _fetch(
        self, missing: list[str], fields: Iterable[str]
    ) -> list[CachedProduct] | None:
        params = {"ids": ",".join(missing), "fields": ",".join(fields)}
        try:
            payload = await self._api.get(PRODUCTS_PATH, params=params)
            response = ProductListResponse.model_validate(payload)
        except (ApiError, httpx.HTTPError, ValidationError) as exc:
            logger.warning("Product fetch for %d ids failed: %s", len(missing), exc)
            return None

        if not response.ok:
            logger.warning("Product endpoint reported failure: %s", response.error)
            return None
        return build_products_from_api(response.items)


__all__ = ["DEFAULT_PRODUCT_FIELDS", "PRODUCTS_PATH", "ProductLookupService"]
