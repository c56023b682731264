"""Process-wide reference cache for partial product records.

Product cards across the storefront (favorites, home sections, carts) only need
a small projection of each product.  This module keeps those projections in an
insertion-ordered map that is hydrated once from the key/value store and
written back as a single snapshot on every update.
"""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from storefront.cache import PRODUCT_SNAPSHOT_KEY, write_json
from storefront.errors import StorageError
from storefront.schemas.error import StorageResult
from storefront.schemas.products import CachedProduct, ProductSnapshot, StoredProductSnapshot
from storefront.storage import KeyValueStore
from storefront.utils.clock import Clock, system_clock

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Cache policy constants
# ---------------------------------------------------------------------------
PRODUCT_CACHE_TTL_MS: int = 10 * 60 * 1000
PRODUCT_CACHE_MAX_ENTRIES: int = 2000


@dataclass
class CachedLookup:
    """Partition of requested IDs into cache hits and misses."""

    map: dict[str, CachedProduct] = field(default_factory=dict)
    missing: list[str] = field(default_factory=list)


class ProductReferenceCache:
    """Insertion-ordered product map persisted as one capped snapshot."""

    def __init__(
        self,
        storage: KeyValueStore,
        *,
        clock: Clock = system_clock,
        ttl_ms: int = PRODUCT_CACHE_TTL_MS,
        max_entries: int = PRODUCT_CACHE_MAX_ENTRIES,
        storage_key: str = PRODUCT_SNAPSHOT_KEY,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._ttl_ms = ttl_ms
        self._max_entries = max_entries
        self._storage_key = storage_key
        self._products: dict[str, CachedProduct] = {}
        self._hydrate()

    def __len__(self) -> int:
        return len(self._products)

    def __contains__(self, product_id: object) -> bool:
        return str(product_id) in self._products

    def _hydrate(self) -> None:
        """Load the persisted snapshot unless it is older than the TTL.

        Staleness is judged on the snapshot timestamp, so an old snapshot is
        dropped as a whole. Within a fresh snapshot, entries that fail
        validation or lack an id are skipped individually.
        """

        try:
            raw = self._storage.get_item(self._storage_key)
        except StorageError as exc:
            logger.warning("Product snapshot read failed: %s", exc)
            return
        if not raw:
            return

        try:
            payload = json.loads(raw)
            if isinstance(payload, dict) and "timestamp" not in payload and "ts" in payload:
                payload = {**payload, "timestamp": payload["ts"]}
            snapshot = StoredProductSnapshot.model_validate(payload)
        except (ValueError, ValidationError) as exc:
            logger.warning("Ignoring malformed product snapshot: %s", exc)
            return

        if self._clock() - snapshot.timestamp > self._ttl_ms:
            logger.debug("Product snapshot expired; starting with an empty cache")
            return

        skipped = 0
        for item in snapshot.items:
            try:
                product = CachedProduct.model_validate(item)
            except ValidationError:
                skipped += 1
                continue
            if not product.id:
                skipped += 1
                continue
            self._products[product.id] = product
        if skipped:
            logger.debug("Skipped %d unusable snapshot entries", skipped)
        logger.debug("Hydrated %d products from snapshot", len(self._products))

    def cache_products(self, products: Iterable[CachedProduct]) -> None:
        """Upsert ``products`` and persist the capped snapshot (best effort)."""

        for product in products:
            if product.id:
                self._products[str(product.id)] = product
        self.try_persist()

    def try_persist(self) -> StorageResult:
        """Write the first ``max_entries`` products and report the outcome."""

        items = list(self._products.values())[: self._max_entries]
        snapshot = ProductSnapshot(timestamp=self._clock(), items=items)
        return write_json(
            self._storage,
            self._storage_key,
            snapshot.model_dump(mode="json", by_alias=True),
        )

    def get_cached_products(self, ids: Iterable[Any]) -> CachedLookup:
        """Split ``ids`` into cached products and IDs that must be fetched."""

        lookup = CachedLookup()
        for product_id in ids:
            key = str(product_id)
            cached = self._products.get(key)
            if cached is not None:
                lookup.map[key] = cached
            else:
                lookup.missing.append(key)
        return lookup


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------
def _as_number(value: Any) -> float:
    """Coerce ``value`` to a finite float, defaulting to zero."""

    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def _optional_number(value: Any) -> float | None:
    if value is None:
        return None
    return _as_number(value)


def _first_image(raw: Mapping[str, Any]) -> str:
    image = raw.get("image")
    if image:
        return str(image)
    images = raw.get("images")
    if isinstance(images, Sequence) and not isinstance(images, str) and images:
        return str(images[0] or "")
    return ""


def build_product_from_api(raw: Mapping[str, Any]) -> CachedProduct:
    """Normalise one raw API product into the cached projection."""

    raw_id = raw.get("_id")
    if raw_id is None:
        raw_id = raw.get("id")
    name = str(raw.get("name") or "")
    badge = raw.get("badge")
    return CachedProduct(
        id="" if raw_id is None else str(raw_id),
        name=name,
        name_ar=str(raw.get("nameAr") or name),
        price=_as_number(raw.get("price")),
        original_price=_optional_number(raw.get("originalPrice")),
        image=_first_image(raw),
        rating=_as_number(raw.get("rating")),
        reviews=int(_as_number(raw.get("reviews"))),
        discount=_optional_number(raw.get("discount")),
        badge=str(badge) if badge else None,
    )


def build_products_from_api(items: Any) -> list[CachedProduct]:
    """Normalise a raw API ``items`` array; non-mapping entries are skipped."""

    if not isinstance(items, list):
        return []
    return [build_product_from_api(item) for item in items if isinstance(item, Mapping)]


__all__ = [
    "CachedLookup",
    "PRODUCT_CACHE_MAX_ENTRIES",
    "PRODUCT_CACHE_TTL_MS",
    "ProductReferenceCache",
    "build_product_from_api",
    "build_products_from_api",
]
