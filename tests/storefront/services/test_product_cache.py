"""Tests for the product reference cache and the ID lookup built on it."""

from __future__ import annotations

import json

import pytest

from storefront.api_client import StorefrontApiClient
from storefront.cache import PRODUCT_SNAPSHOT_KEY
from storefront.schemas.error import ErrorType
from storefront.schemas.products import CachedProduct
from storefront.services.product_cache import (
    PRODUCT_CACHE_TTL_MS,
    ProductReferenceCache,
    build_product_from_api,
    build_products_from_api,
)
from storefront.services.product_lookup_service import PRODUCTS_PATH, ProductLookupService
from storefront.storage import MemoryStorage
from storefront.utils.clock import ManualClock
from tests.support.fake_api import FakeStorefrontApi


def _product(product_id: str, **overrides: object) -> CachedProduct:
    return CachedProduct(id=product_id, name=f"Product {product_id}", **overrides)


@pytest.fixture
def product_cache(storage: MemoryStorage, clock: ManualClock) -> ProductReferenceCache:
    return ProductReferenceCache(storage, clock=clock)


@pytest.fixture
def lookup(api: StorefrontApiClient, product_cache: ProductReferenceCache) -> ProductLookupService:
    return ProductLookupService(api, product_cache)


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------
def test_build_product_defaults_and_fallbacks() -> None:
    product = build_product_from_api(
        {
            "_id": 42,
            "name": "Lamp",
            "price": "12.5",
            "rating": "not a number",
            "images": ["first.png", "second.png"],
            "badge": "",
        }
    )

    assert product.id == "42"
    assert product.name_ar == "Lamp"
    assert product.price == 12.5
    assert product.rating == 0.0
    assert product.reviews == 0
    assert product.image == "first.png"
    assert product.original_price is None
    assert product.badge is None


def test_build_product_prefers_explicit_fields() -> None:
    product = build_product_from_api(
        {
            "_id": "p1",
            "id": "ignored",
            "name": "Chair",
            "nameAr": "كرسي",
            "image": "chair.png",
            "images": ["other.png"],
            "originalPrice": 99,
            "discount": 10,
            "reviews": 7.9,
            "badge": "new",
        }
    )

    assert product.id == "p1"
    assert product.name_ar == "كرسي"
    assert product.image == "chair.png"
    assert product.original_price == 99.0
    assert product.discount == 10.0
    assert product.reviews == 7
    assert product.badge == "new"


def test_build_products_skips_non_mappings() -> None:
    assert build_products_from_api(None) == []
    assert [p.id for p in build_products_from_api([{"id": "a"}, "junk", 3])] == ["a"]


# ---------------------------------------------------------------------------
# Reference cache
# ---------------------------------------------------------------------------
def test_cache_products_upserts_and_persists(
    product_cache: ProductReferenceCache, storage: MemoryStorage, clock: ManualClock
) -> None:
    product_cache.cache_products([_product("a"), _product("b")])
    product_cache.cache_products([_product("a", price=5.0), CachedProduct(id="", name="no id")])

    lookup = product_cache.get_cached_products(["a", "b", "c"])
    assert lookup.map["a"].price == 5.0
    assert lookup.missing == ["c"]
    assert len(product_cache) == 2

    snapshot = json.loads(storage.get_item(PRODUCT_SNAPSHOT_KEY) or "{}")
    assert snapshot["timestamp"] == clock()
    assert [item["id"] for item in snapshot["items"]] == ["a", "b"]
    assert "nameAr" in snapshot["items"][0]


def test_snapshot_is_capped_to_first_entries(
    storage: MemoryStorage, clock: ManualClock
) -> None:
    cache = ProductReferenceCache(storage, clock=clock, max_entries=2)

    cache.cache_products([_product("a"), _product("b"), _product("c")])

    snapshot = json.loads(storage.get_item(PRODUCT_SNAPSHOT_KEY) or "{}")
    assert [item["id"] for item in snapshot["items"]] == ["a", "b"]
    assert "c" in cache


def test_fresh_snapshot_hydrates_new_instance(
    product_cache: ProductReferenceCache, storage: MemoryStorage, clock: ManualClock
) -> None:
    product_cache.cache_products([_product("a", price=3.0)])
    clock.advance(PRODUCT_CACHE_TTL_MS)

    rehydrated = ProductReferenceCache(storage, clock=clock)

    assert rehydrated.get_cached_products(["a"]).map["a"].price == 3.0


def test_stale_snapshot_is_discarded_whole(
    product_cache: ProductReferenceCache, storage: MemoryStorage, clock: ManualClock
) -> None:
    product_cache.cache_products([_product("a"), _product("b")])
    clock.advance(PRODUCT_CACHE_TTL_MS + 1)

    rehydrated = ProductReferenceCache(storage, clock=clock)

    assert len(rehydrated) == 0


def test_legacy_ts_snapshot_is_accepted(storage: MemoryStorage, clock: ManualClock) -> None:
    storage.set_item(
        PRODUCT_SNAPSHOT_KEY,
        json.dumps({"ts": clock(), "items": [{"id": "legacy", "name": "Old"}]}),
    )

    cache = ProductReferenceCache(storage, clock=clock)

    assert "legacy" in cache


def test_unusable_snapshot_entries_are_skipped_individually(
    storage: MemoryStorage, clock: ManualClock
) -> None:
    storage.set_item(
        PRODUCT_SNAPSHOT_KEY,
        json.dumps(
            {
                "timestamp": clock(),
                "items": [
                    {"id": "good", "name": "Kept"},
                    {"name": "no id"},
                    {"id": "", "name": "blank id"},
                    {"id": "bad-price", "price": "free"},
                    "junk",
                    {"id": "also-good"},
                ],
            }
        ),
    )

    cache = ProductReferenceCache(storage, clock=clock)

    assert "good" in cache
    assert "also-good" in cache
    assert len(cache) == 2


@pytest.mark.parametrize(
    "raw",
    [
        "{",
        "[]",
        json.dumps({"items": []}),
        json.dumps({"timestamp": 1, "items": "not a list"}),
        '{"timestamp": Infinity, "items": []}',
    ],
)
def test_malformed_snapshot_starts_empty(
    storage: MemoryStorage, clock: ManualClock, raw: str
) -> None:
    storage.set_item(PRODUCT_SNAPSHOT_KEY, raw)

    assert len(ProductReferenceCache(storage, clock=clock)) == 0


def test_full_storage_keeps_memory_cache(clock: ManualClock) -> None:
    storage = MemoryStorage(quota_bytes=16)
    cache = ProductReferenceCache(storage, clock=clock)

    cache.cache_products([_product("a")])

    assert "a" in cache
    assert cache.try_persist().error_type is ErrorType.QUOTA_EXCEEDED


# ---------------------------------------------------------------------------
# Lookup service
# ---------------------------------------------------------------------------
@pytest.mark.asyncio
async def test_lookup_fetches_only_missing_ids(
    lookup: ProductLookupService,
    product_cache: ProductReferenceCache,
    fake_api: FakeStorefrontApi,
) -> None:
    product_cache.cache_products([_product("a")])
    fake_api.products = {"b": {"_id": "b", "name": "Fetched", "price": 4}}

    products = await lookup.get_products_by_ids(["b", "a", "zzz", "b"])

    assert [p.id for p in products] == ["b", "a"]
    request = fake_api.calls("GET", PRODUCTS_PATH)[0]
    assert request.url.params["ids"] == "b,zzz"
    assert request.url.params["fields"].split(",")[0] == "name"
    assert "b" in product_cache


@pytest.mark.asyncio
async def test_lookup_served_from_cache_without_request(
    lookup: ProductLookupService,
    product_cache: ProductReferenceCache,
    fake_api: FakeStorefrontApi,
) -> None:
    product_cache.cache_products([_product("a"), _product("b")])

    products = await lookup.get_products_by_ids(["b", "a"])

    assert [p.id for p in products] == ["b", "a"]
    assert fake_api.requests == []


@pytest.mark.asyncio
async def test_empty_request_returns_empty(
    lookup: ProductLookupService, fake_api: FakeStorefrontApi
) -> None:
    assert await lookup.get_products_by_ids([]) == []
    assert fake_api.requests == []


@pytest.mark.parametrize("network", [False, True])
@pytest.mark.asyncio
async def test_fetch_failure_returns_cached_subset(
    lookup: ProductLookupService,
    product_cache: ProductReferenceCache,
    fake_api: FakeStorefrontApi,
    network: bool,
) -> None:
    product_cache.cache_products([_product("a")])
    if network:
        fake_api.raise_network_error = True
    else:
        fake_api.fail_paths[PRODUCTS_PATH] = 503

    products = await lookup.get_products_by_ids(["missing", "a"])

    assert [p.id for p in products] == ["a"]
    assert "missing" not in product_cache


def test_default_cap_holds_after_overflow(
    product_cache: ProductReferenceCache, storage: MemoryStorage
) -> None:
    product_cache.cache_products(_product(f"p{index}") for index in range(2001))

    snapshot = json.loads(storage.get_item(PRODUCT_SNAPSHOT_KEY) or "{}")
    assert len(snapshot["items"]) == 2000
    assert snapshot["items"][-1]["id"] == "p1999"
    assert len(product_cache) == 2001
