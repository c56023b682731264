from __future__ import annotations

import json
import logging
from typing import Any

from storefront.errors import StorageError
from storefront.identity import GUEST_USER_ID
from storefront.schemas.error import ErrorType, StorageResult
from storefront.storage import KeyValueStore
from storefront.utils.clock import Clock, system_clock

logger = logging.getLogger(__name__)

CACHE_PREFIX = "api_cache_"
DEFAULT_TTL_MS = 5 * 60 * 1000

_FAVORITES_PREFIX = "user_favorites"
PRODUCT_SNAPSHOT_KEY = "product_cache_v1"


def favorites_storage_key(user_id: str | None) -> str:
    return f"{_FAVORITES_PREFIX}:{user_id or GUEST_USER_ID}"


def write_json(storage: KeyValueStore, key: str, value: Any) -> StorageResult:
    """Serialise ``value`` into ``storage`` and report the outcome instead of raising."""

    try:
        encoded = json.dumps(value, default=str)
    except (TypeError, ValueError) as exc:
        logger.warning("Could not serialise value for key %s: %s", key, exc)
        return StorageResult.failure(key, ErrorType.STORAGE_ERROR, str(exc))
    try:
        storage.set_item(key, encoded)
    except StorageError as exc:
        logger.warning("Storage write failed for key %s: %s", key, exc)
        return StorageResult.failure(key, exc.error_type, str(exc))
    return StorageResult.success(key)


class TTLCache:
    """Expiring key/value cache persisted through a :class:`KeyValueStore`.

    Entries are stored as ``{"data": ..., "timestamp": <epoch ms>, "ttl": <ms>}``.
    An entry stays readable while ``now - timestamp <= ttl``.  Expiry is only
    discovered on read; nothing sweeps the store in the background.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        *,
        clock: Clock = system_clock,
        default_ttl_ms: int = DEFAULT_TTL_MS,
        prefix: str = CACHE_PREFIX,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._default_ttl_ms = default_ttl_ms
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> Any | None:
        """Return the cached data for ``key`` or ``None`` on a miss.

        Missing, malformed and expired entries are all misses; the latter two
        are removed from the store as a side effect.
        """

        storage_key = self._key(key)
        try:
            raw = self._storage.get_item(storage_key)
        except StorageError as exc:
            logger.warning("Cache read error for key %s: %s", storage_key, exc)
            return None
        if raw is None:
            return None

        try:
            entry = json.loads(raw)
            data = entry["data"]
            timestamp = int(entry["timestamp"])
            ttl = int(entry["ttl"])
        except (ValueError, TypeError, KeyError, OverflowError) as exc:
            logger.warning("Discarding malformed cache entry %s: %s", storage_key, exc)
            self._remove(storage_key)
            return None

        if self._clock() - timestamp > ttl:
            self._remove(storage_key)
            return None
        return data

    def set(self, key: str, data: Any, ttl: int | None = None) -> None:
        """Persist ``data`` for ``ttl`` milliseconds; failures are only logged.

        ``ttl=None`` uses the default lifetime. Any explicit value is stored as
        given, so ``0`` or a negative ttl expires the entry almost at once.
        """

        self.try_set(key, data, ttl)

    def try_set(self, key: str, data: Any, ttl: int | None = None) -> StorageResult:
        """Same as :meth:`set` but returns the outcome of the write."""

        entry = {
            "data": data,
            "timestamp": self._clock(),
            "ttl": self._default_ttl_ms if ttl is None else ttl,
        }
        return write_json(self._storage, self._key(key), entry)

    def clear(self, key: str) -> None:
        self._remove(self._key(key))

    def clear_all(self, prefix: str = "") -> None:
        """Remove every entry owned by this cache, optionally narrowed by ``prefix``."""

        namespace = self._key(prefix)
        try:
            matching_keys = [key for key in self._storage.keys() if key.startswith(namespace)]
        except StorageError as exc:
            logger.warning("Clear all cache error: %s", exc)
            return
        for matching_key in matching_keys:
            self._remove(matching_key)

    def _remove(self, storage_key: str) -> None:
        try:
            self._storage.remove_item(storage_key)
        except StorageError as exc:
            logger.warning("Cache clear error for key %s: %s", storage_key, exc)


__all__ = [
    "CACHE_PREFIX",
    "DEFAULT_TTL_MS",
    "PRODUCT_SNAPSHOT_KEY",
    "TTLCache",
    "favorites_storage_key",
    "write_json",
]
