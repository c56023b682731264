"""Synchronous key/value substrates backing the storefront caches.

Every backend exposes the same four string-oriented operations so that the
TTL cache, the favorites slot and the product snapshot never care where their
bytes end up.  Failures surface as :class:`~storefront.errors.StorageError`;
callers are expected to tolerate them rather than retry.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Protocol, runtime_checkable

from redis import Redis
from redis.exceptions import RedisError

from storefront.errors import StorageError, StorageQuotaExceeded

logger = logging.getLogger(__name__)


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal string store mirroring the browser ``Storage`` interface."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def keys(self) -> Iterator[str]: ...


class MemoryStorage:
    """Process-local store with an optional byte quota.

    The quota counts the UTF-8 size of keys plus values, which is close enough
    to how browsers account for ``localStorage`` to exercise the quota path.
    """

    def __init__(self, *, quota_bytes: int | None = None) -> None:
        self._items: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    def _size_with(self, key: str, value: str) -> int:
        total = 0
        for existing_key, existing_value in self._items.items():
            if existing_key == key:
                continue
            total += len(existing_key.encode("utf-8")) + len(existing_value.encode("utf-8"))
        return total + len(key.encode("utf-8")) + len(value.encode("utf-8"))

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self._quota_bytes is not None and self._size_with(key, value) > self._quota_bytes:
            raise StorageQuotaExceeded(
                f"Writing {key!r} would exceed the {self._quota_bytes} byte quota"
            )
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def keys(self) -> Iterator[str]:
        return iter(list(self._items))

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)


class RedisStorage:
    """Redis-backed store namespaced under ``prefix``."""

    def __init__(self, client: Redis, *, prefix: str = "") -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, *, prefix: str = "") -> "RedisStorage":
        client = Redis.from_url(url, decode_responses=True, encoding="utf-8")
        return cls(client, prefix=prefix)

    def _key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get_item(self, key: str) -> str | None:
        try:
            return self._client.get(self._key(key))
        except RedisError as exc:
            raise StorageError(f"Redis get failed for key {key}: {exc}") from exc

    def set_item(self, key: str, value: str) -> None:
        try:
            self._client.set(self._key(key), value)
        except RedisError as exc:
            raise StorageError(f"Redis set failed for key {key}: {exc}") from exc

    def remove_item(self, key: str) -> None:
        try:
            self._client.delete(self._key(key))
        except RedisError as exc:
            raise StorageError(f"Redis delete failed for key {key}: {exc}") from exc

    def keys(self) -> Iterator[str]:
        try:
            raw_keys = list(self._client.scan_iter(match=f"{self._prefix}*"))
        except RedisError as exc:
            raise StorageError(f"Redis scan failed: {exc}") from exc
        return iter(raw_key[len(self._prefix) :] for raw_key in raw_keys)

    def close(self) -> None:
        self._client.close()


__all__ = ["KeyValueStore", "MemoryStorage", "RedisStorage"]
