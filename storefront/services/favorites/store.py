"""Per-user storage slot for the last known favorites list."""

from __future__ import annotations

from collections.abc import Sequence

from storefront.cache import favorites_storage_key, write_json
from storefront.schemas.error import StorageResult
from storefront.storage import KeyValueStore


class FavoritesStore:
    """Write the ``user_favorites:<owner>`` slot.

    Writes are best effort: a full or unavailable store is logged and reported
    through the returned :class:`StorageResult`, never raised.
    """

    def __init__(self, storage: KeyValueStore) -> None:
        self._storage = storage

    def write(self, owner: str | None, items: Sequence[str]) -> StorageResult:
        """Persist ``items`` for ``owner`` (``None`` means the guest slot)."""

        return write_json(self._storage, favorites_storage_key(owner), list(items))
