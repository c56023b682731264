"""Favorites state shared by every UI surface of the storefront.

Each surface (header badge, product grid, favorites page) owns its own
:class:`FavoritesSynchronizer`.  Instances never patch their state
optimistically: after every successful call they adopt the item list returned
by the server, persist it to the per-user storage slot and broadcast it on the
event bus.  Other instances bound to the same owner adopt the broadcast list,
which keeps all surfaces consistent without a shared store.

Collaborators:
* :class:`FavoritesRemote`: REST calls returning the authoritative list.
* :class:`FavoritesStore`: best-effort ``user_favorites:<owner>`` slot.
* :class:`EventBus`: ``favorites:updated``, ``auth:required`` and
  ``auth:state-changed`` events.
* :class:`ProductLookupService`: optional, resolves favorites to products.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from pydantic import ValidationError

from storefront.errors import ApiError
from storefront.events import (
    AUTH_REQUIRED_EVENT,
    AUTH_STATE_CHANGED_EVENT,
    FAVORITES_UPDATED_EVENT,
    EventBus,
)
from storefront.identity import Identity, IdentitySource
from storefront.schemas.favorites import FavoritesState, FavoritesUpdate
from storefront.schemas.products import CachedProduct
from storefront.services.favorites import FavoritesRemote, FavoritesStore
from storefront.services.product_lookup_service import ProductLookupService

logger = logging.getLogger(__name__)

_REMOTE_FAILURES = (ApiError, httpx.HTTPError)


class FavoritesSynchronizer:
    """Per-surface favorites state kept in step with the server and its peers."""

    def __init__(
        self,
        *,
        remote: FavoritesRemote,
        store: FavoritesStore,
        events: EventBus,
        identity: IdentitySource,
        products: ProductLookupService | None = None,
    ) -> None:
        self._remote = remote
        self._store = store
        self._events = events
        self._identity_source = identity
        self._products = products
        self._identity: Identity = identity.customer()
        self._state = FavoritesState.empty()
        self.show_auth_modal = False
        self._closed = False
        self._unsubscribers = [
            events.subscribe(FAVORITES_UPDATED_EVENT, self._on_favorites_updated),
            events.subscribe(AUTH_STATE_CHANGED_EVENT, self._on_auth_state_changed),
        ]

    # ------------------------------------------------------------------
    # State accessors
    # ------------------------------------------------------------------
    @property
    def state(self) -> FavoritesState:
        return self._state

    @property
    def favorites(self) -> list[str]:
        return list(self._state.items)

    @property
    def count(self) -> int:
        return self._state.count

    @property
    def is_empty(self) -> bool:
        return self._state.count == 0

    @property
    def identity(self) -> Identity:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._identity.is_authenticated

    def get_favorites_count(self) -> int:
        return self._state.count

    def is_favorite(self, product_id: str) -> bool:
        return product_id in self._state.items

    def dismiss_auth_prompt(self) -> None:
        self.show_auth_modal = False

    # ------------------------------------------------------------------
    # Identity handling
    # ------------------------------------------------------------------
    def switch_identity(self, identity: Identity) -> bool:
        """Bind the synchronizer to ``identity``; returns ``True`` if the owner changed.

        A new owner starts from an empty state. Favorites are never carried
        over or merged between identities.
        """

        changed = identity.user_id != self._identity.user_id
        self._identity = identity
        if changed:
            self._state = FavoritesState.empty()
        return changed

    async def load(self, identity: Identity | None = None) -> FavoritesState:
        """Fetch the full favorites list for the current (or given) identity."""

        self._ensure_open()
        active = identity if identity is not None else self._identity_source.customer()
        self.switch_identity(active)

        if not active.is_authenticated or active.user_id is None:
            self._state = FavoritesState.empty()
            return self._state

        try:
            fetched = await self._remote.fetch(active.user_id)
        except _REMOTE_FAILURES as exc:
            logger.warning("Loading favorites for %s failed: %s", active.user_id, exc)
            if self._identity.user_id == active.user_id:
                self._state = FavoritesState.empty()
            return self._state

        self._adopt(active.user_id, fetched)
        return self._state

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def add_to_favorites(self, product_id: str) -> bool:
        self._ensure_open()
        user_id = self._identity.user_id
        if not user_id:
            self.show_auth_modal = True
            self._events.publish(
                AUTH_REQUIRED_EVENT, {"reason": "favorites", "productId": product_id}
            )
            return False
        return await self._mutate(user_id, lambda: self._remote.add(user_id, product_id))

    async def remove_from_favorites(self, product_id: str) -> bool:
        self._ensure_open()
        user_id = self._identity.user_id
        if not user_id:
            return False
        return await self._mutate(user_id, lambda: self._remote.remove(user_id, product_id))

    async def toggle_favorite(self, product_id: str) -> bool:
        if self.is_favorite(product_id):
            return await self.remove_from_favorites(product_id)
        return await self.add_to_favorites(product_id)

    async def clear_favorites(self) -> bool:
        self._ensure_open()
        user_id = self._identity.user_id
        if not user_id:
            return False
        return await self._mutate(user_id, lambda: self._remote.clear(user_id))

    async def get_favorite_products(self) -> list[CachedProduct]:
        """Resolve the favorite IDs to product projections, in favorites order."""

        if self._products is None or self.is_empty:
            return []
        return await self._products.get_products_by_ids(self._state.items)

    async def _mutate(
        self, user_id: str, call: Callable[[], Awaitable[FavoritesState]]
    ) -> bool:
        try:
            state = await call()
        except _REMOTE_FAILURES as exc:
            logger.warning("Favorites update for %s failed: %s", user_id, exc)
            return False
        self._adopt(user_id, state)
        return True

    def _adopt(self, owner: str, state: FavoritesState) -> None:
        """Take the server's list as truth, persist it and tell every peer.

        A response that arrives after this instance switched owners is still
        persisted and broadcast for its owner, but not applied locally.
        """

        if self._identity.owner_key == owner:
            self._state = state
        self._store.write(owner, state.items)
        self._events.publish(
            FAVORITES_UPDATED_EVENT, FavoritesUpdate(user_id=owner, items=state.items)
        )

    # ------------------------------------------------------------------
    # Event listeners
    # ------------------------------------------------------------------
    def _on_favorites_updated(self, payload: Any) -> None:
        try:
            update = (
                payload
                if isinstance(payload, FavoritesUpdate)
                else FavoritesUpdate.model_validate(payload)
            )
        except ValidationError as exc:
            logger.debug("Ignoring malformed favorites broadcast: %s", exc)
            return
        if update.user_id != self._identity.owner_key:
            return
        self._state = FavoritesState(items=update.items)

    def _on_auth_state_changed(self, payload: Any) -> None:
        identity = payload if isinstance(payload, Identity) else self._identity_source.customer()
        if self.switch_identity(identity):
            self.show_auth_modal = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []
        self._closed = True

    def __enter__(self) -> "FavoritesSynchronizer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("FavoritesSynchronizer used after close()")


__all__ = ["FavoritesSynchronizer"]
