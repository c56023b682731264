"""Application shell wiring the storefront core services together.

The shell owns the process-wide singletons (storage, event bus, API client,
permission resolver, product cache) and hands out one
:class:`FavoritesSynchronizer` per UI surface.
"""

from __future__ import annotations

import logging

import httpx

from storefront.api_client import StorefrontApiClient
from storefront.cache import TTLCache
from storefront.errors import StorageError
from storefront.events import AUTH_STATE_CHANGED_EVENT, EventBus
from storefront.identity import (
    ADMIN_KEYS,
    ANONYMOUS,
    AUTH_MODE_KEY,
    CUSTOMER_KEYS,
    IdentitySource,
)
from storefront.services.favorites import FavoritesRemote, FavoritesStore
from storefront.services.favorites_service import FavoritesSynchronizer
from storefront.services.permission_service import PermissionResolver
from storefront.services.product_cache import ProductReferenceCache
from storefront.services.product_lookup_service import ProductLookupService
from storefront.settings import AppSettings, get_settings
from storefront.storage import KeyValueStore, MemoryStorage, RedisStorage
from storefront.utils.clock import Clock, system_clock

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(active_settings: AppSettings | None = None) -> None:
    """Configure root logging from ``LOG_LEVEL``."""

    resolved = active_settings or get_settings()
    logging.basicConfig(level=resolved.log_level_numeric, format=_LOG_FORMAT)


def _validate_environment(active_settings: AppSettings | None = None) -> None:
    """Log warnings for optional configuration that was left unset."""

    resolved = active_settings or get_settings()
    warnings = resolved.optional_config_warnings()

    if warnings:
        logger.warning("=" * 60)
        logger.warning("Environment Configuration Warnings:")
        for warning in warnings:
            logger.warning("  • %s", warning)
        logger.warning("=" * 60)


def build_storage(active_settings: AppSettings) -> KeyValueStore:
    """Instantiate the key/value backend selected in settings."""

    backend = active_settings.resolved_storage_backend
    if backend == "redis":
        logger.info("Using redis storage at %s", active_settings.redis_url)
        return RedisStorage.from_url(
            active_settings.redis_url, prefix=active_settings.storage_key_prefix
        )
    return MemoryStorage()


class StorefrontCore:
    """Container for the shared services of one storefront session."""

    def __init__(
        self,
        *,
        settings: AppSettings,
        storage: KeyValueStore,
        api: StorefrontApiClient,
        events: EventBus,
        identity: IdentitySource,
        clock: Clock = system_clock,
    ) -> None:
        self.settings = settings
        self.storage = storage
        self.api = api
        self.events = events
        self.identity = identity
        self.cache = TTLCache(
            storage,
            clock=clock,
            default_ttl_ms=settings.cache_default_ttl_seconds * 1000,
        )
        self.permissions = PermissionResolver(
            api,
            identity,
            clock=clock,
            cache_ttl_ms=settings.permissions_cache_ttl_seconds * 1000,
            super_admin_emails=settings.super_admin_emails,
        )
        self.products = ProductReferenceCache(
            storage,
            clock=clock,
            ttl_ms=settings.product_cache_ttl_seconds * 1000,
            max_entries=settings.product_cache_max_entries,
        )
        self.product_lookup = ProductLookupService(api, self.products)
        self._favorites_remote = FavoritesRemote(api)
        self._favorites_store = FavoritesStore(storage)

    def create_favorites_synchronizer(self) -> FavoritesSynchronizer:
        """Return a new synchronizer bound to the current customer identity."""

        return FavoritesSynchronizer(
            remote=self._favorites_remote,
            store=self._favorites_store,
            events=self.events,
            identity=self.identity,
            products=self.product_lookup,
        )

    def notify_auth_state_changed(self) -> None:
        """Tell every live synchronizer to rebind to the stored identity."""

        self.events.publish(AUTH_STATE_CHANGED_EVENT, self.identity.customer())

    def logout(self) -> None:
        """Drop stored credentials, the permission slot and bound favorites state."""

        for key in (*CUSTOMER_KEYS.values(), *ADMIN_KEYS.values(), AUTH_MODE_KEY):
            try:
                self.storage.remove_item(key)
            except StorageError as exc:
                logger.warning("Could not remove %s during logout: %s", key, exc)
        self.permissions.clear_permissions_cache()
        self.events.publish(AUTH_STATE_CHANGED_EVENT, ANONYMOUS)

    async def aclose(self) -> None:
        await self.api.aclose()
        if isinstance(self.storage, RedisStorage):
            self.storage.close()


def create_core(
    active_settings: AppSettings | None = None,
    *,
    storage: KeyValueStore | None = None,
    clock: Clock = system_clock,
    transport: httpx.AsyncBaseTransport | None = None,
) -> StorefrontCore:
    """Build a fully-wired :class:`StorefrontCore` from settings."""

    resolved = active_settings or get_settings()
    _validate_environment(active_settings=resolved)

    resolved_storage = storage if storage is not None else build_storage(resolved)
    events = EventBus()
    identity = IdentitySource(resolved_storage)
    api = StorefrontApiClient(
        resolved.resolved_api_base_url,
        identity=identity,
        events=events,
        timeout=resolved.http_timeout_seconds,
        transport=transport,
    )
    return StorefrontCore(
        settings=resolved,
        storage=resolved_storage,
        api=api,
        events=events,
        identity=identity,
        clock=clock,
    )


__all__ = [
    "StorefrontCore",
    "build_storage",
    "configure_logging",
    "create_core",
]
