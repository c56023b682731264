"""Tests for the application shell wiring."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable

import pytest
import pytest_asyncio

from storefront.main import StorefrontCore, build_storage, create_core
from storefront.settings import AppSettings
from storefront.storage import MemoryStorage, RedisStorage
from storefront.utils.clock import ManualClock
from tests.support.fake_api import FakeStorefrontApi


@pytest_asyncio.fixture
async def core(
    storage: MemoryStorage, clock: ManualClock, fake_api: FakeStorefrontApi
) -> AsyncIterator[StorefrontCore]:
    settings = AppSettings(
        api_base_url="http://storefront.test",
        permissions_cache_ttl_seconds=60,
        super_admin_emails_raw="boss@example.com",
    )
    instance = create_core(
        settings, storage=storage, clock=clock, transport=fake_api.transport()
    )
    yield instance
    await instance.aclose()


def test_build_storage_selects_backend() -> None:
    assert isinstance(build_storage(AppSettings(storage_backend="memory")), MemoryStorage)
    redis_storage = build_storage(
        AppSettings(storage_backend="redis", redis_url="redis://localhost:6379/5")
    )
    assert isinstance(redis_storage, RedisStorage)
    redis_storage.close()


@pytest.mark.asyncio
async def test_core_shares_one_event_bus(
    core: StorefrontCore,
    storage: MemoryStorage,
    login_customer: Callable[..., None],
) -> None:
    login_customer("u1")
    badge = core.create_favorites_synchronizer()
    grid = core.create_favorites_synchronizer()
    await badge.load()
    await grid.load()

    await grid.add_to_favorites("p1")

    assert badge.favorites == ["p1"]
    assert storage.get_item("user_favorites:u1") == '["p1"]'
    badge.close()
    grid.close()


@pytest.mark.asyncio
async def test_core_applies_settings(core: StorefrontCore, storage: MemoryStorage) -> None:
    storage.set_item("admin.auth.userEmail", "BOSS@example.com")

    assert core.permissions.is_super_admin() is True
    core.cache.set("k", 1)
    assert core.cache.get("k") == 1


@pytest.mark.asyncio
async def test_logout_clears_credentials_and_bound_state(
    core: StorefrontCore,
    storage: MemoryStorage,
    fake_api: FakeStorefrontApi,
    login_customer: Callable[..., None],
    login_admin: Callable[..., None],
) -> None:
    login_customer("u1", role="staff")
    login_admin("a1")
    storage.set_item("AUTH_MODE", "local")
    fake_api.favorites["u1"] = ["p1"]
    fake_api.permissions = [{"resource": "orders", "action": "read", "allowed": True}]
    favorites = core.create_favorites_synchronizer()
    await favorites.load()
    await core.permissions.get_user_permissions()

    core.logout()

    assert storage.get_item("auth.userId") is None
    assert storage.get_item("admin.auth.token") is None
    assert storage.get_item("AUTH_MODE") is None
    assert core.permissions.cached_permissions is None
    assert favorites.is_authenticated is False
    assert favorites.is_empty is True
    favorites.close()


@pytest.mark.asyncio
async def test_notify_auth_state_changed_rebinds_synchronizers(
    core: StorefrontCore,
    fake_api: FakeStorefrontApi,
    login_customer: Callable[..., None],
) -> None:
    favorites = core.create_favorites_synchronizer()
    assert favorites.is_authenticated is False

    login_customer("u2")
    core.notify_auth_state_changed()

    assert favorites.identity.user_id == "u2"
    fake_api.favorites["u2"] = ["p5"]
    await favorites.load()
    assert favorites.favorites == ["p5"]
    favorites.close()
