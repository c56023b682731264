"""Shared fixtures for the storefront core test-suite."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable

import pytest
import pytest_asyncio

from storefront.api_client import StorefrontApiClient
from storefront.events import EventBus
from storefront.identity import IdentitySource
from storefront.storage import MemoryStorage
from storefront.utils.clock import ManualClock
from tests import _ensure_repo_on_path
from tests.support.fake_api import FakeStorefrontApi


def pytest_configure(config: pytest.Config) -> None:
    """Hook executed by pytest prior to running any tests."""

    _ensure_repo_on_path()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def events() -> EventBus:
    return EventBus()


@pytest.fixture
def identity(storage: MemoryStorage) -> IdentitySource:
    return IdentitySource(storage)


@pytest.fixture
def fake_api() -> FakeStorefrontApi:
    return FakeStorefrontApi()


@pytest_asyncio.fixture
async def api(
    fake_api: FakeStorefrontApi, identity: IdentitySource, events: EventBus
) -> AsyncIterator[StorefrontApiClient]:
    """API client routed to :class:`FakeStorefrontApi`."""

    client = StorefrontApiClient(
        "http://storefront.test",
        identity=identity,
        events=events,
        transport=fake_api.transport(),
    )
    yield client
    await client.aclose()


@pytest.fixture
def login_customer(storage: MemoryStorage) -> Callable[..., None]:
    """Write customer credentials the way the login flow stores them."""

    def _login(
        user_id: str,
        *,
        email: str | None = None,
        role: str = "customer",
        token: str = "customer-token",
    ) -> None:
        storage.set_item("auth.userId", user_id)
        storage.set_item("auth.userEmail", email or f"{user_id}@example.com")
        storage.set_item("auth.role", role)
        storage.set_item("auth.token", token)

    return _login


@pytest.fixture
def login_admin(storage: MemoryStorage) -> Callable[..., None]:
    """Write back-office credentials under the ``admin.auth.*`` keys."""

    def _login(
        user_id: str,
        *,
        email: str = "manager@example.com",
        role: str = "admin",
        token: str = "admin-token",
    ) -> None:
        storage.set_item("admin.auth.userId", user_id)
        storage.set_item("admin.auth.userEmail", email)
        storage.set_item("admin.auth.role", role)
        storage.set_item("admin.auth.token", token)

    return _login
