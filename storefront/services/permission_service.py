"""Role-based access checks for the admin back-office.

The resolver keeps a single session-scoped slot holding the last resolved
:class:`UserPermissions`.  ``force_refresh`` and :meth:`clear_permissions_cache`
invalidate the whole slot, never individual resources, so a role change is
picked up for every page at once.

Resolution always fails closed: if the remote permission lookup cannot be
completed the actor is treated as having no permissions, and that outcome is
not cached so the next call goes back to the network.
"""

from __future__ import annotations

import logging
from collections.abc import Collection

import httpx
from pydantic import ValidationError

from storefront.api_client import StorefrontApiClient
from storefront.errors import ApiError
from storefront.identity import IdentitySource
from storefront.schemas.permissions import (
    PermissionAction,
    PermissionsResponse,
    UserPermissions,
)
from storefront.settings import DEFAULT_SUPER_ADMIN_EMAIL
from storefront.utils.clock import Clock, system_clock

logger = logging.getLogger(__name__)

PERMISSIONS_CACHE_TTL_MS = 5 * 60 * 1000
MY_PERMISSIONS_PATH = "/api/rbac/my-permissions"

SUPER_ADMIN_ROLES = frozenset({"SuperAdmin", "super_admin"})

# Canonical admin navigation order; ``get_accessible_pages`` preserves it.
ADMIN_PAGES: tuple[str, ...] = (
    "dashboard",
    "products",
    "categories",
    "orders",
    "users",
    "locations",
    "qr-codes",
    "home-config",
    "settings",
    "history",
    "profit",
)

PAGE_RESOURCES: dict[str, str] = {
    "dashboard": "dashboard",
    "products": "products",
    "categories": "categories",
    "orders": "orders",
    "users": "users",
    "locations": "branches",
    "qr-codes": "qr",
    "home-config": "home",
    "settings": "settings",
    "history": "history",
    "profit": "expenses",
}


class PermissionResolver:
    """Resolve whether the current actor may access a resource or admin page."""

    def __init__(
        self,
        api: StorefrontApiClient,
        identity: IdentitySource,
        *,
        clock: Clock = system_clock,
        cache_ttl_ms: int = PERMISSIONS_CACHE_TTL_MS,
        super_admin_emails: Collection[str] = (DEFAULT_SUPER_ADMIN_EMAIL,),
    ) -> None:
        self._api = api
        self._identity = identity
        self._clock = clock
        self._cache_ttl_ms = cache_ttl_ms
        self._super_admin_emails = frozenset(email.lower() for email in super_admin_emails)
        self._permissions_cache: UserPermissions | None = None
        self._cache_timestamp = 0

    def is_super_admin(self) -> bool:
        """Return ``True`` when local admin markers identify a super-admin.

        Only the key/value store is consulted; this never touches the network.
        """

        admin_email = self._identity.read("admin.auth.userEmail")
        if admin_email and admin_email.lower() in self._super_admin_emails:
            return True

        admin_role = self._identity.read("admin.auth.role")
        role = self._identity.read("auth.role")
        return admin_role in SUPER_ADMIN_ROLES or role in SUPER_ADMIN_ROLES

    @property
    def cached_permissions(self) -> UserPermissions | None:
        return self._permissions_cache

    def _cache_is_fresh(self) -> bool:
        if self._permissions_cache is None:
            return False
        return self._clock() - self._cache_timestamp < self._cache_ttl_ms

    def _store(self, permissions: UserPermissions) -> UserPermissions:
        self._permissions_cache = permissions
        self._cache_timestamp = self._clock()
        return permissions

    async def get_user_permissions(self, force_refresh: bool = False) -> UserPermissions:
        """Return the actor's permissions, from the slot when it is fresh."""

        if not force_refresh and self._cache_is_fresh():
            return self._permissions_cache  # type: ignore[return-value]

        if self.is_super_admin():
            return self._store(UserPermissions.super_admin())

        fetched = await self._fetch_remote_permissions()
        if fetched is None:
            return UserPermissions.deny_all()
        return self._store(fetched)

    async def _fetch_remote_permissions(self) -> UserPermissions | None:
        customer = self._identity.customer()
        if not customer.user_id:
            logger.debug("No user id available; skipping permission fetch")
            return None

        headers = {
            "x-user-id": customer.user_id,
            "x-user-email": customer.email or "",
            "Authorization": f"Bearer {customer.token or ''}",
        }
        try:
            payload = await self._api.get(MY_PERMISSIONS_PATH, headers=headers)
            response = PermissionsResponse.model_validate(payload)
        except (ApiError, httpx.HTTPError, ValidationError) as exc:
            logger.error("Failed to fetch permissions: %s", exc)
            return None

        if not response.ok:
            logger.error("Permission endpoint reported failure: %s", response.error)
            return None
        return UserPermissions(is_super_admin=False, permissions=response.permissions)

    async def has_permission(self, resource: str, action: PermissionAction | str) -> bool:
        """Return ``True`` when an allowed entry matches ``(resource, action)``."""

        return _grants(await self.get_user_permissions(), resource, action)

    async def can_access_page(self, page_name: str) -> bool:
        return _grants_page(await self.get_user_permissions(), page_name)

    async def get_accessible_pages(self) -> list[str]:
        """Return the admin pages the actor may open, in navigation order.

        Permissions are resolved once and every page is checked against that
        single result.
        """

        permissions = await self.get_user_permissions()
        return [page for page in ADMIN_PAGES if _grants_page(permissions, page)]

    def clear_permissions_cache(self) -> None:
        """Forget the resolved permissions; call on logout or role change."""

        self._permissions_cache = None
        self._cache_timestamp = 0


def _grants(
    permissions: UserPermissions, resource: str, action: PermissionAction | str
) -> bool:
    if permissions.is_super_admin:
        return True

    action_value = action.value if isinstance(action, PermissionAction) else action
    return any(
        entry.resource == resource
        and entry.action.value == action_value
        and entry.allowed is True
        for entry in permissions.permissions
    )


def _grants_page(permissions: UserPermissions, page_name: str) -> bool:
    if permissions.is_super_admin:
        return True

    resource = PAGE_RESOURCES.get(page_name)
    if resource is None:
        return False
    return _grants(permissions, resource, PermissionAction.READ)


__all__ = [
    "ADMIN_PAGES",
    "MY_PERMISSIONS_PATH",
    "PAGE_RESOURCES",
    "PERMISSIONS_CACHE_TTL_MS",
    "PermissionResolver",
    "SUPER_ADMIN_ROLES",
]
