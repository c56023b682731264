"""Read the acting user from the persistent key/value store.

The storefront keeps two identities side by side: the customer session under
``auth.*`` keys and the back-office session under ``admin.auth.*`` keys.  The
store is only ever read here; writing happens in the authentication flows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from storefront.errors import StorageError
from storefront.storage import KeyValueStore

logger = logging.getLogger(__name__)

GUEST_USER_ID = "guest"

CUSTOMER_KEYS = {
    "user_id": "auth.userId",
    "email": "auth.userEmail",
    "role": "auth.role",
    "token": "auth.token",
}
ADMIN_KEYS = {
    "user_id": "admin.auth.userId",
    "email": "admin.auth.userEmail",
    "role": "admin.auth.role",
    "token": "admin.auth.token",
}
AUTH_MODE_KEY = "AUTH_MODE"


@dataclass(frozen=True)
class Identity:
    """Snapshot of one actor's credentials."""

    user_id: str | None = None
    email: str | None = None
    role: str | None = None
    token: str | None = None
    auth_mode: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    @property
    def owner_key(self) -> str:
        """Return the identifier favorites state is keyed by."""

        return self.user_id or GUEST_USER_ID


ANONYMOUS = Identity()


class IdentitySource:
    """Synchronous accessor for the identities stored in ``storage``."""

    def __init__(self, storage: KeyValueStore) -> None:
        self._storage = storage

    def read(self, key: str) -> str | None:
        try:
            value = self._storage.get_item(key)
        except StorageError as exc:
            logger.warning("Identity lookup for %s failed: %s", key, exc)
            return None
        return value or None

    def _identity(self, keys: dict[str, str]) -> Identity:
        return Identity(
            user_id=self.read(keys["user_id"]),
            email=self.read(keys["email"]),
            role=self.read(keys["role"]),
            token=self.read(keys["token"]),
            auth_mode=self.read(AUTH_MODE_KEY),
        )

    def customer(self) -> Identity:
        return self._identity(CUSTOMER_KEYS)

    def admin(self) -> Identity:
        return self._identity(ADMIN_KEYS)

    def request_headers(self) -> dict[str, str]:
        """Build identity headers, preferring admin credentials over customer ones."""

        admin = self.admin()
        customer = self.customer()
        headers: dict[str, str] = {}

        user_id = admin.user_id or customer.user_id
        if user_id:
            headers["x-user-id"] = user_id
        email = admin.email or customer.email
        if email:
            headers["x-user-email"] = email
        auth_mode = self.read(AUTH_MODE_KEY)
        if auth_mode:
            headers["x-auth-mode"] = auth_mode
        token = admin.token or customer.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers


__all__ = [
    "ADMIN_KEYS",
    "ANONYMOUS",
    "AUTH_MODE_KEY",
    "CUSTOMER_KEYS",
    "GUEST_USER_ID",
    "Identity",
    "IdentitySource",
]
