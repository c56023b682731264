"""Centralized configuration management for the storefront core."""

from __future__ import annotations

import logging
import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables defined in a local .env file before instantiating the
# settings singleton so every consumer of :mod:`storefront.settings` sees them.
load_dotenv()

# -- Application-wide constants -------------------------------------------------

DEFAULT_API_BASE_URL = "http://localhost:3000"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_SUPER_ADMIN_EMAIL = "admin@example.com"
DEFAULT_LOG_LEVEL = "INFO"
STORAGE_BACKENDS = ("memory", "redis")


def _normalize_base_url(url: str) -> str:
    """Return the URL stripped of whitespace and trailing slashes."""

    return url.strip().rstrip("/")


class AppSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``.

    Durations are expressed in seconds, matching how operators think about
    them; the services convert to epoch milliseconds where the persisted cache
    formats require it.
    """

    _explicit_api_base_url: bool = PrivateAttr(default=False)
    _explicit_redis_url: bool = PrivateAttr(default=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def __init__(self, **values: object) -> None:
        """Capture explicit overrides prior to delegating to ``BaseSettings``."""

        normalized_keys = {str(key).lower() for key in values}
        super().__init__(**values)
        self._explicit_api_base_url = bool(
            {"api_base_url", "storefront_api_base_url"} & normalized_keys
        )
        self._explicit_redis_url = "redis_url" in normalized_keys
        api_env = os.getenv("STOREFRONT_API_BASE_URL")
        if api_env is not None and api_env.strip():
            self._explicit_api_base_url = True
        redis_env = os.getenv("REDIS_URL")
        if redis_env is not None and redis_env.strip():
            self._explicit_redis_url = True

    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL,
        alias="STOREFRONT_API_BASE_URL",
        description="Origin serving the ``/api`` endpoints consumed by the core.",
    )
    storage_backend: str = Field(
        default="memory",
        alias="STOREFRONT_STORAGE_BACKEND",
        description=(
            "Persistent key/value substrate. ``memory`` keeps values for the"
            " lifetime of the process, ``redis`` persists them in REDIS_URL."
        ),
    )
    redis_url: str = Field(
        default=DEFAULT_REDIS_URL,
        alias="REDIS_URL",
        description="Redis connection string used when the redis backend is active.",
    )
    storage_key_prefix: str = Field(
        default="storefront:",
        alias="STOREFRONT_STORAGE_KEY_PREFIX",
        description="Namespace prepended to every key written to Redis.",
    )
    super_admin_emails_raw: str = Field(
        default=DEFAULT_SUPER_ADMIN_EMAIL,
        alias="SUPER_ADMIN_EMAILS",
        description="Comma-separated admin emails treated as super-admins locally.",
    )
    cache_default_ttl_seconds: int = Field(
        default=300,
        alias="CACHE_DEFAULT_TTL_SECONDS",
        ge=1,
        description="Default lifetime of TTL cache entries.",
    )
    permissions_cache_ttl_seconds: int = Field(
        default=300,
        alias="PERMISSIONS_CACHE_TTL_SECONDS",
        ge=1,
        description="Age after which the resolved permission slot is refetched.",
    )
    product_cache_ttl_seconds: int = Field(
        default=600,
        alias="PRODUCT_CACHE_TTL_SECONDS",
        ge=1,
        description="Maximum age of a persisted product snapshot at hydration.",
    )
    product_cache_max_entries: int = Field(
        default=2000,
        alias="PRODUCT_CACHE_MAX_ENTRIES",
        ge=1,
        description="Upper bound on products written to the persisted snapshot.",
    )
    http_timeout_seconds: float = Field(
        default=10.0,
        alias="HTTP_TIMEOUT_SECONDS",
        gt=0,
        description="Timeout applied to every API request.",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        alias="LOG_LEVEL",
        description="Root logging level (e.g. INFO, DEBUG, WARNING).",
    )

    @property
    def resolved_api_base_url(self) -> str:
        """Return the API origin without trailing slashes."""

        return _normalize_base_url(self.api_base_url)

    @property
    def resolved_storage_backend(self) -> str:
        """Return the storage backend name, rejecting unknown values."""

        backend = self.storage_backend.strip().lower()
        if backend not in STORAGE_BACKENDS:
            raise RuntimeError(
                f"Unsupported storage backend {self.storage_backend!r};"
                f" expected one of {', '.join(STORAGE_BACKENDS)}"
            )
        return backend

    @property
    def super_admin_emails(self) -> frozenset[str]:
        """Return the normalised set of super-admin emails."""

        return frozenset(
            email.strip().lower()
            for email in self.super_admin_emails_raw.split(",")
            if email.strip()
        )

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    def optional_config_warnings(self) -> list[str]:
        """Return human-readable warnings for unset optional configuration."""

        warnings: list[str] = []

        if not self._explicit_api_base_url and self.api_base_url == DEFAULT_API_BASE_URL:
            warnings.append(
                "STOREFRONT_API_BASE_URL is not set - requests will target "
                f"{DEFAULT_API_BASE_URL}"
            )

        if self.storage_backend.strip().lower() == "redis" and not self._explicit_redis_url:
            warnings.append(
                "REDIS_URL is not set - the redis storage backend will connect to "
                "localhost"
            )

        if self.storage_backend.strip().lower() == "memory":
            warnings.append(
                "STOREFRONT_STORAGE_BACKEND is memory - cached permissions, favorites "
                "and products will not survive a restart"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of :class:`AppSettings`."""

    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_API_BASE_URL",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_REDIS_URL",
    "DEFAULT_SUPER_ADMIN_EMAIL",
    "STORAGE_BACKENDS",
    "get_settings",
]
