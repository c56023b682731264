"""Pydantic schemas describing role-based permissions."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PermissionAction(str, Enum):
    """Actions a permission entry can grant or deny."""

    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE = "manage"


class Permission(BaseModel):
    """Single ``(resource, action)`` grant returned by the RBAC endpoint."""

    model_config = ConfigDict(frozen=True)

    resource: str = Field(..., description="Resource name, e.g. ``products``")
    action: PermissionAction
    allowed: bool = Field(..., description="Only ``True`` grants access")


class UserPermissions(BaseModel):
    """Resolved permissions for the current actor.

    When ``is_super_admin`` is set the ``permissions`` list is irrelevant:
    every check succeeds.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    is_super_admin: bool = Field(False, alias="isSuperAdmin")
    permissions: tuple[Permission, ...] = Field(default_factory=tuple)

    @classmethod
    def super_admin(cls) -> "UserPermissions":
        return cls(is_super_admin=True, permissions=())

    @classmethod
    def deny_all(cls) -> "UserPermissions":
        return cls(is_super_admin=False, permissions=())


class PermissionsResponse(BaseModel):
    """Envelope returned by ``GET /api/rbac/my-permissions``."""

    ok: bool
    permissions: list[Permission] = Field(default_factory=list)
    error: str | None = None

    @field_validator("permissions", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


__all__ = [
    "Permission",
    "PermissionAction",
    "PermissionsResponse",
    "UserPermissions",
]
