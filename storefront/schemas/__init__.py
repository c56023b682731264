"""Pydantic schemas for API envelopes and cached payloads."""

from storefront.schemas.error import ErrorType, StorageResult  # noqa: F401
from storefront.schemas.favorites import (  # noqa: F401
    FavoritesResponse,
    FavoritesState,
    FavoritesUpdate,
)
from storefront.schemas.permissions import (  # noqa: F401
    Permission,
    PermissionAction,
    PermissionsResponse,
    UserPermissions,
)
from storefront.schemas.products import (  # noqa: F401
    CachedProduct,
    ProductListResponse,
    ProductSnapshot,
)
