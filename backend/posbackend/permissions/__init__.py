# Overview: Capability system package.
# Re-exports all public APIs so callers import from posbackend.permissions.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    CATALOG_PERMISSIONS,
    PRICING_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    ORDER_PERMISSIONS,
    USER_PERMISSIONS,
    DEVICE_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import ROLE_CAPABILITIES
from .helpers import (
    get_all_permission_codes,
    get_permissions_by_category,
    validate_permission_code,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "CATALOG_PERMISSIONS",
    "PRICING_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "ORDER_PERMISSIONS",
    "USER_PERMISSIONS",
    "DEVICE_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "ROLE_CAPABILITIES",
    "get_all_permission_codes",
    "get_permissions_by_category",
    "validate_permission_code",
]
