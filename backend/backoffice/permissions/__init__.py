# Overview: Permission system package.
# Re-exports all public APIs for convenient imports.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    INVENTORY_PERMISSIONS,
    PURCHASE_PERMISSIONS,
    SALES_PERMISSIONS,
    RETURN_PERMISSIONS,
    PARTNER_PERMISSIONS,
    BRANCH_PERMISSIONS,
    PLATFORM_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS, SUPER_ADMIN_ROLE, SUPER_ADMIN_PERMISSIONS
from .helpers import (
    get_all_permission_codes,
    validate_permission_code,
    legacy_role_name_is_super_admin,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "INVENTORY_PERMISSIONS",
    "PURCHASE_PERMISSIONS",
    "SALES_PERMISSIONS",
    "RETURN_PERMISSIONS",
    "PARTNER_PERMISSIONS",
    "BRANCH_PERMISSIONS",
    "PLATFORM_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "SUPER_ADMIN_ROLE",
    "SUPER_ADMIN_PERMISSIONS",
    "get_all_permission_codes",
    "validate_permission_code",
    "legacy_role_name_is_super_admin",
]
