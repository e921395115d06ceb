# Overview: Default permission sets for the roles every new tenant starts with.

from .definitions import PERMISSION_DEFINITIONS, PLATFORM_PERMISSIONS

_TENANT_CODES = [
    perm[0] for perm in PERMISSION_DEFINITIONS
    if perm not in PLATFORM_PERMISSIONS
]

DEFAULT_ROLE_PERMISSIONS = {
    "admin": list(_TENANT_CODES),
    "manager": [
        "VIEW_INVENTORY",
        "MANAGE_PRODUCTS",
        "VIEW_PURCHASES",
        "MANAGE_PURCHASES",
        "RECORD_PURCHASE_PAYMENT",
        "VIEW_SALES",
        "CREATE_SALE",
        "VIEW_RETURNS",
        "MANAGE_RETURNS",
        "VIEW_PARTNERS",
        "MANAGE_PARTNERS",
    ],
    "cashier": [
        "VIEW_INVENTORY",
        "VIEW_SALES",
        "CREATE_SALE",
        "VIEW_RETURNS",
        "VIEW_PARTNERS",
    ],
}

# Only created in the system tenant
SUPER_ADMIN_ROLE = "super admin"
SUPER_ADMIN_PERMISSIONS = [perm[0] for perm in PERMISSION_DEFINITIONS]
