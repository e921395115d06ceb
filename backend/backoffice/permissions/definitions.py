# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View stock levels and stock movements",
        PermissionCategory.INVENTORY,
    ),
    (
        "MANAGE_PRODUCTS",
        "Manage Products",
        "Create and edit products",
        PermissionCategory.INVENTORY,
    ),
]


# -- PURCHASES --

PURCHASE_PERMISSIONS = [
    (
        "VIEW_PURCHASES",
        "View Purchases",
        "View purchases, their items and payments",
        PermissionCategory.PURCHASES,
    ),
    (
        "MANAGE_PURCHASES",
        "Manage Purchases",
        "Create, edit and delete purchases (receives stock)",
        PermissionCategory.PURCHASES,
    ),
    (
        "RECORD_PURCHASE_PAYMENT",
        "Record Purchase Payment",
        "Record payments made to suppliers against purchases",
        PermissionCategory.PURCHASES,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "VIEW_SALES",
        "View Sales",
        "View completed sales",
        PermissionCategory.SALES,
    ),
    (
        "CREATE_SALE",
        "Create Sale",
        "Ring up sales (removes stock)",
        PermissionCategory.SALES,
    ),
]


# -- RETURNS --

RETURN_PERMISSIONS = [
    (
        "VIEW_RETURNS",
        "View Returns",
        "View purchase and sales returns",
        PermissionCategory.RETURNS,
    ),
    (
        "MANAGE_RETURNS",
        "Manage Returns",
        "Create, edit and delete purchase and sales returns",
        PermissionCategory.RETURNS,
    ),
]


# -- PARTNERS --

PARTNER_PERMISSIONS = [
    (
        "VIEW_PARTNERS",
        "View Suppliers and Customers",
        "View supplier and customer records and balances",
        PermissionCategory.PARTNERS,
    ),
    (
        "MANAGE_PARTNERS",
        "Manage Suppliers and Customers",
        "Create and edit suppliers and customers",
        PermissionCategory.PARTNERS,
    ),
]


# -- BRANCHES --

BRANCH_PERMISSIONS = [
    (
        "MANAGE_BRANCHES",
        "Manage Branches",
        "Create branches and warehouses",
        PermissionCategory.BRANCHES,
    ),
]


# -- PLATFORM --
# Granted only to roles of the system tenant. Opens /api/superadmin.

PLATFORM_PERMISSIONS = [
    (
        "PLATFORM_ADMIN",
        "Platform Administration",
        "Manage tenants across the platform (super-admin console)",
        PermissionCategory.PLATFORM,
    ),
]


PERMISSION_DEFINITIONS = (
    INVENTORY_PERMISSIONS
    + PURCHASE_PERMISSIONS
    + SALES_PERMISSIONS
    + RETURN_PERMISSIONS
    + PARTNER_PERMISSIONS
    + BRANCH_PERMISSIONS
    + PLATFORM_PERMISSIONS
)
