# Overview: Utility functions for permission lookups and validation.

from .definitions import PERMISSION_DEFINITIONS


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


def legacy_role_name_is_super_admin(role_name: str | None) -> bool:
    """
    Role-name heuristic used by older deployments to spot super admins.

    Only consulted when migrating existing roles to the PLATFORM_ADMIN
    grant (flask perms sync); request authorization never calls it.
    """
    name = (role_name or "").strip().lower()
    return (
        "super admin" in name
        or "superadmin" in name
        or "super" in name
        or name == "admin"
    )
