# Overview: Service-layer operations for permissions and the security audit trail.

"""
Permission Checking and Security Event Logging

Enforce role-based access control and keep an audit trail of denials.

DESIGN PRINCIPLES:
- Fail closed: deny by default, require an explicit permission grant
- Authorization never looks at a role's display name; a super admin is
  any user whose role holds the PLATFORM_ADMIN grant
- Log denials only: permission grants are not logged
"""

from ..extensions import db
from ..models import User, Role, RolePermission, Permission, SecurityEvent
from ..permissions import (
    PERMISSION_DEFINITIONS,
    DEFAULT_ROLE_PERMISSIONS,
    SUPER_ADMIN_ROLE,
    SUPER_ADMIN_PERMISSIONS,
    legacy_role_name_is_super_admin,
    validate_permission_code,
)
from ..time_utils import utcnow


PLATFORM_ADMIN = "PLATFORM_ADMIN"


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def log_security_event(
    user_id: str | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    tenant_id: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail with tenant context.

    event_type examples:
    - PERMISSION_DENIED
    - SUPER_ADMIN_DENIED
    - LOGIN_FAILED
    - LOGOUT
    - TENANT_CONTEXT_MISSING
    - CROSS_TENANT_ACCESS_DENIED
    """
    event = SecurityEvent(
        user_id=user_id,
        tenant_id=tenant_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_role_permissions(role_id: str | None) -> set[str]:
    if not role_id:
        return set()
    rows = (
        db.session.query(Permission.code)
        .join(RolePermission, RolePermission.permission_id == Permission.id)
        .filter(RolePermission.role_id == role_id)
        .all()
    )
    return {code for (code,) in rows}


def get_user_permissions(user: User) -> set[str]:
    """
    Get all permission codes for a user (through their role).

    Returns set of permission codes (e.g., {"VIEW_RETURNS", "MANAGE_RETURNS"}).
    """
    return get_role_permissions(user.role_id)


def user_has_permission(user: User, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user)


def is_super_admin(user: User | None) -> bool:
    """Super admin = role holds PLATFORM_ADMIN. Role names are not consulted."""
    if user is None or not user.is_active:
        return False
    return user_has_permission(user, PLATFORM_ADMIN)


def require_permission(
    user: User,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    tenant_id: str | None = None,
) -> None:
    """
    Require user to have permission, raise PermissionDeniedError if not.

    Denials are written to security_events.
    """
    if user_has_permission(user, permission_code):
        return

    log_security_event(
        user_id=user.id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=permission_code,
        reason=f"Missing permission: {permission_code}",
        ip_address=ip_address,
        user_agent=user_agent,
        tenant_id=tenant_id,
    )
    raise PermissionDeniedError(f"Permission denied: {permission_code}")


# =============================================================================
# DEFINITIONS AND DEFAULT GRANTS
# =============================================================================

def initialize_permissions() -> int:
    """
    Sync Permission rows with PERMISSION_DEFINITIONS. Idempotent.

    Returns the number of permissions created.
    """
    created = 0
    existing = {p.code: p for p in db.session.query(Permission).all()}
    for code, name, description, category in PERMISSION_DEFINITIONS:
        perm = existing.get(code)
        if perm is None:
            db.session.add(Permission(code=code, name=name, description=description, category=category))
            created += 1
        else:
            perm.name = name
            perm.description = description
            perm.category = category
    db.session.flush()
    return created


def grant_permission_to_role(role: Role, permission_code: str) -> bool:
    """Grant one permission to a role. Returns False if it was already granted."""
    if not validate_permission_code(permission_code):
        raise ValueError(f"Unknown permission: {permission_code}")
    permission = db.session.query(Permission).filter_by(code=permission_code).first()
    if permission is None:
        raise ValueError(f"Permission not initialized: {permission_code}")

    exists = db.session.query(RolePermission).filter_by(
        role_id=role.id,
        permission_id=permission.id,
    ).first()
    if exists:
        return False

    db.session.add(RolePermission(role_id=role.id, permission_id=permission.id))
    db.session.flush()
    return True


def create_default_roles(tenant_id: str) -> list[Role]:
    """
    Create the default roles (admin, manager, cashier) for a tenant and
    grant their default permissions. Idempotent.
    """
    initialize_permissions()
    roles = []
    for role_name, codes in DEFAULT_ROLE_PERMISSIONS.items():
        role = db.session.query(Role).filter_by(tenant_id=tenant_id, name=role_name).first()
        if role is None:
            role = Role(tenant_id=tenant_id, name=role_name, description=f"Default {role_name} role")
            db.session.add(role)
            db.session.flush()
        for code in codes:
            grant_permission_to_role(role, code)
        roles.append(role)
    return roles


def create_super_admin_role(tenant_id: str) -> Role:
    """Create (or complete) the system tenant's super admin role."""
    initialize_permissions()
    role = db.session.query(Role).filter_by(tenant_id=tenant_id, name=SUPER_ADMIN_ROLE).first()
    if role is None:
        role = Role(tenant_id=tenant_id, name=SUPER_ADMIN_ROLE, description="Platform super administrator")
        db.session.add(role)
        db.session.flush()
    for code in SUPER_ADMIN_PERMISSIONS:
        grant_permission_to_role(role, code)
    return role


def migrate_legacy_super_admin_roles(tenant_id: str) -> list[Role]:
    """
    Grant PLATFORM_ADMIN to roles of the system tenant that older
    deployments recognised by name. Returns the roles that gained it.
    """
    initialize_permissions()
    migrated = []
    for role in db.session.query(Role).filter_by(tenant_id=tenant_id).all():
        if legacy_role_name_is_super_admin(role.name) and grant_permission_to_role(role, PLATFORM_ADMIN):
            migrated.append(role)
    return migrated
