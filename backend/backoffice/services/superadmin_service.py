# Overview: Platform operator operations across tenants.

"""
Super Admin Service

Everything here works ACROSS tenants and is only reachable through the
/api/superadmin blueprint, whose before_request hook requires the
PLATFORM_ADMIN permission. Functions here never read g.tenant_id.

Tenant onboarding (create_tenant) provisions, in one unit of work:
- the tenant row
- a "Main Branch" with its default warehouse
- the default roles (admin, manager, cashier) and their permissions
- optionally, a first admin user
"""

from __future__ import annotations

import re

from sqlalchemy import func, or_

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Branch, Tenant, User, Warehouse
from ..validation import paginate, parse_page_request, parse_text, require_object
from .auth_service import create_user
from .concurrency import unit_of_work
from .permission_service import create_default_roles


TENANT_CODE_PATTERN = re.compile(r"^[A-Z0-9][A-Z0-9_-]{1,31}$")

TENANT_SORTABLE = {
    "createdAt": Tenant.created_at,
    "name": Tenant.name,
    "code": Tenant.code,
}


def get_dashboard() -> dict:
    total = db.session.query(func.count(Tenant.id)).scalar() or 0
    active = db.session.query(func.count(Tenant.id)).filter(Tenant.is_active.is_(True)).scalar() or 0
    users = db.session.query(func.count(User.id)).scalar() or 0
    return {
        "totalTenants": total,
        "activeTenants": active,
        "inactiveTenants": total - active,
        "totalUsers": users,
    }


def _parse_is_active(value) -> bool | None:
    if value is None or value == "" or value == "all":
        return None
    normalized = str(value).strip().lower()
    if normalized in {"true", "1", "active"}:
        return True
    if normalized in {"false", "0", "inactive"}:
        return False
    raise ValidationError("isActive must be true or false")


def list_tenants(args) -> tuple[list[Tenant], dict]:
    page_request = parse_page_request(args, sortable=TENANT_SORTABLE)
    query = db.session.query(Tenant)

    is_active = _parse_is_active(args.get("isActive"))
    if is_active is not None:
        query = query.filter(Tenant.is_active.is_(is_active))

    search = (args.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(Tenant.name.ilike(pattern), Tenant.code.ilike(pattern)))

    return paginate(query, page_request, TENANT_SORTABLE, tiebreaker=Tenant.id)


def get_tenant(tenant_id: str) -> Tenant:
    tenant = db.session.query(Tenant).filter(Tenant.id == tenant_id).first()
    if tenant is None:
        raise NotFoundError("Tenant not found", code="TENANT_NOT_FOUND")
    return tenant


def tenant_details(tenant: Tenant) -> dict:
    data = tenant.to_dict()
    data["userCount"] = db.session.query(func.count(User.id)).filter(User.tenant_id == tenant.id).scalar() or 0
    data["branchCount"] = db.session.query(func.count(Branch.id)).filter(Branch.tenant_id == tenant.id).scalar() or 0
    return data


def create_tenant(payload) -> Tenant:
    """
    Onboard a tenant.

    Body: {name, code, isActive?, adminUsername?, adminEmail?, adminPassword?}
    The admin user is created only when all three admin fields are given.

    Raises:
        ValidationError: bad name/code, weak admin password
        ConflictError: DUPLICATE tenant code
    """
    payload = require_object(payload)
    name = parse_text(payload.get("name"), "name", max_length=255)
    if not name:
        raise ValidationError("name is required")
    code = (parse_text(payload.get("code"), "code", max_length=32) or "").upper()
    if not TENANT_CODE_PATTERN.match(code):
        raise ValidationError("code must be 2-32 characters: letters, digits, '-' or '_'")
    is_active = payload.get("isActive", True)
    if not isinstance(is_active, bool):
        raise ValidationError("isActive must be a boolean")

    admin_fields = [payload.get("adminUsername"), payload.get("adminEmail"), payload.get("adminPassword")]
    if any(admin_fields) and not all(admin_fields):
        raise ValidationError("adminUsername, adminEmail and adminPassword must be given together")

    if db.session.query(Tenant).filter(func.upper(Tenant.code) == code).first():
        raise ConflictError(f"Tenant code '{code}' already exists", code="DUPLICATE")

    with unit_of_work():
        tenant = Tenant(name=name, code=code, is_active=is_active, is_system=False)
        db.session.add(tenant)
        db.session.flush()

        branch = Branch(tenant_id=tenant.id, name="Main Branch", code="MAIN")
        db.session.add(branch)
        db.session.flush()
        db.session.add(Warehouse(tenant_id=tenant.id, branch_id=branch.id, name="Main Warehouse"))

        create_default_roles(tenant.id)

        if all(admin_fields):
            create_user(
                tenant_id=tenant.id,
                username=admin_fields[0],
                email=admin_fields[1],
                password=admin_fields[2],
                role_name="admin",
                branch_id=branch.id,
            )
    return tenant


def set_tenant_active(tenant_id: str, active: bool) -> Tenant:
    tenant = get_tenant(tenant_id)
    if tenant.is_system and not active:
        raise ConflictError("The system tenant cannot be deactivated", code="SYSTEM_TENANT_PROTECTED")

    with unit_of_work():
        tenant.is_active = active
    return tenant
