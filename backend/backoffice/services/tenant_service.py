"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

Every request must be scoped to a tenant, and cross-tenant access must be
explicitly denied.

SECURITY INVARIANTS:
1. Every authenticated request has g.tenant_id set
2. Ids from client input are resolved with tenant_id in the WHERE clause,
   never fetched first and compared afterwards
3. A reference to a row owned by another tenant looks exactly like a
   missing row to the caller, and is recorded as a security event

USAGE:
    from backoffice.services.tenant_service import get_current_tenant_id, require_owned

    tenant_id = get_current_tenant_id()
    purchase = require_owned(Purchase, purchase_id, tenant_id, code="PURCHASE_NOT_FOUND",
                             message="Purchase not found")
"""

from flask import g, has_request_context, request

from ..errors import NotFoundError, TenantContextError
from ..extensions import db
from ..models import Branch, Warehouse
from .permission_service import log_security_event


def get_current_tenant_id() -> str:
    """
    Get current tenant id from Flask g context.

    Raises TenantContextError (403 TENANT_CONTEXT_REQUIRED) if unset.
    """
    tenant_id = getattr(g, "tenant_id", None)
    if not tenant_id:
        raise TenantContextError("Tenant context is required")
    return tenant_id


def get_current_user_id() -> str | None:
    user = getattr(g, "current_user", None)
    return user.id if user is not None else None


def scoped_query(model, tenant_id: str):
    """Query over model restricted to one tenant."""
    if not tenant_id:
        raise TenantContextError("Tenant context is required")
    return db.session.query(model).filter(model.tenant_id == tenant_id)


def require_owned(model, record_id, tenant_id: str, *, code: str, message: str, options=()):
    """
    Load model row `record_id` belonging to `tenant_id` or raise NotFoundError.

    Tenant scoping is part of the lookup predicate. If the id exists under
    another tenant the caller still gets the same 404; the attempt is
    logged as CROSS_TENANT_ACCESS_DENIED.
    """
    query = scoped_query(model, tenant_id).filter(model.id == record_id)
    for option in options:
        query = query.options(option)
    record = query.first()
    if record is not None:
        return record

    foreign = (
        db.session.query(model.tenant_id)
        .filter(model.id == record_id)
        .scalar()
    )
    if foreign is not None:
        _log_cross_tenant_attempt(
            f"{model.__tablename__} {record_id} belongs to another tenant",
            tenant_id=tenant_id,
        )
    raise NotFoundError(message, code=code)


def require_branch(branch_id: str, tenant_id: str) -> Branch:
    return require_owned(Branch, branch_id, tenant_id, code="BRANCH_NOT_FOUND", message="Branch not found")


def require_warehouse(warehouse_id: str, tenant_id: str) -> Warehouse:
    return require_owned(
        Warehouse, warehouse_id, tenant_id, code="WAREHOUSE_NOT_FOUND", message="Warehouse not found"
    )


def _log_cross_tenant_attempt(reason: str, *, tenant_id: str) -> None:
    user = getattr(g, "current_user", None) if has_request_context() else None
    log_security_event(
        user_id=user.id if user is not None else None,
        event_type="CROSS_TENANT_ACCESS_DENIED",
        success=False,
        resource=request.path if has_request_context() else None,
        action=request.method if has_request_context() else None,
        reason=reason,
        ip_address=request.remote_addr if has_request_context() else None,
        user_agent=request.headers.get("User-Agent") if has_request_context() else None,
        tenant_id=tenant_id,
    )
