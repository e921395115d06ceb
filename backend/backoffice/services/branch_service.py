# Overview: Service-layer operations for branches and warehouses.

"""
Branch Service

A tenant operates one or more branches; each branch owns one or more
warehouses. Creating a branch also creates its default warehouse so that
every branch can receive and sell stock from day one.
"""

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import Branch, Warehouse
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import unit_of_work
from .tenant_service import require_branch, scoped_query


BRANCH_POLICY = ModelValidationPolicy(
    writable_fields={"name": "name", "code": "code", "address": "address"},
    required_on_create=frozenset({"name"}),
)

WAREHOUSE_POLICY = ModelValidationPolicy(
    writable_fields={"name": "name"},
    required_on_create=frozenset({"name"}),
)


def create_branch(tenant_id: str, payload: dict, *, with_default_warehouse: bool = True) -> Branch:
    patch = validate_payload(model=Branch, payload=payload, policy=BRANCH_POLICY, partial=False)

    exists = scoped_query(Branch, tenant_id).filter(Branch.name == patch["name"]).first()
    if exists:
        raise ConflictError(f"Branch '{patch['name']}' already exists", code="DUPLICATE")

    branch = Branch(tenant_id=tenant_id, **patch)
    try:
        with unit_of_work():
            db.session.add(branch)
            db.session.flush()
            if with_default_warehouse:
                db.session.add(Warehouse(
                    tenant_id=tenant_id,
                    branch_id=branch.id,
                    name=f"{branch.name} Main Warehouse",
                ))
    except IntegrityError:
        raise ConflictError(f"Branch '{patch['name']}' already exists", code="DUPLICATE")
    return branch


def list_branches(tenant_id: str) -> list[Branch]:
    return scoped_query(Branch, tenant_id).order_by(Branch.name.asc(), Branch.id).all()


def create_warehouse(tenant_id: str, branch_id: str, payload: dict) -> Warehouse:
    patch = validate_payload(model=Warehouse, payload=payload, policy=WAREHOUSE_POLICY, partial=False)
    if not branch_id:
        raise ValidationError("branchId is required")
    branch = require_branch(branch_id, tenant_id)

    warehouse = Warehouse(tenant_id=tenant_id, branch_id=branch.id, **patch)
    try:
        with unit_of_work():
            db.session.add(warehouse)
    except IntegrityError:
        raise ConflictError(f"Warehouse '{patch['name']}' already exists", code="DUPLICATE")
    return warehouse


def list_warehouses(tenant_id: str, *, branch_id: str | None = None) -> list[Warehouse]:
    query = scoped_query(Warehouse, tenant_id)
    if branch_id:
        query = query.filter(Warehouse.branch_id == branch_id)
    return query.order_by(Warehouse.created_at.asc(), Warehouse.id).all()


def default_warehouse_for_branch(tenant_id: str, branch_id: str) -> Warehouse | None:
    """First warehouse created for the branch."""
    return (
        scoped_query(Warehouse, tenant_id)
        .filter(Warehouse.branch_id == branch_id)
        .order_by(Warehouse.created_at.asc(), Warehouse.id)
        .first()
    )
