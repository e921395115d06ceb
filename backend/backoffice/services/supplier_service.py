# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

"""
Supplier Service

WHY: Every purchase and purchase return names exactly one supplier, and the
supplier's balance is the running amount we owe them.

DESIGN:
- Contact fields are editable here; balance is not. Only purchase_service
  and return_service move the balance, inside their own unit of work.
- Deactivated suppliers keep their history and balance
"""

from sqlalchemy import or_

from ..errors import ValidationError
from ..extensions import db
from ..models import Supplier
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import unit_of_work
from .tenant_service import require_owned, scoped_query


SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "contactPerson": "contact_person",
        "email": "email",
        "phone": "phone",
        "address": "address",
        "isActive": "is_active",
    },
    required_on_create=frozenset({"name"}),
)


def create_supplier(tenant_id: str, payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
    supplier = Supplier(tenant_id=tenant_id, **patch)
    with unit_of_work():
        db.session.add(supplier)
    return supplier


def update_supplier(tenant_id: str, supplier_id: str, payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
    if not patch:
        raise ValidationError("No updatable fields provided")

    supplier = get_supplier(tenant_id, supplier_id)
    with unit_of_work():
        for key, value in patch.items():
            setattr(supplier, key, value)
    return supplier


def get_supplier(tenant_id: str, supplier_id: str) -> Supplier:
    return require_owned(Supplier, supplier_id, tenant_id, code="SUPPLIER_NOT_FOUND", message="Supplier not found")


def list_suppliers(tenant_id: str, *, search: str | None = None, include_inactive: bool = False) -> list[Supplier]:
    query = scoped_query(Supplier, tenant_id)
    if not include_inactive:
        query = query.filter(Supplier.is_active.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Supplier.name.ilike(pattern),
            Supplier.email.ilike(pattern),
            Supplier.phone.ilike(pattern),
        ))
    return query.order_by(Supplier.name.asc(), Supplier.id).all()
