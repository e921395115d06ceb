# Overview: Service-layer operations for customers.

from sqlalchemy import or_

from ..extensions import db
from ..models import Customer
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import unit_of_work
from .tenant_service import require_owned, scoped_query


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name": "name",
        "email": "email",
        "phone": "phone",
        "avatar": "avatar",
    },
    required_on_create=frozenset({"name"}),
)


def create_customer(tenant_id: str, payload: dict) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    customer = Customer(tenant_id=tenant_id, **patch)
    with unit_of_work():
        db.session.add(customer)
    return customer


def get_customer(tenant_id: str, customer_id: str) -> Customer:
    return require_owned(Customer, customer_id, tenant_id, code="CUSTOMER_NOT_FOUND", message="Customer not found")


def list_customers(tenant_id: str, *, search: str | None = None) -> list[Customer]:
    query = scoped_query(Customer, tenant_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Customer.name.ilike(pattern), Customer.email.ilike(pattern)))
    return query.order_by(Customer.name.asc(), Customer.id).all()
