# Overview: Service-layer operations for products; encapsulates business logic and database work.

"""
Product Service

MULTI-TENANT: Products are scoped to tenants via tenant_id.
SKUs are unique within a tenant, never across tenants.
"""

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import Product
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import unit_of_work
from .tenant_service import require_owned, scoped_query


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "sku": "sku",
        "name": "name",
        "image": "image",
        "price": "price",
        "cost": "cost",
        "isActive": "is_active",
    },
    required_on_create=frozenset({"sku", "name"}),
)


def _sku_taken(tenant_id: str, sku: str, *, exclude_id: str | None = None) -> bool:
    query = scoped_query(Product, tenant_id).filter(Product.sku == sku)
    if exclude_id:
        query = query.filter(Product.id != exclude_id)
    return db.session.query(query.exists()).scalar()


def create_product(tenant_id: str, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    patch["sku"] = patch["sku"].upper()

    if _sku_taken(tenant_id, patch["sku"]):
        raise ConflictError(f"SKU '{patch['sku']}' already exists", code="DUPLICATE")

    product = Product(tenant_id=tenant_id, **patch)
    try:
        with unit_of_work():
            db.session.add(product)
    except IntegrityError:
        raise ConflictError(f"SKU '{patch['sku']}' already exists", code="DUPLICATE")
    return product


def update_product(tenant_id: str, product_id: str, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    if not patch:
        raise ValidationError("No updatable fields provided")

    product = get_product(tenant_id, product_id)
    if "sku" in patch:
        patch["sku"] = patch["sku"].upper()
        if _sku_taken(tenant_id, patch["sku"], exclude_id=product.id):
            raise ConflictError(f"SKU '{patch['sku']}' already exists", code="DUPLICATE")

    with unit_of_work():
        for key, value in patch.items():
            setattr(product, key, value)
    return product


def get_product(tenant_id: str, product_id: str) -> Product:
    return require_owned(Product, product_id, tenant_id, code="PRODUCT_NOT_FOUND", message="Product not found")


def list_products(tenant_id: str, *, search: str | None = None, include_inactive: bool = False) -> list[Product]:
    query = scoped_query(Product, tenant_id)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Product.name.ilike(pattern), Product.sku.ilike(pattern)))
    return query.order_by(Product.name.asc(), Product.id).all()
