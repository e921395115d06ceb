"""
Purchase Service: Buying Stock From Suppliers

WHY: A purchase is the only document that brings new stock into a
warehouse and the main thing that makes us owe a supplier money. Its
totals, the stock it receives and the supplier balance must never drift
apart.

DESIGN PRINCIPLES:
- Validate the payload, then resolve every referenced row under the
  caller's tenant, then write. Nothing is written for a rejected request.
- create_purchase is one unit of work: header, lines, stock counters,
  IN movements and supplier balance succeed or fail together
- Totals are fixed at creation; update only touches status, note and
  referenceNumber
- add_payment locks the purchase row and relies on version counters so
  concurrent payments serialise instead of overwriting each other
- A RECEIVED purchase cannot be deleted or moved back to another status:
  its stock has already moved

TOTALS:
    line total = qty * price - line discount + line tax
    subtotal   = sum(line totals)
    taxAmount  = sum(line tax)
    total      = subtotal - header discount + shippingCost
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import or_
from sqlalchemy.orm import selectinload

from ..errors import ConflictError, ValidationError
from ..extensions import db
from ..models import Product, Purchase, PurchaseItem, PurchasePayment, Supplier
from ..models.base import to_money
from ..validation import (
    parse_choice,
    parse_datetime,
    parse_int,
    parse_money,
    parse_optional_money,
    parse_page_request,
    parse_text,
    parse_uuid,
    paginate,
    require_object,
)
from .branch_service import default_warehouse_for_branch
from .concurrency import lock_for_update, run_with_retry, unit_of_work
from .document_service import next_document_number
from .inventory_service import REF_PURCHASE, receive_into_stock
from .tenant_service import require_branch, require_owned, require_warehouse, scoped_query


logger = logging.getLogger(__name__)


# =============================================================================
# STATUS CONSTANTS
# =============================================================================

PURCHASE_STATUS_PENDING = "PENDING"
PURCHASE_STATUS_ORDERED = "ORDERED"
PURCHASE_STATUS_RECEIVED = "RECEIVED"
PURCHASE_STATUSES = {PURCHASE_STATUS_PENDING, PURCHASE_STATUS_ORDERED, PURCHASE_STATUS_RECEIVED}

PAYMENT_STATUS_UNPAID = "UNPAID"
PAYMENT_STATUS_PARTIAL = "PARTIAL"
PAYMENT_STATUS_PAID = "PAID"
PAYMENT_STATUSES = {PAYMENT_STATUS_UNPAID, PAYMENT_STATUS_PARTIAL, PAYMENT_STATUS_PAID}

PAYMENT_METHODS = {"CASH", "CARD", "BANK_TRANSFER", "CHEQUE", "MOBILE", "OTHER"}


def compute_line_total(qty: int, price: Decimal, discount: Decimal, tax: Decimal) -> Decimal:
    return to_money(Decimal(qty) * price - discount + tax)


def derive_payment_state(total: Decimal, paid: Decimal) -> tuple[Decimal, str]:
    """
    Return (due_amount, payment_status) for a purchase.

    due is clamped at zero so overpayment never produces a negative due.
    """
    raw_due = to_money(total) - to_money(paid)
    due = max(Decimal("0.00"), raw_due)
    if raw_due <= 0:
        status = PAYMENT_STATUS_PAID
    elif paid > 0:
        status = PAYMENT_STATUS_PARTIAL
    else:
        status = PAYMENT_STATUS_UNPAID
    return to_money(due), status


# =============================================================================
# PAYLOAD PARSING
# =============================================================================

def parse_line_items(raw_items) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must contain at least one line")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        label = f"items[{index}]"
        qty = parse_int(raw.get("qty"), f"{label}.qty", minimum=1)
        price = parse_money(raw.get("price"), f"{label}.price")
        discount = parse_optional_money(raw, "discount")
        tax = parse_optional_money(raw, "tax")
        items.append({
            "product_id": parse_uuid(raw.get("productId"), f"{label}.productId"),
            "qty": qty,
            "price": price,
            "discount": discount,
            "tax": tax,
            "total": compute_line_total(qty, price, discount, tax),
        })
    return items


def parse_purchase_payload(payload) -> dict:
    payload = require_object(payload)
    return {
        "branch_id": parse_uuid(payload.get("branchId"), "branchId"),
        "warehouse_id": parse_uuid(payload.get("warehouseId"), "warehouseId", required=False),
        "supplier_id": parse_uuid(payload.get("supplierId"), "supplierId"),
        "reference_number": parse_text(payload.get("referenceNumber"), "referenceNumber", max_length=64),
        "status": parse_choice(payload.get("status"), "status", PURCHASE_STATUSES) or PURCHASE_STATUS_RECEIVED,
        "discount": parse_optional_money(payload, "discount"),
        "shipping_cost": parse_optional_money(payload, "shippingCost"),
        "note": parse_text(payload.get("note"), "note"),
        "items": parse_line_items(payload.get("items")),
    }


def require_products(tenant_id: str, product_ids) -> None:
    wanted = set(product_ids)
    found = {
        row.id
        for row in scoped_query(Product, tenant_id).filter(Product.id.in_(wanted)).with_entities(Product.id)
    }
    missing = wanted - found
    if missing:
        require_owned(Product, sorted(missing)[0], tenant_id, code="PRODUCT_NOT_FOUND", message="Product not found")


# =============================================================================
# QUERIES
# =============================================================================

PURCHASE_SORTABLE = {
    "createdAt": Purchase.created_at,
    "purchaseNumber": Purchase.purchase_number,
    "total": Purchase.total,
}


def list_purchases(tenant_id: str, args) -> tuple[list[Purchase], dict]:
    page_request = parse_page_request(args, sortable=PURCHASE_SORTABLE)
    query = scoped_query(Purchase, tenant_id).options(selectinload(Purchase.supplier))

    supplier_id = parse_uuid(args.get("supplierId"), "supplierId", required=False)
    if supplier_id:
        query = query.filter(Purchase.supplier_id == supplier_id)

    branch_id = parse_uuid(args.get("branchId"), "branchId", required=False)
    if branch_id:
        query = query.filter(Purchase.branch_id == branch_id)

    status = parse_choice(args.get("status"), "status", PURCHASE_STATUSES)
    if status:
        query = query.filter(Purchase.status == status)

    payment_status = parse_choice(args.get("paymentStatus"), "paymentStatus", PAYMENT_STATUSES)
    if payment_status:
        query = query.filter(Purchase.payment_status == payment_status)

    start = parse_datetime(args.get("startDate"), "startDate")
    if start:
        query = query.filter(Purchase.created_at >= start)
    end = parse_datetime(args.get("endDate"), "endDate", end_of_day=True)
    if end:
        query = query.filter(Purchase.created_at <= end)

    search = (args.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.outerjoin(Supplier, Supplier.id == Purchase.supplier_id).filter(or_(
            Purchase.purchase_number.ilike(pattern),
            Purchase.reference_number.ilike(pattern),
            Supplier.name.ilike(pattern),
        ))

    return paginate(query, page_request, PURCHASE_SORTABLE, tiebreaker=Purchase.id)


def get_purchase(tenant_id: str, purchase_id: str) -> Purchase:
    return require_owned(
        Purchase,
        purchase_id,
        tenant_id,
        code="PURCHASE_NOT_FOUND",
        message="Purchase not found",
        options=(
            selectinload(Purchase.items).selectinload(PurchaseItem.product),
            selectinload(Purchase.payments),
            selectinload(Purchase.supplier),
        ),
    )


# =============================================================================
# COMMANDS
# =============================================================================

def create_purchase(tenant_id: str, user_id: str | None, payload) -> Purchase:
    """
    Create a purchase and receive its lines into stock.

    Raises:
        ValidationError: malformed payload (400)
        NotFoundError: branch, warehouse, supplier or product not in tenant (404)
    """
    data = parse_purchase_payload(payload)
    items = data.pop("items")

    branch = require_branch(data["branch_id"], tenant_id)
    if data["warehouse_id"]:
        warehouse = require_warehouse(data["warehouse_id"], tenant_id)
        if warehouse.branch_id != branch.id:
            raise ValidationError("warehouseId does not belong to branchId")
    else:
        warehouse = default_warehouse_for_branch(tenant_id, branch.id)
        if warehouse is None:
            raise ValidationError("Branch has no warehouse; warehouseId is required")
    require_owned(Supplier, data["supplier_id"], tenant_id, code="SUPPLIER_NOT_FOUND", message="Supplier not found")
    require_products(tenant_id, [item["product_id"] for item in items])

    subtotal = to_money(sum((item["total"] for item in items), Decimal("0")))
    tax_amount = to_money(sum((item["tax"] for item in items), Decimal("0")))
    total = to_money(subtotal - data["discount"] + data["shipping_cost"])

    def _op():
        with unit_of_work():
            purchase = Purchase(
                tenant_id=tenant_id,
                branch_id=branch.id,
                warehouse_id=warehouse.id,
                supplier_id=data["supplier_id"],
                purchase_number=next_document_number(tenant_id=tenant_id, document_type="PURCHASE"),
                reference_number=data["reference_number"],
                status=data["status"],
                subtotal=subtotal,
                tax_amount=tax_amount,
                discount=data["discount"],
                shipping_cost=data["shipping_cost"],
                total=total,
                paid_amount=Decimal("0.00"),
                due_amount=total,
                payment_status=PAYMENT_STATUS_UNPAID,
                note=data["note"],
                created_by=user_id,
            )
            for position, item in enumerate(items):
                purchase.items.append(PurchaseItem(position=position, received_qty=item["qty"], **item))
            db.session.add(purchase)
            db.session.flush()

            for item in items:
                receive_into_stock(
                    tenant_id=tenant_id,
                    product_id=item["product_id"],
                    warehouse_id=warehouse.id,
                    quantity=item["qty"],
                    ref_type=REF_PURCHASE,
                    ref_id=purchase.id,
                    note=purchase.purchase_number,
                    created_by=user_id,
                )

            supplier = lock_for_update(
                db.session.query(Supplier).filter(Supplier.id == data["supplier_id"])
            ).one()
            supplier.balance = to_money(supplier.balance) + total
        return purchase

    purchase = run_with_retry(_op)
    return get_purchase(tenant_id, purchase.id)


def add_payment(tenant_id: str, purchase_id: str, user_id: str | None, payload) -> Purchase:
    """
    Record a payment against a purchase.

    paid grows by amount; due = max(0, total - paid); supplier balance
    drops by amount. Overpayment is accepted and logged.
    """
    payload = require_object(payload)
    amount = parse_money(payload.get("amount"), "amount", allow_zero=False)
    method = parse_choice(payload.get("paymentMethod") or "CASH", "paymentMethod", PAYMENT_METHODS)
    reference = parse_text(payload.get("reference"), "reference", max_length=128)
    note = parse_text(payload.get("note"), "note")

    # 404 before any write
    get_purchase(tenant_id, purchase_id)

    def _op():
        with unit_of_work():
            purchase = lock_for_update(
                scoped_query(Purchase, tenant_id).filter(Purchase.id == purchase_id)
            ).populate_existing().one()

            purchase.payments.append(PurchasePayment(
                amount=amount,
                payment_method=method,
                reference=reference,
                note=note,
                created_by=user_id,
            ))
            paid = to_money(purchase.paid_amount) + amount
            due, status = derive_payment_state(purchase.total, paid)
            if paid > to_money(purchase.total):
                logger.warning(
                    "Purchase %s overpaid: paid %s against total %s", purchase.id, paid, purchase.total
                )
            purchase.paid_amount = paid
            purchase.due_amount = due
            purchase.payment_status = status

            supplier = lock_for_update(
                db.session.query(Supplier).filter(Supplier.id == purchase.supplier_id)
            ).populate_existing().one()
            supplier.balance = to_money(supplier.balance) - amount
        return purchase

    run_with_retry(_op)
    return get_purchase(tenant_id, purchase_id)


def update_purchase(tenant_id: str, purchase_id: str, payload) -> Purchase:
    """
    Only status, note and referenceNumber are editable.

    RECEIVED is final: a received purchase cannot move back to PENDING
    or ORDERED.

    Raises:
        ConflictError: PURCHASE_ALREADY_RECEIVED
    """
    payload = require_object(payload)
    patch = {}
    if "status" in payload:
        status = parse_choice(payload.get("status"), "status", PURCHASE_STATUSES)
        if status is None:
            raise ValidationError("status cannot be blank")
        patch["status"] = status
    if "note" in payload:
        patch["note"] = parse_text(payload.get("note"), "note")
    if "referenceNumber" in payload:
        patch["reference_number"] = parse_text(payload.get("referenceNumber"), "referenceNumber", max_length=64)

    purchase = get_purchase(tenant_id, purchase_id)
    if not patch:
        return purchase
    new_status = patch.get("status", purchase.status)
    if purchase.status == PURCHASE_STATUS_RECEIVED and new_status != PURCHASE_STATUS_RECEIVED:
        raise ConflictError("Cannot change the status of a received purchase", code="PURCHASE_ALREADY_RECEIVED")

    with unit_of_work():
        for key, value in patch.items():
            setattr(purchase, key, value)
    return purchase


def delete_purchase(tenant_id: str, purchase_id: str) -> None:
    """
    Hard delete a purchase that has not been received. Stock, movements
    and the supplier balance it created stay in place.

    Raises:
        NotFoundError: PURCHASE_NOT_FOUND
        ConflictError: PURCHASE_ALREADY_RECEIVED, PURCHASE_HAS_RETURNS
    """
    purchase = get_purchase(tenant_id, purchase_id)
    if purchase.status == PURCHASE_STATUS_RECEIVED:
        raise ConflictError("Cannot delete received purchase", code="PURCHASE_ALREADY_RECEIVED")
    if purchase.returns:
        raise ConflictError("Cannot delete a purchase that has returns", code="PURCHASE_HAS_RETURNS")

    purchase_number, total = purchase.purchase_number, purchase.total
    with unit_of_work():
        db.session.delete(purchase)
    logger.warning(
        "Deleted purchase %s (total %s) for tenant %s; stock and supplier balance were not reversed",
        purchase_number,
        total,
        tenant_id,
    )
