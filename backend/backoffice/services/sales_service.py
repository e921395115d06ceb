# Overview: Service-layer operations for sales; encapsulates business logic and database work.

"""
Sales Service

WHY: A sale is the origin document for every sales return, and the event
that takes stock out of a branch's warehouse.

DESIGN:
- Line total = qty * price - discount + tax, same as purchases
- total = subtotal - header discount
- Each line decrements stock at the sale's warehouse (floored at zero)
  and writes an OUT movement with ref_type SALE
- Sales are immutable once created
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import or_
from sqlalchemy.orm import selectinload

from ..errors import ValidationError
from ..extensions import db
from ..models import Customer, Sale, SaleItem
from ..models.base import to_money
from ..validation import (
    parse_choice,
    parse_datetime,
    parse_optional_money,
    parse_page_request,
    parse_text,
    parse_uuid,
    paginate,
    require_object,
)
from .branch_service import default_warehouse_for_branch
from .concurrency import run_with_retry, unit_of_work
from .document_service import next_document_number
from .inventory_service import REF_SALE, issue_from_stock
from .purchase_service import PAYMENT_STATUSES, parse_line_items, require_products, derive_payment_state
from .tenant_service import require_branch, require_owned, require_warehouse, scoped_query


SALE_STATUS_COMPLETED = "COMPLETED"
SALE_STATUS_PENDING = "PENDING"
SALE_STATUSES = {SALE_STATUS_COMPLETED, SALE_STATUS_PENDING}


SALE_SORTABLE = {
    "createdAt": Sale.created_at,
    "saleNumber": Sale.sale_number,
    "total": Sale.total,
}


def list_sales(tenant_id: str, args) -> tuple[list[Sale], dict]:
    page_request = parse_page_request(args, sortable=SALE_SORTABLE)
    query = scoped_query(Sale, tenant_id).options(selectinload(Sale.customer))

    branch_id = parse_uuid(args.get("branchId"), "branchId", required=False)
    if branch_id:
        query = query.filter(Sale.branch_id == branch_id)

    customer_id = parse_uuid(args.get("customerId"), "customerId", required=False)
    if customer_id:
        query = query.filter(Sale.customer_id == customer_id)

    status = parse_choice(args.get("status"), "status", SALE_STATUSES)
    if status:
        query = query.filter(Sale.status == status)

    payment_status = parse_choice(args.get("paymentStatus"), "paymentStatus", PAYMENT_STATUSES)
    if payment_status:
        query = query.filter(Sale.payment_status == payment_status)

    start = parse_datetime(args.get("startDate"), "startDate")
    if start:
        query = query.filter(Sale.created_at >= start)
    end = parse_datetime(args.get("endDate"), "endDate", end_of_day=True)
    if end:
        query = query.filter(Sale.created_at <= end)

    search = (args.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.outerjoin(Customer, Customer.id == Sale.customer_id).filter(or_(
            Sale.sale_number.ilike(pattern),
            Customer.name.ilike(pattern),
        ))

    return paginate(query, page_request, SALE_SORTABLE, tiebreaker=Sale.id)


def get_sale(tenant_id: str, sale_id: str) -> Sale:
    return require_owned(
        Sale,
        sale_id,
        tenant_id,
        code="SALE_NOT_FOUND",
        message="Sale not found",
        options=(
            selectinload(Sale.items).selectinload(SaleItem.product),
            selectinload(Sale.customer),
        ),
    )


def create_sale(tenant_id: str, user_id: str | None, payload) -> Sale:
    payload = require_object(payload)
    branch_id = parse_uuid(payload.get("branchId"), "branchId")
    warehouse_id = parse_uuid(payload.get("warehouseId"), "warehouseId", required=False)
    customer_id = parse_uuid(payload.get("customerId"), "customerId", required=False)
    status = parse_choice(payload.get("status"), "status", SALE_STATUSES) or SALE_STATUS_COMPLETED
    discount = parse_optional_money(payload, "discount")
    paid = parse_optional_money(payload, "paidAmount")
    note = parse_text(payload.get("note"), "note")
    items = parse_line_items(payload.get("items"))

    branch = require_branch(branch_id, tenant_id)
    if warehouse_id:
        warehouse = require_warehouse(warehouse_id, tenant_id)
        if warehouse.branch_id != branch.id:
            raise ValidationError("warehouseId does not belong to branchId")
    else:
        warehouse = default_warehouse_for_branch(tenant_id, branch.id)
        if warehouse is None:
            raise ValidationError("Branch has no warehouse; warehouseId is required")
    if customer_id:
        require_owned(Customer, customer_id, tenant_id, code="CUSTOMER_NOT_FOUND", message="Customer not found")
    require_products(tenant_id, [item["product_id"] for item in items])

    subtotal = to_money(sum((item["total"] for item in items), Decimal("0")))
    tax_amount = to_money(sum((item["tax"] for item in items), Decimal("0")))
    total = to_money(subtotal - discount)
    due, payment_status = derive_payment_state(total, paid)

    def _op():
        with unit_of_work():
            sale = Sale(
                tenant_id=tenant_id,
                branch_id=branch.id,
                warehouse_id=warehouse.id,
                customer_id=customer_id,
                sale_number=next_document_number(tenant_id=tenant_id, document_type="SALE"),
                status=status,
                subtotal=subtotal,
                tax_amount=tax_amount,
                discount=discount,
                total=total,
                paid_amount=paid,
                due_amount=due,
                payment_status=payment_status,
                note=note,
                created_by=user_id,
            )
            for position, item in enumerate(items):
                sale.items.append(SaleItem(position=position, **item))
            db.session.add(sale)
            db.session.flush()

            for item in items:
                issue_from_stock(
                    tenant_id=tenant_id,
                    product_id=item["product_id"],
                    warehouse_id=warehouse.id,
                    quantity=item["qty"],
                    ref_type=REF_SALE,
                    ref_id=sale.id,
                    note=sale.sale_number,
                    created_by=user_id,
                )
        return sale

    sale = run_with_retry(_op)
    return get_sale(tenant_id, sale.id)
