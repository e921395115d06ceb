# Overview: Service-layer operations for sales returns (goods brought back by a customer).

"""
Sales Return Service

SIDE EFFECTS OF create_return (one unit of work):
- SR number allocated from the tenant's SALES_RETURN sequence
- header + lines written
- stock incremented at the sale's warehouse, or at the branch's first
  warehouse when the sale has none
- one IN movement per line, ref_type SALES_RETURN
- customer balances are not touched
"""

from __future__ import annotations

from sqlalchemy.orm import selectinload

from ..errors import ValidationError
from ..extensions import db
from ..models import Customer, Sale, SalesReturn, SalesReturnItem
from ..models.returns import RETURN_STATUS_COMPLETED
from ..validation import parse_text, parse_uuid, require_object
from . import return_service
from .branch_service import default_warehouse_for_branch
from .concurrency import run_with_retry, unit_of_work
from .document_service import next_document_number
from .inventory_service import REF_SALES_RETURN, receive_into_stock
from .tenant_service import require_branch, require_owned


DETAIL_OPTIONS = (
    selectinload(SalesReturn.items).selectinload(SalesReturnItem.product),
    selectinload(SalesReturn.customer),
    selectinload(SalesReturn.sale).selectinload(Sale.items),
)


def list_returns(tenant_id: str, args):
    return return_service.list_returns(
        SalesReturn,
        tenant_id,
        args,
        counterparty_model=Customer,
        counterparty_key="customerId",
        counterparty_column=SalesReturn.customer_id,
        extra_filters=(
            ("saleId", SalesReturn.sale_id),
            ("branchId", SalesReturn.branch_id),
        ),
        options=(
            selectinload(SalesReturn.items).selectinload(SalesReturnItem.product),
            selectinload(SalesReturn.customer),
        ),
    )


def get_return(tenant_id: str, return_id: str) -> SalesReturn:
    return return_service.require_return(SalesReturn, tenant_id, return_id, options=DETAIL_OPTIONS)


def _require_customer(tenant_id: str, customer_id: str) -> Customer:
    return require_owned(Customer, customer_id, tenant_id, code="CUSTOMER_NOT_FOUND", message="Customer not found")


def create_return(tenant_id: str, user_id: str | None, payload) -> SalesReturn:
    """
    Create a sales return against one of the tenant's sales.

    branchId defaults to the sale's branch; customerId defaults to the
    sale's customer (None for walk-in sales).

    Raises:
        ValidationError: malformed payload (400), before any lookup
        NotFoundError: SALE_NOT_FOUND, BRANCH_NOT_FOUND, CUSTOMER_NOT_FOUND, PRODUCT_NOT_FOUND
    """
    payload, reason, note = return_service.parse_return_header(payload)
    sale_id = parse_uuid(payload.get("saleId"), "saleId")
    branch_id = parse_uuid(payload.get("branchId"), "branchId", required=False)
    customer_id = parse_uuid(payload.get("customerId"), "customerId", required=False)
    items = return_service.parse_return_items(payload.get("items"))

    sale = require_owned(Sale, sale_id, tenant_id, code="SALE_NOT_FOUND", message="Sale not found")
    branch = require_branch(branch_id or sale.branch_id, tenant_id)
    customer_id = customer_id or sale.customer_id
    if customer_id:
        _require_customer(tenant_id, customer_id)
    return_service.validate_return_products(tenant_id, items)

    warehouse_id = sale.warehouse_id
    if not warehouse_id:
        warehouse = default_warehouse_for_branch(tenant_id, branch.id)
        if warehouse is None:
            raise ValidationError("Branch has no warehouse to return stock into")
        warehouse_id = warehouse.id

    totals = return_service.compute_return_totals(items)

    def _op():
        with unit_of_work():
            record = SalesReturn(
                tenant_id=tenant_id,
                sale_id=sale.id,
                branch_id=branch.id,
                customer_id=customer_id,
                return_number=next_document_number(tenant_id=tenant_id, document_type="SALES_RETURN"),
                status=RETURN_STATUS_COMPLETED,
                subtotal=totals.subtotal,
                tax_amount=totals.tax_amount,
                total=totals.total,
                reason=reason,
                note=note,
                created_by=user_id,
            )
            record.items = return_service.build_return_lines(SalesReturnItem, items)
            db.session.add(record)
            db.session.flush()

            for item in items:
                receive_into_stock(
                    tenant_id=tenant_id,
                    product_id=item["product_id"],
                    warehouse_id=warehouse_id,
                    quantity=item["qty"],
                    ref_type=REF_SALES_RETURN,
                    ref_id=record.id,
                    note=record.return_number,
                    created_by=user_id,
                )
        return record

    record = run_with_retry(_op)
    return get_return(tenant_id, record.id)


def update_return(tenant_id: str, return_id: str, payload) -> SalesReturn:
    """
    Apply reason and customerId; every other key in the body is ignored.
    """
    payload = require_object(payload)
    reason = parse_text(payload.get("reason"), "reason")
    customer_id = parse_uuid(payload.get("customerId"), "customerId", required=False)

    record = get_return(tenant_id, return_id)
    customer = _require_customer(tenant_id, customer_id) if customer_id else None

    with unit_of_work():
        if "reason" in payload:
            record.reason = reason
        if customer is not None:
            record.customer_id = customer.id
    return get_return(tenant_id, record.id)


def delete_return(tenant_id: str, return_id: str) -> None:
    return_service.delete_return(SalesReturn, tenant_id, return_id)
