# Overview: Service-layer operations for purchase returns (goods sent back to a supplier).

"""
Purchase Return Service

SIDE EFFECTS OF create_return (one unit of work):
- PR number allocated from the tenant's PURCHASE_RETURN sequence
- header + lines written
- stock decremented at the purchase's warehouse, floored at zero
- one OUT movement per line, ref_type PURCHASE_RETURN
- supplier balance reduced by the return total
"""

from __future__ import annotations

from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Purchase, PurchaseReturn, PurchaseReturnItem, Supplier
from ..models.base import to_money
from ..models.returns import RETURN_STATUS_COMPLETED
from ..validation import parse_text, parse_uuid, require_object
from . import return_service
from .concurrency import lock_for_update, run_with_retry, unit_of_work
from .document_service import next_document_number
from .inventory_service import REF_PURCHASE_RETURN, issue_from_stock
from .tenant_service import require_owned


DETAIL_OPTIONS = (
    selectinload(PurchaseReturn.items).selectinload(PurchaseReturnItem.product),
    selectinload(PurchaseReturn.supplier),
    selectinload(PurchaseReturn.purchase).selectinload(Purchase.items),
)


def list_returns(tenant_id: str, args):
    return return_service.list_returns(
        PurchaseReturn,
        tenant_id,
        args,
        counterparty_model=Supplier,
        counterparty_key="supplierId",
        counterparty_column=PurchaseReturn.supplier_id,
        extra_filters=(("purchaseId", PurchaseReturn.purchase_id),),
        options=(
            selectinload(PurchaseReturn.items).selectinload(PurchaseReturnItem.product),
            selectinload(PurchaseReturn.supplier),
        ),
    )


def get_return(tenant_id: str, return_id: str) -> PurchaseReturn:
    return return_service.require_return(PurchaseReturn, tenant_id, return_id, options=DETAIL_OPTIONS)


def _require_supplier(tenant_id: str, supplier_id: str) -> Supplier:
    return require_owned(Supplier, supplier_id, tenant_id, code="SUPPLIER_NOT_FOUND", message="Supplier not found")


def create_return(tenant_id: str, user_id: str | None, payload) -> PurchaseReturn:
    """
    Create a purchase return against one of the tenant's purchases.

    Raises:
        ValidationError: malformed payload (400), before any lookup
        NotFoundError: PURCHASE_NOT_FOUND, SUPPLIER_NOT_FOUND, PRODUCT_NOT_FOUND
    """
    payload, reason, note = return_service.parse_return_header(payload)
    purchase_id = parse_uuid(payload.get("purchaseId"), "purchaseId")
    supplier_id = parse_uuid(payload.get("supplierId"), "supplierId", required=False)
    items = return_service.parse_return_items(payload.get("items"))

    purchase = require_owned(
        Purchase, purchase_id, tenant_id, code="PURCHASE_NOT_FOUND", message="Purchase not found"
    )
    supplier = _require_supplier(tenant_id, supplier_id or purchase.supplier_id)
    return_service.validate_return_products(tenant_id, items)

    totals = return_service.compute_return_totals(items)
    warehouse_id = purchase.warehouse_id

    def _op():
        with unit_of_work():
            record = PurchaseReturn(
                tenant_id=tenant_id,
                purchase_id=purchase.id,
                supplier_id=supplier.id,
                return_number=next_document_number(tenant_id=tenant_id, document_type="PURCHASE_RETURN"),
                status=RETURN_STATUS_COMPLETED,
                subtotal=totals.subtotal,
                tax_amount=totals.tax_amount,
                total=totals.total,
                reason=reason,
                note=note,
                created_by=user_id,
            )
            record.items = return_service.build_return_lines(PurchaseReturnItem, items)
            db.session.add(record)
            db.session.flush()

            for item in items:
                issue_from_stock(
                    tenant_id=tenant_id,
                    product_id=item["product_id"],
                    warehouse_id=warehouse_id,
                    quantity=item["qty"],
                    ref_type=REF_PURCHASE_RETURN,
                    ref_id=record.id,
                    note=record.return_number,
                    created_by=user_id,
                )

            locked = lock_for_update(
                db.session.query(Supplier).filter(Supplier.id == supplier.id)
            ).populate_existing().one()
            locked.balance = to_money(locked.balance) - totals.total
        return record

    record = run_with_retry(_op)
    return get_return(tenant_id, record.id)


def update_return(tenant_id: str, return_id: str, payload) -> PurchaseReturn:
    """
    Apply reason and supplierId; every other key in the body is ignored.
    """
    payload = require_object(payload)
    reason = parse_text(payload.get("reason"), "reason")
    supplier_id = parse_uuid(payload.get("supplierId"), "supplierId", required=False)

    record = get_return(tenant_id, return_id)
    supplier = _require_supplier(tenant_id, supplier_id) if supplier_id else None

    with unit_of_work():
        if "reason" in payload:
            record.reason = reason
        if supplier is not None:
            record.supplier_id = supplier.id
    return get_return(tenant_id, record.id)


def delete_return(tenant_id: str, return_id: str) -> None:
    return_service.delete_return(PurchaseReturn, tenant_id, return_id)
