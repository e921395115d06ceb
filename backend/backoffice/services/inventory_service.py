"""
Inventory Service: Stock Counters and Movement Ledger

WHY: Stock is the one piece of state that every document touches. Keeping
all counter writes behind three functions means purchases, sales and both
kinds of returns reconcile inventory the same way.

DESIGN PRINCIPLES:
- Stock is a per (product, warehouse) counter, never negative
- Every change to a counter is paired with exactly one StockMovement row
- Movements are append-only; nothing here updates or deletes them
- Nothing here commits: callers run these inside their unit_of_work()
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Stock, StockMovement
from ..models.inventory import MOVEMENT_IN, MOVEMENT_OUT
from ..validation import parse_choice, parse_page_request, parse_uuid, paginate
from .concurrency import ConcurrentUpdateError, lock_for_update
from .tenant_service import scoped_query


REF_PURCHASE = "PURCHASE"
REF_SALE = "SALE"
REF_PURCHASE_RETURN = "PURCHASE_RETURN"
REF_SALES_RETURN = "SALES_RETURN"
REF_TYPES = {REF_PURCHASE, REF_SALE, REF_PURCHASE_RETURN, REF_SALES_RETURN}


# =============================================================================
# COUNTERS
# =============================================================================

def _locked_stock_row(*, tenant_id: str, product_id: str, warehouse_id: str) -> Stock | None:
    query = db.session.query(Stock).filter(
        Stock.tenant_id == tenant_id,
        Stock.product_id == product_id,
        Stock.warehouse_id == warehouse_id,
    )
    return lock_for_update(query).first()


def increment_stock(*, tenant_id: str, product_id: str, warehouse_id: str, quantity: int) -> Stock:
    """
    Add quantity to the (product, warehouse) counter, creating it if absent.

    Two transactions creating the same missing counter collide on the
    unique constraint; the loser raises ConcurrentUpdateError so the
    caller's run_with_retry replays its unit of work against the row the
    winner inserted.
    """
    if quantity <= 0:
        raise ValueError("quantity must be positive")

    stock = _locked_stock_row(tenant_id=tenant_id, product_id=product_id, warehouse_id=warehouse_id)
    if stock is not None:
        stock.quantity = stock.quantity + quantity
        db.session.flush()
        return stock

    stock = Stock(
        tenant_id=tenant_id,
        product_id=product_id,
        warehouse_id=warehouse_id,
        quantity=quantity,
    )
    db.session.add(stock)
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise ConcurrentUpdateError(
            f"Stock for product {product_id} in warehouse {warehouse_id} was created concurrently"
        ) from exc
    return stock


def decrement_stock(*, tenant_id: str, product_id: str, warehouse_id: str, quantity: int) -> Stock | None:
    """
    Take quantity off the (product, warehouse) counter, floored at zero.

    No row is created when none exists: returns None and the caller still
    records the movement.
    """
    if quantity <= 0:
        raise ValueError("quantity must be positive")

    stock = _locked_stock_row(tenant_id=tenant_id, product_id=product_id, warehouse_id=warehouse_id)
    if stock is None:
        return None
    stock.quantity = max(0, stock.quantity - quantity)
    db.session.flush()
    return stock


def record_movement(
    *,
    tenant_id: str,
    product_id: str,
    warehouse_id: str,
    movement_type: str,
    quantity: int,
    ref_type: str,
    ref_id: str,
    note: str | None = None,
    created_by: str | None = None,
) -> StockMovement:
    if movement_type not in (MOVEMENT_IN, MOVEMENT_OUT):
        raise ValueError(f"Unknown movement type: {movement_type}")
    if ref_type not in REF_TYPES:
        raise ValueError(f"Unknown ref_type: {ref_type}")

    movement = StockMovement(
        tenant_id=tenant_id,
        product_id=product_id,
        warehouse_id=warehouse_id,
        type=movement_type,
        quantity=quantity,
        ref_type=ref_type,
        ref_id=ref_id,
        note=note,
        created_by=created_by,
    )
    db.session.add(movement)
    return movement


def receive_into_stock(*, tenant_id, product_id, warehouse_id, quantity, ref_type, ref_id, note=None, created_by=None):
    """Increment + IN movement."""
    increment_stock(tenant_id=tenant_id, product_id=product_id, warehouse_id=warehouse_id, quantity=quantity)
    return record_movement(
        tenant_id=tenant_id,
        product_id=product_id,
        warehouse_id=warehouse_id,
        movement_type=MOVEMENT_IN,
        quantity=quantity,
        ref_type=ref_type,
        ref_id=ref_id,
        note=note,
        created_by=created_by,
    )


def issue_from_stock(*, tenant_id, product_id, warehouse_id, quantity, ref_type, ref_id, note=None, created_by=None):
    """Floored decrement + OUT movement."""
    decrement_stock(tenant_id=tenant_id, product_id=product_id, warehouse_id=warehouse_id, quantity=quantity)
    return record_movement(
        tenant_id=tenant_id,
        product_id=product_id,
        warehouse_id=warehouse_id,
        movement_type=MOVEMENT_OUT,
        quantity=quantity,
        ref_type=ref_type,
        ref_id=ref_id,
        note=note,
        created_by=created_by,
    )


# =============================================================================
# QUERIES
# =============================================================================

def get_stock_quantity(*, tenant_id: str, product_id: str, warehouse_id: str) -> int:
    quantity = (
        db.session.query(Stock.quantity)
        .filter(
            Stock.tenant_id == tenant_id,
            Stock.product_id == product_id,
            Stock.warehouse_id == warehouse_id,
        )
        .scalar()
    )
    return quantity or 0


def list_stock(tenant_id: str, args) -> list[Stock]:
    query = scoped_query(Stock, tenant_id)

    product_id = parse_uuid(args.get("productId"), "productId", required=False)
    if product_id:
        query = query.filter(Stock.product_id == product_id)

    warehouse_id = parse_uuid(args.get("warehouseId"), "warehouseId", required=False)
    if warehouse_id:
        query = query.filter(Stock.warehouse_id == warehouse_id)

    return query.order_by(Stock.updated_at.desc(), Stock.id).all()


MOVEMENT_SORTABLE = {
    "createdAt": StockMovement.created_at,
    "quantity": StockMovement.quantity,
}


def list_movements(tenant_id: str, args) -> tuple[list[StockMovement], dict]:
    page_request = parse_page_request(args, sortable=MOVEMENT_SORTABLE)
    query = scoped_query(StockMovement, tenant_id)

    product_id = parse_uuid(args.get("productId"), "productId", required=False)
    if product_id:
        query = query.filter(StockMovement.product_id == product_id)

    warehouse_id = parse_uuid(args.get("warehouseId"), "warehouseId", required=False)
    if warehouse_id:
        query = query.filter(StockMovement.warehouse_id == warehouse_id)

    ref_type = parse_choice(args.get("refType"), "refType", REF_TYPES)
    if ref_type:
        query = query.filter(StockMovement.ref_type == ref_type)

    ref_id = parse_uuid(args.get("refId"), "refId", required=False)
    if ref_id:
        query = query.filter(StockMovement.ref_id == ref_id)

    return paginate(query, page_request, MOVEMENT_SORTABLE, tiebreaker=StockMovement.id)
