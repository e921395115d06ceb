"""
Return Processing: Shared Rules for Purchase and Sales Returns

WHY: Both kinds of return reverse part of an earlier document. They list,
validate, total and delete the same way; they differ only in which
document they point at, who the counterparty is and which direction stock
moves. The shared rules live here; purchase_return_service and
sales_return_service hold the variant-specific side effects.

DESIGN PRINCIPLES:
- Shape validation runs before any lookup, lookups before any write
- subtotal = sum(qty * price), taxAmount = 0, total = subtotal
- Lines are immutable after creation: update_return only ever applies the
  reason and the counterparty reference
- Delete is a hard delete with line cascade. Stock and balance effects of
  the return stay where they are; the deletion is logged as a warning so
  the drift can be reconciled by hand.

LIST FILTERS (query string):
    page, limit, sortBy (createdAt|returnNumber|total), sortOrder (asc|desc),
    status, startDate, endDate, search, plus the variant's counterparty id
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import or_

from ..errors import ValidationError
from ..extensions import db
from ..models.base import to_money
from ..models.returns import RETURN_STATUSES
from ..validation import (
    parse_choice,
    parse_datetime,
    parse_int,
    parse_money,
    parse_page_request,
    parse_text,
    parse_uuid,
    paginate,
    require_object,
)
from .concurrency import unit_of_work
from .purchase_service import require_products
from .tenant_service import require_owned, scoped_query


logger = logging.getLogger(__name__)


RETURN_NOT_FOUND = "RETURN_NOT_FOUND"


@dataclass(frozen=True)
class ReturnTotals:
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal


def parse_return_items(raw_items) -> list[dict]:
    """
    Validate return lines: productId UUID, integer qty >= 1, price >= 0.

    Returns dicts ready for the item model (product_id, qty, price, total).
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must contain at least one line")

    items = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        label = f"items[{index}]"
        qty = parse_int(raw.get("qty"), f"{label}.qty", minimum=1)
        price = parse_money(raw.get("price"), f"{label}.price")
        items.append({
            "product_id": parse_uuid(raw.get("productId"), f"{label}.productId"),
            "qty": qty,
            "price": price,
            "total": to_money(Decimal(qty) * price),
        })
    return items


def compute_return_totals(items: list[dict]) -> ReturnTotals:
    subtotal = to_money(sum((item["total"] for item in items), Decimal("0")))
    # Returns carry no tax
    tax_amount = Decimal("0.00")
    return ReturnTotals(subtotal=subtotal, tax_amount=tax_amount, total=to_money(subtotal + tax_amount))


def parse_return_header(payload) -> tuple[dict, str | None, str | None]:
    """Return (payload, reason, note) with the free-text fields validated."""
    payload = require_object(payload)
    reason = parse_text(payload.get("reason"), "reason")
    note = parse_text(payload.get("note"), "note")
    return payload, reason, note


def build_return_lines(item_model, items: list[dict]) -> list:
    return [item_model(position=position, **item) for position, item in enumerate(items)]


def validate_return_products(tenant_id: str, items: list[dict]) -> None:
    require_products(tenant_id, [item["product_id"] for item in items])


def sortable_columns(model) -> dict:
    return {
        "createdAt": model.created_at,
        "returnNumber": model.return_number,
        "total": model.total,
    }


def list_returns(
    model,
    tenant_id: str,
    args,
    *,
    counterparty_model,
    counterparty_key: str,
    counterparty_column,
    extra_filters=(),
    options=(),
) -> tuple[list, dict]:
    """
    Paginated, filtered listing shared by both return kinds.

    Filters absent from args are not applied; there is no default date
    window. search matches the return number or the counterparty name.
    """
    sortable = sortable_columns(model)
    page_request = parse_page_request(args, sortable=sortable)

    query = scoped_query(model, tenant_id)
    for option in options:
        query = query.options(option)

    counterparty_id = parse_uuid(args.get(counterparty_key), counterparty_key, required=False)
    if counterparty_id:
        query = query.filter(counterparty_column == counterparty_id)

    for key, column in extra_filters:
        value = parse_uuid(args.get(key), key, required=False)
        if value:
            query = query.filter(column == value)

    status = parse_choice(args.get("status"), "status", RETURN_STATUSES)
    if status:
        query = query.filter(model.status == status)

    start = parse_datetime(args.get("startDate"), "startDate")
    if start:
        query = query.filter(model.created_at >= start)
    end = parse_datetime(args.get("endDate"), "endDate", end_of_day=True)
    if end:
        query = query.filter(model.created_at <= end)

    search = (args.get("search") or "").strip()
    if search:
        pattern = f"%{search}%"
        query = query.outerjoin(counterparty_model, counterparty_model.id == counterparty_column).filter(or_(
            model.return_number.ilike(pattern),
            counterparty_model.name.ilike(pattern),
        ))

    return paginate(query, page_request, sortable, tiebreaker=model.id)


def require_return(model, tenant_id: str, return_id: str, *, options=()):
    return require_owned(
        model,
        return_id,
        tenant_id,
        code=RETURN_NOT_FOUND,
        message="Return not found",
        options=options,
    )


def delete_return(model, tenant_id: str, return_id: str) -> None:
    """
    Hard delete a return and its lines.

    Inventory movements and counterparty balances written at creation are
    left untouched.
    """
    record = require_return(model, tenant_id, return_id)
    return_number = record.return_number
    total = record.total

    with unit_of_work():
        db.session.delete(record)

    logger.warning(
        "Deleted %s %s (total %s) for tenant %s; stock and balance effects were not reversed",
        model.__tablename__,
        return_number,
        total,
        tenant_id,
    )
