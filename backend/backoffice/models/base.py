from __future__ import annotations

import uuid
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def new_id() -> str:
    """Server-side primary key: UUID4 as a 36-char string."""
    return str(uuid.uuid4())


def to_money(value) -> Decimal:
    """Coerce a number to a Decimal quantised to cents."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def money_json(value) -> float | None:
    """Money as a JSON number."""
    if value is None:
        return None
    return float(to_money(value))
