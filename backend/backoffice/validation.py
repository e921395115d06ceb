from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from flask import current_app
from sqlalchemy import Boolean, Integer, Numeric, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError
from .models.base import to_money
from .time_utils import parse_iso_datetime


# Maximum money value: 9,999,999,999.99 fits Numeric(12, 2)
MAX_MONEY = Decimal("9999999999.99")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary),
      mapped from JSON key to model column
    - required_on_create: JSON keys required for POST
    """
    writable_fields: dict[str, str]
    required_on_create: frozenset[str] = frozenset()


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any, label: str):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        return parse_int(value, label)

    # Money
    if isinstance(coltype, Numeric):
        return parse_money(value, label)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false", "1", "0"}:
            return value.strip().lower() in {"true", "1"}
        raise ValidationError(f"{label} must be a boolean")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        return parse_datetime(value, label)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{label} must be a string")
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    payload = require_object(payload)

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[policy.writable_fields[k]]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[col.key] = None
            continue

        val = _coerce_value(col, raw, k)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[col.key] = val

    return patch


# =============================================================================
# FIELD PARSERS
# =============================================================================

def require_object(payload) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def parse_uuid(value, label: str, *, required: bool = True) -> str | None:
    """Return the canonical lower-case string form of a UUID."""
    if value is None or value == "":
        if required:
            raise ValidationError(f"{label} is required")
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be a UUID")
    try:
        return str(uuid.UUID(value.strip()))
    except ValueError:
        raise ValidationError(f"{label} must be a UUID")


def parse_int(value, label: str, *, minimum: int | None = None) -> int:
    # bool is a subclass of int
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{label} must be an integer, not a decimal")
        result = int(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{label} must be an integer")
        # Reject scientific notation (e.g., "1e15") and decimals ("12.5")
        if 'e' in stripped.lower() or '.' in stripped:
            raise ValidationError(f"{label} must be a plain integer")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{label} must be an integer")
    else:
        raise ValidationError(f"{label} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{label} must be >= {minimum}")
    return result


def parse_money(value, label: str, *, minimum: Decimal | None = Decimal("0"), allow_zero: bool = True) -> Decimal:
    """Parse a JSON number (or numeric string) into cents-quantised Decimal."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{label} must be a number")
    if isinstance(value, (int, float, Decimal)):
        raw = str(value)
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
    else:
        raise ValidationError(f"{label} must be a number")

    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ValidationError(f"{label} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{label} must be a finite number")

    amount = to_money(amount)
    if minimum is not None and amount < minimum:
        raise ValidationError(f"{label} must be >= {minimum}")
    if not allow_zero and amount == 0:
        raise ValidationError(f"{label} must be greater than 0")
    if abs(amount) > MAX_MONEY:
        raise ValidationError(f"{label} cannot exceed {MAX_MONEY}")
    return amount


def parse_optional_money(payload: dict, key: str) -> Decimal:
    value = payload.get(key)
    if value is None:
        return to_money(0)
    return parse_money(value, key)


def parse_text(value, label: str, *, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{label} must be a string")
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{label} exceeds max length {max_length}")
    return value


def parse_datetime(value, label: str, *, end_of_day: bool = False) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value, end_of_day=end_of_day)
        except ValueError:
            raise ValidationError(f"{label} must be an ISO-8601 datetime")
        return dt
    raise ValidationError(f"{label} must be an ISO-8601 datetime")


def parse_choice(value, label: str, choices) -> str | None:
    if value is None or value == "":
        return None
    normalized = str(value).strip().upper()
    if normalized not in choices:
        raise ValidationError(f"{label} must be one of: {', '.join(sorted(choices))}")
    return normalized


# =============================================================================
# LIST QUERIES
# =============================================================================

@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int
    sort_by: str
    sort_order: str

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def parse_page_request(args, *, sortable: dict[str, Any], default_sort: str = "createdAt") -> PageRequest:
    """
    Parse page/limit/sortBy/sortOrder from query args.

    sortable maps the public sort key to a column; unknown keys are a 400
    rather than silently ignored.
    """
    default_limit = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_limit = current_app.config.get("MAX_PAGE_SIZE", 100)

    page = parse_int(args.get("page", 1), "page", minimum=1)
    limit = parse_int(args.get("limit", default_limit), "limit", minimum=1)
    if limit > max_limit:
        raise ValidationError(f"limit cannot exceed {max_limit}")

    sort_by = args.get("sortBy") or default_sort
    if sort_by not in sortable:
        raise ValidationError(f"sortBy must be one of: {', '.join(sorted(sortable))}")

    sort_order = (args.get("sortOrder") or "desc").lower()
    if sort_order not in {"asc", "desc"}:
        raise ValidationError("sortOrder must be 'asc' or 'desc'")

    return PageRequest(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)


def paginate(query, page_request: PageRequest, sortable: dict[str, Any], *, tiebreaker=None) -> tuple[list, dict]:
    """Apply sort + offset/limit; return (rows, pagination block)."""
    total = query.order_by(None).count()

    column = sortable[page_request.sort_by]
    ordering = [column.asc() if page_request.sort_order == "asc" else column.desc()]
    if tiebreaker is not None:
        ordering.append(tiebreaker)

    rows = (
        query.order_by(*ordering)
        .offset(page_request.offset)
        .limit(page_request.limit)
        .all()
    )
    total_pages = (total + page_request.limit - 1) // page_request.limit
    return rows, {
        "page": page_request.page,
        "limit": page_request.limit,
        "total": total,
        "totalPages": total_pages,
    }
