# Overview: Service-layer allocation of human-readable document numbers.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from .concurrency import ConcurrentUpdateError


# document_type -> (prefix, separator, pad)
DOCUMENT_FORMATS = {
    "PURCHASE": ("PUR", "-", 6),
    "SALE": ("SAL", "-", 6),
    "PURCHASE_RETURN": ("PR", "", 4),
    "SALES_RETURN": ("SR", "", 4),
}


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def format_document_number(document_type: str, number: int) -> str:
    prefix, separator, pad = DOCUMENT_FORMATS[document_type]
    return f"{prefix}{separator}{number:0{pad}d}"


def next_document_number(*, tenant_id: str, document_type: str) -> str:
    """
    Allocate the next document number for a tenant/type, e.g. "PR0001".

    Runs inside the caller's unit of work: the increment is an atomic
    UPDATE on the (tenant_id, document_type) row, so two concurrent
    allocations can never read the same value, and the number is only
    consumed if the caller commits. The first allocation for a tenant
    inserts the row; losing that insert race raises ConcurrentUpdateError
    so the caller's run_with_retry replays the whole unit of work.
    """
    if not tenant_id:
        raise DocumentSequenceError("tenant_id is required")
    if document_type not in DOCUMENT_FORMATS:
        raise DocumentSequenceError(f"Unknown document_type: {document_type}")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.tenant_id == tenant_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
        .execution_options(synchronize_session=False)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(DocumentSequence.next_number)
            .filter_by(tenant_id=tenant_id, document_type=document_type)
            .scalar()
        )
        next_num = current - 1
    else:
        seq = DocumentSequence(tenant_id=tenant_id, document_type=document_type, next_number=2)
        db.session.add(seq)
        try:
            db.session.flush()
        except IntegrityError as exc:
            raise ConcurrentUpdateError(
                f"Sequence {document_type} for tenant {tenant_id} was created concurrently"
            ) from exc
        next_num = 1

    return format_document_number(document_type, next_num)
