from __future__ import annotations

from ..extensions import db


class DocumentSequence(db.Model):
    """
    Per-tenant, per-document-type counter for human-readable numbers.

    next_number is the value the next allocation will hand out. It only
    grows: deleting a document never frees its number.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "document_type", name="uq_document_sequences_tenant_type"),
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)

    def to_dict(self) -> dict:
        return {
            "tenantId": self.tenant_id,
            "documentType": self.document_type,
            "nextNumber": self.next_number,
        }
