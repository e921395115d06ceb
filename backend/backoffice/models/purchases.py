from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .base import new_id, money_json


class Purchase(db.Model):
    """
    Purchase from a supplier into one warehouse.

    Totals are fixed at creation. paid_amount / due_amount / payment_status
    only move through purchase_service.add_payment:
    - due_amount = max(0, total - paid_amount)
    - payment_status is UNPAID, PARTIAL or PAID, derived from the two.
    """
    __tablename__ = "purchases"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "purchase_number", name="uq_purchases_tenant_number"),
        db.Index("ix_purchases_tenant_created", "tenant_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    branch_id = db.Column(db.String(36), db.ForeignKey("branches.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.String(36), db.ForeignKey("warehouses.id"), nullable=False, index=True)
    supplier_id = db.Column(db.String(36), db.ForeignKey("suppliers.id"), nullable=False, index=True)

    purchase_number = db.Column(db.String(32), nullable=False)
    reference_number = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(16), nullable=False, default="RECEIVED", index=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    shipping_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    paid_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    due_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default="UNPAID", index=True)

    note = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))
    branch = db.relationship("Branch")
    warehouse = db.relationship("Warehouse")
    items = db.relationship(
        "PurchaseItem",
        backref="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseItem.position",
    )
    payments = db.relationship(
        "PurchasePayment",
        backref="purchase",
        cascade="all, delete-orphan",
        order_by="PurchasePayment.created_at",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, *, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenantId": self.tenant_id,
            "branchId": self.branch_id,
            "warehouseId": self.warehouse_id,
            "supplierId": self.supplier_id,
            "supplier": self.supplier.name if self.supplier else None,
            "purchaseNumber": self.purchase_number,
            "referenceNumber": self.reference_number,
            "status": self.status,
            "subtotal": money_json(self.subtotal),
            "taxAmount": money_json(self.tax_amount),
            "discount": money_json(self.discount),
            "shippingCost": money_json(self.shipping_cost),
            "total": money_json(self.total),
            "paidAmount": money_json(self.paid_amount),
            "dueAmount": money_json(self.due_amount),
            "paymentStatus": self.payment_status,
            "note": self.note,
            "createdBy": self.created_by,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["items"] = [item.to_dict() for item in self.items]
            data["payments"] = [payment.to_dict() for payment in self.payments]
        return data


class PurchaseItem(db.Model):
    __tablename__ = "purchase_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    purchase_id = db.Column(db.String(36), db.ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    qty = db.Column(db.Integer, nullable=False)
    received_qty = db.Column(db.Integer, nullable=False, default=0)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    # qty * price - discount + tax
    total = db.Column(db.Numeric(12, 2), nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "product": self.product.to_summary() if self.product else None,
            "qty": self.qty,
            "receivedQty": self.received_qty,
            "price": money_json(self.price),
            "discount": money_json(self.discount),
            "tax": money_json(self.tax),
            "total": money_json(self.total),
        }


class PurchasePayment(db.Model):
    """Payment made to the supplier against one purchase. Append-only."""
    __tablename__ = "purchase_payments"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    purchase_id = db.Column(db.String(36), db.ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    payment_method = db.Column(db.String(32), nullable=False)
    reference = db.Column(db.String(128), nullable=True)
    note = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchaseId": self.purchase_id,
            "amount": money_json(self.amount),
            "paymentMethod": self.payment_method,
            "reference": self.reference,
            "note": self.note,
            "createdBy": self.created_by,
            "createdAt": to_utc_z(self.created_at),
        }
