from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .base import new_id, money_json


RETURN_STATUS_COMPLETED = "COMPLETED"
RETURN_STATUS_PENDING = "PENDING"
RETURN_STATUSES = {RETURN_STATUS_COMPLETED, RETURN_STATUS_PENDING}


class PurchaseReturn(db.Model):
    """
    Goods sent back to a supplier from a prior purchase.

    Lines are immutable after creation; only reason and supplier may be
    edited. Creating a purchase return takes stock out of the purchase's
    warehouse and reduces what we owe the supplier by the return total.
    """
    __tablename__ = "purchase_returns"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "return_number", name="uq_purchase_returns_tenant_number"),
        db.Index("ix_purchase_returns_tenant_created", "tenant_id", "created_at"),
        db.Index("ix_purchase_returns_tenant_status", "tenant_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    purchase_id = db.Column(db.String(36), db.ForeignKey("purchases.id"), nullable=False, index=True)
    supplier_id = db.Column(db.String(36), db.ForeignKey("suppliers.id"), nullable=False, index=True)

    # Human-readable number (e.g., "PR0001"), unique per tenant
    return_number = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=RETURN_STATUS_COMPLETED)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    reason = db.Column(db.Text, nullable=True)
    note = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    purchase = db.relationship("Purchase", backref=db.backref("returns", lazy=True))
    supplier = db.relationship("Supplier")
    items = db.relationship(
        "PurchaseReturnItem",
        backref="purchase_return",
        cascade="all, delete-orphan",
        order_by="PurchaseReturnItem.position",
    )

    def to_dict(self, *, include_origin: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenantId": self.tenant_id,
            "returnNumber": self.return_number,
            "purchaseId": self.purchase_id,
            "supplierId": self.supplier_id,
            "supplier": self.supplier.name if self.supplier else None,
            "status": self.status,
            "subtotal": money_json(self.subtotal),
            "taxAmount": money_json(self.tax_amount),
            "total": money_json(self.total),
            "reason": self.reason,
            "note": self.note,
            "createdBy": self.created_by,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
            "items": [item.to_dict() for item in self.items],
        }
        if include_origin:
            data["purchase"] = self.purchase.to_dict(include_lines=True) if self.purchase else None
        return data


class PurchaseReturnItem(db.Model):
    """Returned line; owned by its header and deleted with it."""
    __tablename__ = "purchase_return_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    purchase_return_id = db.Column(
        db.String(36),
        db.ForeignKey("purchase_returns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    qty = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    # price * qty
    total = db.Column(db.Numeric(12, 2), nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "product": self.product.to_summary() if self.product else None,
            "qty": self.qty,
            "price": money_json(self.price),
            "total": money_json(self.total),
        }


class SalesReturn(db.Model):
    """
    Goods brought back by a customer from a prior sale.

    Creating a sales return puts the stock back into the sale's warehouse.
    Customer balances are not touched.
    """
    __tablename__ = "sales_returns"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "return_number", name="uq_sales_returns_tenant_number"),
        db.Index("ix_sales_returns_tenant_created", "tenant_id", "created_at"),
        db.Index("ix_sales_returns_tenant_status", "tenant_id", "status"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    sale_id = db.Column(db.String(36), db.ForeignKey("sales.id"), nullable=False, index=True)
    branch_id = db.Column(db.String(36), db.ForeignKey("branches.id"), nullable=False, index=True)
    customer_id = db.Column(db.String(36), db.ForeignKey("customers.id"), nullable=True, index=True)

    # Human-readable number (e.g., "SR0001"), unique per tenant
    return_number = db.Column(db.String(32), nullable=False)
    status = db.Column(db.String(16), nullable=False, default=RETURN_STATUS_COMPLETED)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    reason = db.Column(db.Text, nullable=True)
    note = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    sale = db.relationship("Sale", backref=db.backref("returns", lazy=True))
    branch = db.relationship("Branch")
    customer = db.relationship("Customer")
    items = db.relationship(
        "SalesReturnItem",
        backref="sales_return",
        cascade="all, delete-orphan",
        order_by="SalesReturnItem.position",
    )

    def to_dict(self, *, include_origin: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenantId": self.tenant_id,
            "returnNumber": self.return_number,
            "saleId": self.sale_id,
            "branchId": self.branch_id,
            "customerId": self.customer_id,
            "customer": self.customer.name if self.customer else "Walk-in Customer",
            "status": self.status,
            "subtotal": money_json(self.subtotal),
            "taxAmount": money_json(self.tax_amount),
            "total": money_json(self.total),
            "reason": self.reason,
            "note": self.note,
            "createdBy": self.created_by,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
            "items": [item.to_dict() for item in self.items],
        }
        if include_origin:
            data["sale"] = self.sale.to_dict(include_lines=True) if self.sale else None
        return data


class SalesReturnItem(db.Model):
    __tablename__ = "sales_return_items"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    sales_return_id = db.Column(
        db.String(36),
        db.ForeignKey("sales_returns.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    qty = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=False)
    total = db.Column(db.Numeric(12, 2), nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "product": self.product.to_summary() if self.product else None,
            "qty": self.qty,
            "price": money_json(self.price),
            "total": money_json(self.total),
        }
