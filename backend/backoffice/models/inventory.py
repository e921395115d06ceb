from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .base import new_id


MOVEMENT_IN = "IN"
MOVEMENT_OUT = "OUT"


class Stock(db.Model):
    """
    On-hand quantity counter per (product, warehouse).

    Never negative: decrements are floored at zero by inventory_service.
    """
    __tablename__ = "stock"
    __table_args__ = (
        db.UniqueConstraint("product_id", "warehouse_id", name="uq_stock_product_warehouse"),
        db.CheckConstraint("quantity >= 0", name="ck_stock_quantity_non_negative"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.String(36), db.ForeignKey("warehouses.id"), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    product = db.relationship("Product")
    warehouse = db.relationship("Warehouse")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "warehouseId": self.warehouse_id,
            "quantity": self.quantity,
            "product": self.product.to_summary() if self.product else None,
            "updatedAt": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only inventory ledger.

    One row per inventory change: direction (IN/OUT), unsigned quantity and
    a reference to the causing document (ref_type, ref_id). Rows are never
    updated or deleted, including when the causing document is deleted.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_ref", "ref_type", "ref_id"),
        db.Index("ix_stock_movements_tenant_created", "tenant_id", "created_at"),
        db.CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    tenant_id = db.Column(db.String(36), db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = db.Column(db.String(36), db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.String(36), db.ForeignKey("warehouses.id"), nullable=False, index=True)
    type = db.Column(db.String(8), nullable=False)  # IN, OUT
    quantity = db.Column(db.Integer, nullable=False)
    ref_type = db.Column(db.String(32), nullable=False)  # PURCHASE, SALE, PURCHASE_RETURN, SALES_RETURN
    ref_id = db.Column(db.String(36), nullable=False)
    note = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.String(36), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "productId": self.product_id,
            "warehouseId": self.warehouse_id,
            "type": self.type,
            "quantity": self.quantity,
            "refType": self.ref_type,
            "refId": self.ref_id,
            "note": self.note,
            "createdBy": self.created_by,
            "createdAt": to_utc_z(self.created_at),
        }
