from __future__ import annotations

from sqlalchemy.orm import composite

from ..extensions import db
from stockworks.time_utils import to_utc_z
from .common import LocalizedText, as_number


class RawMaterial(db.Model):
    """
    Raw material master with its on-hand stock and landed unit cost.

    INVARIANTS (enforced by materials_service, not the schema):
    - current_stock >= 0 after every mutation
    - current_stock equals the sum of the material's StockMovement rows
    - cost_per_unit is the landed cost of the latest receipt (latest-cost
      policy, not FIFO or weighted average)
    """
    __tablename__ = "raw_materials"
    __table_args__ = (
        db.Index("ix_raw_materials_tenant_name", "tenant_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    name_ar = db.Column(db.String(255), nullable=True)
    unit = db.Column(db.String(16), nullable=False)

    current_stock = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    min_threshold = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    cost_per_unit = db.Column(db.Numeric(14, 4), nullable=False, default=0)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    last_received = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    localized_name = composite(LocalizedText, name, name_ar)
    supplier = db.relationship("Supplier", backref=db.backref("materials", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<RawMaterial id={self.id} name={self.name!r} stock={self.current_stock}>"

    @property
    def is_low_stock(self) -> bool:
        return (self.current_stock or 0) <= (self.min_threshold or 0)

    def to_dict(self, language: str | None = None) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "name_ar": self.name_ar,
            "localized_name": self.localized_name.to_dict(),
            "display_name": self.localized_name.for_language(language or "en"),
            "unit": self.unit,
            "current_stock": as_number(self.current_stock),
            "min_threshold": as_number(self.min_threshold),
            "cost_per_unit": as_number(self.cost_per_unit),
            "supplier_id": self.supplier_id,
            "last_received": to_utc_z(self.last_received),
            "is_low_stock": self.is_low_stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class MaterialReceipt(db.Model):
    """
    Immutable audit row for one procurement event.

    total_cost includes shipping; unit_cost is the landed unit cost that was
    written to the material at receipt time.
    """
    __tablename__ = "material_receipts"
    __table_args__ = (
        db.Index("ix_material_receipts_tenant_date", "tenant_id", "received_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    material_id = db.Column(db.Integer, db.ForeignKey("raw_materials.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    quantity_received = db.Column(db.Numeric(14, 4), nullable=False)
    unit_cost = db.Column(db.Numeric(14, 4), nullable=False)
    shipping_cost = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    total_cost = db.Column(db.Numeric(14, 4), nullable=False)

    received_date = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    material = db.relationship("RawMaterial", backref=db.backref("receipts", lazy=True))
    supplier = db.relationship("Supplier")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "material_id": self.material_id,
            "supplier_id": self.supplier_id,
            "quantity_received": as_number(self.quantity_received),
            "unit_cost": as_number(self.unit_cost),
            "shipping_cost": as_number(self.shipping_cost),
            "total_cost": as_number(self.total_cost),
            "received_date": to_utc_z(self.received_date),
            "material_name": self.material.name if self.material else None,
            "supplier_name": self.supplier.name if self.supplier else None,
        }
