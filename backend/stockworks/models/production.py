from __future__ import annotations

from ..extensions import db
from stockworks.time_utils import to_utc_z
from .common import as_number


class ProductionRecord(db.Model):
    """
    One production run: quantity of a product made from its recipe.

    total_cost is the sum of the frozen material line costs at the time of
    production; later cost_per_unit changes do not touch it.
    """
    __tablename__ = "production_records"
    __table_args__ = (
        db.Index("ix_production_records_tenant_date", "tenant_id", "production_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(14, 4), nullable=False)
    production_date = db.Column(db.DateTime(timezone=True), nullable=False)
    total_cost = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("production_records", lazy=True))
    materials = db.relationship(
        "ProductionMaterial",
        back_populates="production_record",
        cascade="all, delete-orphan",
        lazy=True,
        order_by="ProductionMaterial.id",
    )

    def to_dict(self, include_materials: bool = False) -> dict:
        data = {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": as_number(self.quantity),
            "production_date": to_utc_z(self.production_date),
            "total_cost": as_number(self.total_cost),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_materials:
            data["materials"] = [m.to_dict() for m in self.materials]
        return data


class ProductionMaterial(db.Model):
    """Frozen snapshot of one material consumed by a production run."""
    __tablename__ = "production_materials"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    production_record_id = db.Column(
        db.Integer, db.ForeignKey("production_records.id"), nullable=False, index=True
    )
    material_id = db.Column(db.Integer, db.ForeignKey("raw_materials.id"), nullable=False, index=True)
    quantity_used = db.Column(db.Numeric(14, 4), nullable=False)
    cost_at_time = db.Column(db.Numeric(14, 4), nullable=False, default=0)

    production_record = db.relationship("ProductionRecord", back_populates="materials")
    material = db.relationship("RawMaterial")

    @property
    def line_cost(self):
        return (self.quantity_used or 0) * (self.cost_at_time or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "material_id": self.material_id,
            "quantity_used": as_number(self.quantity_used),
            "cost_at_time": as_number(self.cost_at_time),
            "line_cost": as_number(self.line_cost),
        }
