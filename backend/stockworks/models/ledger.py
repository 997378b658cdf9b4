from __future__ import annotations

from ..extensions import db
from stockworks.time_utils import to_utc_z
from .common import as_number


class StockMovement(db.Model):
    """
    Append-only stock ledger for materials and products.

    Every change to a RawMaterial or Product current_stock writes exactly one
    movement in the same DB transaction, so an item's current_stock always
    equals SUM(quantity_delta) over its movements. Reversals are new rows,
    never updates or deletes.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_item", "tenant_id", "item_type", "item_id"),
        db.Index("ix_stock_movements_reference", "reference_type", "reference_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    item_type = db.Column(db.String(16), nullable=False)
    item_id = db.Column(db.Integer, nullable=False)
    movement_type = db.Column(db.String(32), nullable=False, index=True)
    quantity_delta = db.Column(db.Numeric(14, 4), nullable=False)

    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    note = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "item_type": self.item_type,
            "item_id": self.item_id,
            "movement_type": self.movement_type,
            "quantity_delta": as_number(self.quantity_delta),
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "note": self.note,
        }
