# Overview: Service-layer operations for the stock movement ledger.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func

from ..extensions import db
from ..models import StockMovement, RawMaterial, Product
from stockworks.time_utils import utcnow
"""
Stock Ledger Invariants (authoritative)

- Append-only: no updates or deletes of existing movements.
- Written inside the same DB transaction as the stock change it records.
- item current_stock == SUM(quantity_delta) for (item_type, item_id).
- Reversal of a sale or production run appends opposite-signed movements.
"""

ITEM_MATERIAL = "material"
ITEM_PRODUCT = "product"

MOVEMENT_TYPES = {
    "opening",
    "receipt",
    "adjustment",
    "production_consume",
    "production_output",
    "production_reversal",
    "production_restore",
    "sale",
    "sale_reversal",
}


def append_stock_movement(
    *,
    tenant_id: int,
    item_type: str,
    item_id: int,
    movement_type: str,
    quantity_delta: Decimal,
    reference_type: str | None = None,
    reference_id: int | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
) -> StockMovement:
    """
    Append one stock movement.

    - No domain logic here; callers have already validated the change.
    - Zero deltas are still recorded so every operation leaves a trace.
    """
    if item_type not in (ITEM_MATERIAL, ITEM_PRODUCT):
        raise ValueError(f"unknown item_type {item_type!r}")
    if movement_type not in MOVEMENT_TYPES:
        raise ValueError(f"unknown movement_type {movement_type!r}")

    mv = StockMovement(
        tenant_id=tenant_id,
        item_type=item_type,
        item_id=item_id,
        movement_type=movement_type,
        quantity_delta=quantity_delta,
        reference_type=reference_type,
        reference_id=reference_id,
        occurred_at=occurred_at or utcnow(),
        note=note[:255] if note else None,
    )
    db.session.add(mv)
    db.session.flush()
    return mv


def stock_from_movements(tenant_id: int, item_type: str, item_id: int) -> Decimal:
    """Ledger-derived quantity for one item."""
    total = db.session.query(
        func.coalesce(func.sum(StockMovement.quantity_delta), 0)
    ).filter(
        StockMovement.tenant_id == tenant_id,
        StockMovement.item_type == item_type,
        StockMovement.item_id == item_id,
    ).scalar()
    return Decimal(str(total or 0))


def list_stock_movements(
    *,
    tenant_id: int,
    item_type: str | None = None,
    item_id: int | None = None,
    limit: int = 200,
) -> list[StockMovement]:
    q = db.session.query(StockMovement).filter(StockMovement.tenant_id == tenant_id)
    if item_type is not None:
        q = q.filter(StockMovement.item_type == item_type)
    if item_id is not None:
        q = q.filter(StockMovement.item_id == item_id)
    return q.order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc()).limit(limit).all()


def find_stock_drift(tenant_id: int) -> list[dict]:
    """
    Compare every material/product current_stock with its ledger sum.

    Returns one entry per mismatching item; an empty list means consistent.
    """
    drift = []
    for item_type, model in ((ITEM_MATERIAL, RawMaterial), (ITEM_PRODUCT, Product)):
        for item in db.session.query(model).filter(model.tenant_id == tenant_id).all():
            ledger_qty = stock_from_movements(tenant_id, item_type, item.id)
            stored = Decimal(str(item.current_stock or 0))
            # Numeric(14, 4) storage rounds; compare at that precision
            if stored.quantize(Decimal("0.0001")) != ledger_qty.quantize(Decimal("0.0001")):
                drift.append({
                    "item_type": item_type,
                    "item_id": item.id,
                    "name": item.name,
                    "current_stock": float(stored),
                    "ledger_stock": float(ledger_qty),
                })
    return drift
