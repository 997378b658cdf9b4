# Overview: Service-layer operations for raw materials and procurement (receipts).

"""
Materials Service

STOCK: every change to RawMaterial.current_stock appends a StockMovement in
the same transaction (opening, receipt, adjustment).

COST POLICY: cost_per_unit is the landed unit cost of the most recent
receipt. Receipt history is kept in MaterialReceipt, so average or latest
cost can be derived later without changing the stored value.

SUPPLIER BALANCE: a receipt from a supplier appends a "purchase" row for the
material cost only (shipping excluded), through party_service.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..errors import ReferencedEntityError
from ..models import (
    RawMaterial,
    MaterialReceipt,
    ProductBOM,
    ProductionMaterial,
    Supplier,
)
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_material,
    require_positive,
    require_non_negative,
)
from stockworks.time_utils import coerce_datetime, utcnow
from .concurrency import atomic, run_with_retry
from .ledger_service import append_stock_movement, ITEM_MATERIAL
from .party_service import append_supplier_transaction
from .tenant_service import get_owned, scoped_query


MATERIAL_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "name_ar", "unit", "current_stock",
        "min_threshold", "cost_per_unit", "supplier_id",
    },
    required_on_create={"name", "unit"},
)

ZERO = Decimal("0")


@dataclass(frozen=True)
class LandedCost:
    unit_cost: Decimal
    total_cost: Decimal
    shipping_cost: Decimal
    priced: bool = True


def resolve_landed_cost(
    *,
    quantity: Decimal,
    current_cost: Decimal,
    unit_cost: Decimal | None = None,
    shipping_cost: Decimal | None = None,
    total_cost: Decimal | None = None,
) -> LandedCost:
    """
    Work out the receipt's unit and total cost.

    - total given, unit absent: unit = (total + shipping) / quantity
    - unit given, total absent: total = unit * quantity + shipping
    - neither: unit = current cost, total = unit * quantity, priced=False
    - both given: used as given
    """
    shipping = shipping_cost or ZERO

    if total_cost and not unit_cost:
        unit = (total_cost + shipping) / quantity
        total = total_cost
    elif unit_cost and not total_cost:
        unit = unit_cost
        total = unit_cost * quantity + shipping
    elif unit_cost and total_cost:
        unit = unit_cost
        total = total_cost
    else:
        unit = current_cost or ZERO
        return LandedCost(unit_cost=unit, total_cost=unit * quantity, shipping_cost=shipping, priced=False)

    return LandedCost(unit_cost=unit, total_cost=total, shipping_cost=shipping)


def _resolve_supplier(tenant_id: int, supplier_id) -> Supplier | None:
    if supplier_id is None:
        return None
    return get_owned(Supplier, supplier_id, tenant_id, lock=True, label="Supplier")


def get_material(*, tenant_id: int, material_id: int) -> RawMaterial:
    return get_owned(RawMaterial, material_id, tenant_id, label="Raw material")


def list_materials(*, tenant_id: int, low_stock_only: bool = False) -> list[RawMaterial]:
    q = scoped_query(RawMaterial, tenant_id)
    if low_stock_only:
        q = q.filter(RawMaterial.current_stock <= RawMaterial.min_threshold)
    return q.order_by(RawMaterial.name.asc(), RawMaterial.id.asc()).all()


def add_material(*, tenant_id: int, payload: dict) -> RawMaterial:
    """
    Create a raw material with its opening stock.

    payload may carry total_cost (what was paid for the opening stock); when
    both it and current_stock are positive, cost_per_unit = total / stock.
    With a supplier and a positive total, the supplier is charged total_cost.
    """
    payload = dict(payload or {})
    total_cost = require_non_negative(payload.pop("total_cost", None), "total_cost", allow_none=True)

    patch = validate_payload(model=RawMaterial, payload=payload, policy=MATERIAL_POLICY, partial=False)
    enforce_rules_material(patch)

    opening = patch.get("current_stock") or ZERO
    if total_cost and opening > 0:
        cost_per_unit = total_cost / opening
    else:
        cost_per_unit = patch.get("cost_per_unit") or ZERO

    def _op():
        with atomic():
            supplier = _resolve_supplier(tenant_id, patch.get("supplier_id"))
            material = RawMaterial(
                tenant_id=tenant_id,
                name=patch["name"],
                name_ar=patch.get("name_ar"),
                unit=patch["unit"],
                current_stock=opening,
                min_threshold=patch.get("min_threshold") or ZERO,
                cost_per_unit=cost_per_unit,
                supplier_id=supplier.id if supplier else None,
            )
            db.session.add(material)
            db.session.flush()

            append_stock_movement(
                tenant_id=tenant_id,
                item_type=ITEM_MATERIAL,
                item_id=material.id,
                movement_type="opening",
                quantity_delta=opening,
                note="Opening stock",
            )

            if supplier is not None and total_cost and total_cost > 0:
                append_supplier_transaction(
                    supplier,
                    transaction_type="purchase",
                    amount=total_cost,
                    description=f"Purchase of {opening} {material.unit} of {material.name}",
                )
            return material
    return run_with_retry(_op)


def update_material(*, tenant_id: int, material_id: int, payload: dict) -> RawMaterial:
    """
    Patch a raw material.

    A current_stock change is recorded as an adjustment movement for the
    difference, so the stock ledger keeps matching.
    """
    patch = validate_payload(model=RawMaterial, payload=payload, policy=MATERIAL_POLICY, partial=True)
    enforce_rules_material(patch)

    def _op():
        with atomic():
            material = get_owned(RawMaterial, material_id, tenant_id, lock=True, label="Raw material")

            if "supplier_id" in patch and patch["supplier_id"] is not None:
                _resolve_supplier(tenant_id, patch["supplier_id"])

            fields = dict(patch)
            new_stock = fields.pop("current_stock", None)
            if new_stock is not None:
                delta = new_stock - Decimal(str(material.current_stock or 0))
                if delta != 0:
                    material.current_stock = new_stock
                    append_stock_movement(
                        tenant_id=tenant_id,
                        item_type=ITEM_MATERIAL,
                        item_id=material.id,
                        movement_type="adjustment",
                        quantity_delta=delta,
                        note="Manual stock adjustment",
                    )

            for key, value in fields.items():
                setattr(material, key, value)
            return material
    return run_with_retry(_op)


def receive_material(
    *,
    tenant_id: int,
    material_id: int,
    quantity,
    supplier_id: int | None = None,
    unit_cost=None,
    shipping_cost=None,
    total_cost=None,
    received_date=None,
) -> RawMaterial:
    """
    Receive stock of a raw material from procurement.

    Effects (one transaction): stock += quantity, cost_per_unit = resolved
    landed unit cost, last_received = now, supplier updated when given,
    MaterialReceipt row, receipt movement, and a supplier purchase for
    total - shipping when that is positive.
    """
    quantity = require_positive(quantity, "quantity")
    unit_cost = require_non_negative(unit_cost, "unit_cost", allow_none=True)
    shipping_cost = require_non_negative(shipping_cost, "shipping_cost", allow_none=True)
    total_cost = require_non_negative(total_cost, "total_cost", allow_none=True)

    def _op():
        with atomic():
            material = get_owned(RawMaterial, material_id, tenant_id, lock=True, label="Raw material")
            supplier = _resolve_supplier(tenant_id, supplier_id)

            cost = resolve_landed_cost(
                quantity=quantity,
                current_cost=Decimal(str(material.cost_per_unit or 0)),
                unit_cost=unit_cost,
                shipping_cost=shipping_cost,
                total_cost=total_cost,
            )
            now = utcnow()

            material.current_stock = Decimal(str(material.current_stock or 0)) + quantity
            material.cost_per_unit = cost.unit_cost
            material.last_received = now
            if supplier is not None:
                material.supplier_id = supplier.id

            receipt = MaterialReceipt(
                tenant_id=tenant_id,
                material_id=material.id,
                supplier_id=supplier.id if supplier else None,
                quantity_received=quantity,
                unit_cost=cost.unit_cost,
                shipping_cost=cost.shipping_cost,
                total_cost=cost.total_cost,
                received_date=coerce_datetime(received_date, default_now=False) or now,
            )
            db.session.add(receipt)
            db.session.flush()

            append_stock_movement(
                tenant_id=tenant_id,
                item_type=ITEM_MATERIAL,
                item_id=material.id,
                movement_type="receipt",
                quantity_delta=quantity,
                reference_type="material_receipt",
                reference_id=receipt.id,
                occurred_at=now,
            )

            # an unpriced receipt owes the supplier nothing
            material_cost_only = cost.total_cost - cost.shipping_cost
            if supplier is not None and cost.priced and material_cost_only > 0:
                append_supplier_transaction(
                    supplier,
                    transaction_type="purchase",
                    amount=material_cost_only,
                    description=f"Purchase of {quantity} {material.unit} of {material.name}",
                    reference_id=receipt.id,
                    transaction_date=now,
                )
            return material
    return run_with_retry(_op)


def delete_material(*, tenant_id: int, material_id: int) -> None:
    """Delete a raw material unless production history or a recipe uses it.

    Its receipts are kept with material_id cleared.
    """
    with atomic():
        material = get_owned(RawMaterial, material_id, tenant_id, lock=True, label="Raw material")

        used_in_production = db.session.query(ProductionMaterial.id).filter(
            ProductionMaterial.material_id == material.id
        ).first()
        if used_in_production:
            raise ReferencedEntityError(
                "Cannot delete material that is used in production records",
                relationship="production records",
            )

        used_in_bom = db.session.query(ProductBOM.id).filter(
            ProductBOM.material_id == material.id
        ).first()
        if used_in_bom:
            raise ReferencedEntityError(
                "Cannot delete material that is used in product recipes (BOM)",
                relationship="product recipes (BOM)",
            )

        # receipts stay as purchase history; supplier purchases reference them
        for receipt in list(material.receipts):
            receipt.material_id = None
        db.session.delete(material)


def list_receipts(*, tenant_id: int, material_id: int | None = None) -> list[MaterialReceipt]:
    q = scoped_query(MaterialReceipt, tenant_id)
    if material_id is not None:
        q = q.filter(MaterialReceipt.material_id == material_id)
    return q.order_by(MaterialReceipt.received_date.desc(), MaterialReceipt.id.desc()).all()


def latest_unit_cost(*, tenant_id: int, material_id: int) -> Decimal | None:
    receipt = scoped_query(MaterialReceipt, tenant_id).filter(
        MaterialReceipt.material_id == material_id
    ).order_by(MaterialReceipt.received_date.desc(), MaterialReceipt.id.desc()).first()
    if receipt is None:
        return None
    return Decimal(str(receipt.unit_cost))


def average_unit_cost(*, tenant_id: int, material_id: int) -> Decimal | None:
    """Quantity-weighted mean unit cost over all receipts, or None without any."""
    qty, value = db.session.query(
        func.coalesce(func.sum(MaterialReceipt.quantity_received), 0),
        func.coalesce(func.sum(MaterialReceipt.quantity_received * MaterialReceipt.unit_cost), 0),
    ).filter(
        MaterialReceipt.tenant_id == tenant_id,
        MaterialReceipt.material_id == material_id,
    ).one()
    qty = Decimal(str(qty))
    if qty == 0:
        return None
    return Decimal(str(value)) / qty
