# Overview: Service-layer operations for production runs (BOM-driven consumption).

"""
Production Service

record_production turns raw materials into finished product in one unit of
work: validate the whole run first, then write the record, its frozen
material lines, both stock changes and their StockMovements. A shortfall on
any line raises before anything is written.

Deleting a run reverses the product stock. Whether consumed materials go
back to stock is the PRODUCTION_DELETE_RESTORES_MATERIALS config flag.
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..errors import (
    InsufficientMaterialsError,
    NegativeStockError,
    NoRecipeError,
    ValidationError,
)
from ..models import Product, ProductBOM, ProductionMaterial, ProductionRecord, RawMaterial
from ..validation import require_positive, optional_text
from stockworks.time_utils import coerce_datetime, resolve_range
from .concurrency import atomic, run_with_retry
from .ledger_service import append_stock_movement, ITEM_MATERIAL, ITEM_PRODUCT
from .tenant_service import get_owned, scoped_query


REFERENCE_TYPE = "production_record"


def _plan_consumption(bom: list[ProductBOM], quantity: Decimal, materials: list[dict] | None) -> dict[int, Decimal]:
    """
    material_id -> quantity to consume.

    Derived from the recipe (quantity_per_unit * quantity) unless explicit
    lines override it; overrides may only name materials of the recipe.
    """
    plan = {
        line.material_id: Decimal(str(line.quantity_per_unit)) * quantity
        for line in bom
    }
    if materials is None:
        return plan

    for index, item in enumerate(materials):
        if not isinstance(item, dict):
            raise ValidationError(f"materials[{index}] must be an object")
        material_id = item.get("material_id")
        if material_id not in plan:
            raise ValidationError(
                "Material is not part of this product's recipe",
                details={"material_id": material_id},
            )
        plan[material_id] = require_positive(item.get("quantity_used"), f"materials[{index}].quantity_used")
    return plan


def record_production(
    *,
    tenant_id: int,
    product_id: int,
    quantity,
    materials: list[dict] | None = None,
    production_date=None,
    notes: str | None = None,
) -> ProductionRecord:
    """
    Record a production run of quantity units of a product.

    Raises:
        NoRecipeError: the product has no BOM lines
        InsufficientMaterialsError: any material cannot cover its line
    """
    quantity = require_positive(quantity, "quantity")
    try:
        produced_at = coerce_datetime(production_date)
    except ValueError:
        raise ValidationError("production_date must be an ISO-8601 datetime")

    def _op():
        with atomic():
            product = get_owned(Product, product_id, tenant_id, lock=True, label="Product")
            bom = scoped_query(ProductBOM, tenant_id).filter(
                ProductBOM.product_id == product.id
            ).order_by(ProductBOM.id.asc()).all()
            if not bom:
                raise NoRecipeError(
                    f"No recipe (BOM) defined for {product.name}",
                    details={"product_id": product.id},
                )

            plan = _plan_consumption(bom, quantity, materials)

            stock = {}
            shortages = []
            for material_id, required in plan.items():
                material = get_owned(RawMaterial, material_id, tenant_id, lock=True, label="Raw material")
                stock[material_id] = material
                available = Decimal(str(material.current_stock or 0))
                if required > available:
                    shortages.append({
                        "material_id": material.id,
                        "material_name": material.name,
                        "available": float(available),
                        "required": float(required),
                    })
            if shortages:
                raise InsufficientMaterialsError(shortages)

            record = ProductionRecord(
                tenant_id=tenant_id,
                product_id=product.id,
                quantity=quantity,
                production_date=produced_at,
                notes=optional_text(notes),
                total_cost=Decimal("0"),
            )
            db.session.add(record)
            db.session.flush()

            total_cost = Decimal("0")
            for material_id, used in plan.items():
                material = stock[material_id]
                cost_at_time = Decimal(str(material.cost_per_unit or 0))
                db.session.add(ProductionMaterial(
                    tenant_id=tenant_id,
                    production_record_id=record.id,
                    material_id=material_id,
                    quantity_used=used,
                    cost_at_time=cost_at_time,
                ))
                total_cost += used * cost_at_time

                material.current_stock = Decimal(str(material.current_stock)) - used
                append_stock_movement(
                    tenant_id=tenant_id,
                    item_type=ITEM_MATERIAL,
                    item_id=material_id,
                    movement_type="production_consume",
                    quantity_delta=-used,
                    reference_type=REFERENCE_TYPE,
                    reference_id=record.id,
                    occurred_at=produced_at,
                )

            record.total_cost = total_cost
            product.current_stock = Decimal(str(product.current_stock or 0)) + quantity
            append_stock_movement(
                tenant_id=tenant_id,
                item_type=ITEM_PRODUCT,
                item_id=product.id,
                movement_type="production_output",
                quantity_delta=quantity,
                reference_type=REFERENCE_TYPE,
                reference_id=record.id,
                occurred_at=produced_at,
            )
            return record
    return run_with_retry(_op)


def update_production_record(
    *,
    tenant_id: int,
    record_id: int,
    production_date=None,
    notes: str | None = None,
) -> ProductionRecord:
    """Edit run metadata. Quantity and materials are fixed; delete and re-record instead."""
    with atomic():
        record = get_owned(ProductionRecord, record_id, tenant_id, lock=True, label="Production record")
        if production_date is not None:
            try:
                record.production_date = coerce_datetime(production_date)
            except ValueError:
                raise ValidationError("production_date must be an ISO-8601 datetime")
        if notes is not None:
            record.notes = optional_text(notes)
        return record


def delete_production_record(*, tenant_id: int, record_id: int) -> None:
    """
    Delete a production run and reverse its product output.

    Raises NegativeStockError when product stock no longer covers the run
    (some of it was already sold).
    """
    restore_materials = current_app.config.get("PRODUCTION_DELETE_RESTORES_MATERIALS", True)

    def _op():
        with atomic():
            record = get_owned(ProductionRecord, record_id, tenant_id, lock=True, label="Production record")
            product = get_owned(Product, record.product_id, tenant_id, lock=True, label="Product")

            quantity = Decimal(str(record.quantity))
            available = Decimal(str(product.current_stock or 0))
            if available < quantity:
                raise NegativeStockError(
                    f"Cannot delete this production record because the current product stock "
                    f"({available}) is less than the produced quantity ({quantity})",
                    details={"available": float(available), "quantity": float(quantity)},
                )

            if restore_materials:
                for line in record.materials:
                    material = get_owned(
                        RawMaterial, line.material_id, tenant_id, lock=True, label="Raw material"
                    )
                    used = Decimal(str(line.quantity_used))
                    material.current_stock = Decimal(str(material.current_stock or 0)) + used
                    append_stock_movement(
                        tenant_id=tenant_id,
                        item_type=ITEM_MATERIAL,
                        item_id=material.id,
                        movement_type="production_restore",
                        quantity_delta=used,
                        reference_type=REFERENCE_TYPE,
                        reference_id=record.id,
                    )

            product.current_stock = available - quantity
            append_stock_movement(
                tenant_id=tenant_id,
                item_type=ITEM_PRODUCT,
                item_id=product.id,
                movement_type="production_reversal",
                quantity_delta=-quantity,
                reference_type=REFERENCE_TYPE,
                reference_id=record.id,
            )

            db.session.delete(record)
    return run_with_retry(_op)


def get_production_record(*, tenant_id: int, record_id: int) -> ProductionRecord:
    return get_owned(ProductionRecord, record_id, tenant_id, label="Production record")


def get_production_materials(*, tenant_id: int, record_id: int) -> list[ProductionMaterial]:
    record = get_owned(ProductionRecord, record_id, tenant_id, label="Production record")
    return list(record.materials)


def list_production_records(*, tenant_id: int, start=None, end=None) -> list[ProductionRecord]:
    try:
        start_dt, end_dt = resolve_range(start, end)
    except ValueError:
        raise ValidationError("start and end must be ISO-8601 dates")

    q = scoped_query(ProductionRecord, tenant_id)
    if start_dt is not None:
        q = q.filter(ProductionRecord.production_date >= start_dt)
    if end_dt is not None:
        q = q.filter(ProductionRecord.production_date <= end_dt)
    return q.order_by(ProductionRecord.production_date.desc(), ProductionRecord.id.desc()).all()
