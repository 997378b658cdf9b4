# Overview: Service-layer operations for products and their bill of materials.

"""
Products Service

A product's recipe (ProductBOM rows) is always replaced as a whole:
save_bom deletes every existing line and inserts the new set in one unit of
work. A product cannot be deleted while its recipe, production history or
sales still point at it.
"""

from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..errors import ReferencedEntityError, ValidationError
from ..models import Product, ProductBOM, ProductionRecord, RawMaterial, SaleRecord
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    require_positive,
)
from .concurrency import atomic, run_with_retry
from .ledger_service import append_stock_movement, ITEM_PRODUCT
from .tenant_service import get_owned, scoped_query


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "name_ar", "size", "selling_price",
        "production_cost", "current_stock", "min_threshold",
    },
    required_on_create={"name", "size"},
)


def get_product(*, tenant_id: int, product_id: int) -> Product:
    return get_owned(Product, product_id, tenant_id, label="Product")


def list_products(*, tenant_id: int, low_stock_only: bool = False) -> list[Product]:
    q = scoped_query(Product, tenant_id)
    if low_stock_only:
        q = q.filter(Product.current_stock <= Product.min_threshold)
    return q.order_by(Product.name.asc(), Product.size.asc(), Product.id.asc()).all()


def create_product(*, tenant_id: int, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    opening = patch.get("current_stock") or Decimal("0")

    with atomic():
        product = Product(
            tenant_id=tenant_id,
            name=patch["name"],
            name_ar=patch.get("name_ar"),
            size=patch["size"],
            selling_price=patch.get("selling_price") or Decimal("0"),
            production_cost=patch.get("production_cost") or Decimal("0"),
            current_stock=opening,
            min_threshold=patch.get("min_threshold") or Decimal("0"),
        )
        db.session.add(product)
        db.session.flush()

        append_stock_movement(
            tenant_id=tenant_id,
            item_type=ITEM_PRODUCT,
            item_id=product.id,
            movement_type="opening",
            quantity_delta=opening,
            note="Opening stock",
        )
    return product


def update_product(*, tenant_id: int, product_id: int, payload: dict) -> Product:
    """Patch a product; a current_stock change is booked as an adjustment movement."""
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    def _op():
        with atomic():
            product = get_owned(Product, product_id, tenant_id, lock=True, label="Product")

            fields = dict(patch)
            new_stock = fields.pop("current_stock", None)
            if new_stock is not None:
                delta = new_stock - Decimal(str(product.current_stock or 0))
                if delta != 0:
                    product.current_stock = new_stock
                    append_stock_movement(
                        tenant_id=tenant_id,
                        item_type=ITEM_PRODUCT,
                        item_id=product.id,
                        movement_type="adjustment",
                        quantity_delta=delta,
                        note="Manual stock adjustment",
                    )

            for key, value in fields.items():
                setattr(product, key, value)
            return product
    return run_with_retry(_op)


def delete_product(*, tenant_id: int, product_id: int) -> None:
    with atomic():
        product = get_owned(Product, product_id, tenant_id, lock=True, label="Product")

        guards = (
            (ProductBOM, ProductBOM.product_id, "product recipes (BOM)"),
            (ProductionRecord, ProductionRecord.product_id, "production records"),
            (SaleRecord, SaleRecord.product_id, "sales records"),
        )
        for model, column, relationship in guards:
            if db.session.query(model.id).filter(column == product.id).first():
                raise ReferencedEntityError(
                    f"Cannot delete product that is used in {relationship}",
                    relationship=relationship,
                )

        db.session.delete(product)


def get_bom(*, tenant_id: int, product_id: int) -> list[ProductBOM]:
    get_owned(Product, product_id, tenant_id, label="Product")
    return scoped_query(ProductBOM, tenant_id).filter(
        ProductBOM.product_id == product_id
    ).order_by(ProductBOM.id.asc()).all()


def save_bom(*, tenant_id: int, product_id: int, items: list[dict]) -> list[ProductBOM]:
    """
    Replace a product's recipe with items.

    items: [{"material_id": int, "quantity_per_unit": number > 0}, ...]
    An empty list clears the recipe.
    """
    if items is None or not isinstance(items, list):
        raise ValidationError("items must be a list")

    lines = []
    seen = set()
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        material_id = item.get("material_id")
        if material_id is None:
            raise ValidationError(f"items[{index}].material_id is required")
        if material_id in seen:
            raise ValidationError(
                "Each material can appear only once in a recipe",
                details={"material_id": material_id},
            )
        seen.add(material_id)
        qty = require_positive(item.get("quantity_per_unit"), f"items[{index}].quantity_per_unit")
        lines.append((material_id, qty))

    def _op():
        with atomic():
            product = get_owned(Product, product_id, tenant_id, lock=True, label="Product")
            for material_id, _ in lines:
                get_owned(RawMaterial, material_id, tenant_id, label="Raw material")

            scoped_query(ProductBOM, tenant_id).filter(
                ProductBOM.product_id == product.id
            ).delete(synchronize_session="fetch")
            db.session.flush()

            saved = []
            for material_id, qty in lines:
                row = ProductBOM(
                    tenant_id=tenant_id,
                    product_id=product.id,
                    material_id=material_id,
                    quantity_per_unit=qty,
                )
                db.session.add(row)
                saved.append(row)
            db.session.flush()
            return saved
    return run_with_retry(_op)


def recipe_cost(*, tenant_id: int, product_id: int) -> Decimal:
    """Cost of one unit at current material prices: sum(quantity_per_unit * cost_per_unit)."""
    total = Decimal("0")
    for line in get_bom(tenant_id=tenant_id, product_id=product_id):
        total += Decimal(str(line.quantity_per_unit)) * Decimal(str(line.material.cost_per_unit or 0))
    return total
