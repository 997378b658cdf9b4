# Overview: Read-only reports: period summary, stock alerts and inventory valuation.

from __future__ import annotations

from decimal import Decimal

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..errors import ValidationError
from ..models import Product, ProductionRecord, RawMaterial, SaleRecord
from stockworks.time_utils import resolve_range, to_utc_z
from .products_service import recipe_cost as _recipe_cost


def _sum(column, *filters) -> Decimal:
    value = db.session.query(func.coalesce(func.sum(column), 0)).filter(*filters).scalar()
    return Decimal(str(value or 0))


def period_summary(*, tenant_id: int, start, end) -> dict:
    """
    Sales and production totals over [start, end] (inclusive).

    gross_profit = sales value - production cost for the same period.
    """
    try:
        start_dt, end_dt = resolve_range(start, end)
    except ValueError:
        raise ValidationError("start and end must be ISO-8601 dates")
    if start_dt is None or end_dt is None:
        raise ValidationError("start and end are required")
    if start_dt > end_dt:
        raise ValidationError("start must be before end")

    sales_scope = (
        SaleRecord.tenant_id == tenant_id,
        SaleRecord.sale_date >= start_dt,
        SaleRecord.sale_date <= end_dt,
    )
    production_scope = (
        ProductionRecord.tenant_id == tenant_id,
        ProductionRecord.production_date >= start_dt,
        ProductionRecord.production_date <= end_dt,
    )

    sales_count = db.session.query(func.count(SaleRecord.id)).filter(*sales_scope).scalar() or 0
    sales_value = _sum(SaleRecord.total_amount, *sales_scope)
    collected = _sum(SaleRecord.amount_paid, *sales_scope)
    production_runs = db.session.query(func.count(ProductionRecord.id)).filter(*production_scope).scalar() or 0
    production_cost = _sum(ProductionRecord.total_cost, *production_scope)

    outstanding = sales_value - collected
    return {
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "currency": current_app.config.get("DEFAULT_CURRENCY", "SAR"),
        "sales_count": int(sales_count),
        "total_sales": float(sales_value),
        "amount_collected": float(collected),
        "outstanding": float(outstanding if outstanding > 0 else Decimal("0")),
        "production_runs": int(production_runs),
        "total_production_cost": float(production_cost),
        "gross_profit": float(sales_value - production_cost),
    }


def low_stock_alerts(*, tenant_id: int) -> dict:
    """Materials and products at or below their min_threshold."""
    materials = db.session.query(RawMaterial).filter(
        RawMaterial.tenant_id == tenant_id,
        RawMaterial.current_stock <= RawMaterial.min_threshold,
    ).order_by(RawMaterial.name.asc()).all()
    products = db.session.query(Product).filter(
        Product.tenant_id == tenant_id,
        Product.current_stock <= Product.min_threshold,
    ).order_by(Product.name.asc()).all()

    return {
        "materials": [m.to_dict() for m in materials],
        "products": [p.to_dict() for p in products],
        "count": len(materials) + len(products),
    }


def inventory_valuation(*, tenant_id: int) -> dict:
    material_value = Decimal("0")
    for m in db.session.query(RawMaterial).filter(RawMaterial.tenant_id == tenant_id).all():
        material_value += Decimal(str(m.current_stock or 0)) * Decimal(str(m.cost_per_unit or 0))

    product_value = Decimal("0")
    for p in db.session.query(Product).filter(Product.tenant_id == tenant_id).all():
        product_value += Decimal(str(p.current_stock or 0)) * Decimal(str(p.production_cost or 0))

    return {
        "currency": current_app.config.get("DEFAULT_CURRENCY", "SAR"),
        "materials_value": float(material_value),
        "products_value": float(product_value),
        "total_value": float(material_value + product_value),
    }


def recipe_cost(*, tenant_id: int, product_id: int) -> dict:
    return {
        "product_id": product_id,
        "currency": current_app.config.get("DEFAULT_CURRENCY", "SAR"),
        "unit_cost": float(_recipe_cost(tenant_id=tenant_id, product_id=product_id)),
    }
