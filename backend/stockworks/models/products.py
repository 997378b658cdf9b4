from __future__ import annotations

from sqlalchemy.orm import composite

from ..extensions import db
from stockworks.time_utils import to_utc_z
from .common import LocalizedText, as_number


class Product(db.Model):
    """
    Finished product with its on-hand stock.

    INVARIANTS:
    - size is non-empty (trimmed) before persistence
    - current_stock >= 0, and equals the sum of the product's StockMovements
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_tenant_name", "tenant_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    name_ar = db.Column(db.String(255), nullable=True)
    size = db.Column(db.String(64), nullable=False)

    selling_price = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    production_cost = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    current_stock = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    min_threshold = db.Column(db.Numeric(14, 4), nullable=False, default=0)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    localized_name = composite(LocalizedText, name, name_ar)
    bom_items = db.relationship(
        "ProductBOM",
        back_populates="product",
        lazy=True,
        order_by="ProductBOM.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} size={self.size!r}>"

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
            "size": self.size,
            "selling_price": as_number(self.selling_price),
            "production_cost": as_number(self.production_cost),
            "current_stock": as_number(self.current_stock),
            "min_threshold": as_number(self.min_threshold),
            "is_low_stock": self.is_low_stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class ProductBOM(db.Model):
    """
    One recipe line: quantity of a material needed to make one product unit.

    A product's lines are always replaced as a whole (delete-all, insert-new).
    """
    __tablename__ = "product_bom"
    __table_args__ = (
        db.UniqueConstraint("product_id", "material_id", name="uq_product_bom_product_material"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    material_id = db.Column(db.Integer, db.ForeignKey("raw_materials.id"), nullable=False, index=True)
    quantity_per_unit = db.Column(db.Numeric(14, 4), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", back_populates="bom_items")
    material = db.relationship("RawMaterial")

    def to_dict(self) -> dict:
        material = self.material
        return {
            "id": self.id,
            "product_id": self.product_id,
            "material_id": self.material_id,
            "quantity_per_unit": as_number(self.quantity_per_unit),
            "material": {
                "id": material.id,
                "name": material.name,
                "name_ar": material.name_ar,
                "unit": material.unit,
                "current_stock": as_number(material.current_stock),
            } if material else None,
        }
