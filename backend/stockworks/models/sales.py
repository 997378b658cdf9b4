from __future__ import annotations

from ..extensions import db
from stockworks.time_utils import to_utc_z
from .common import as_number


class SaleRecord(db.Model):
    """
    One sale of a product.

    customer_name is always stored, so the sale stays readable after the
    linked customer (customer_id) is deleted.

    total_amount = quantity * sale_price + shipping_cost
    payment_status is derived from amount_paid vs total_amount.
    """
    __tablename__ = "sales_records"
    __table_args__ = (
        db.Index("ix_sales_records_tenant_date", "tenant_id", "sale_date"),
        db.Index("ix_sales_records_customer_date", "customer_id", "sale_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True)
    customer_name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Numeric(14, 4), nullable=False)
    sale_price = db.Column(db.Numeric(14, 4), nullable=False)
    shipping_cost = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    total_amount = db.Column(db.Numeric(14, 4), nullable=False)
    amount_paid = db.Column(db.Numeric(14, 4), nullable=False, default=0)

    payment_method = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, index=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("sales_records", lazy=True))
    customer = db.relationship("Customer", backref=db.backref("sales_records", lazy=True))

    @property
    def amount_due(self):
        due = (self.total_amount or 0) - (self.amount_paid or 0)
        return due if due > 0 else 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "quantity": as_number(self.quantity),
            "sale_price": as_number(self.sale_price),
            "shipping_cost": as_number(self.shipping_cost),
            "total_amount": as_number(self.total_amount),
            "amount_paid": as_number(self.amount_paid),
            "amount_due": as_number(self.amount_due),
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "sale_date": to_utc_z(self.sale_date),
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
