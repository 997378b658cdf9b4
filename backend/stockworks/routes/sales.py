# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import DomainError
from ..services import sales_service

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@require_tenant
def list_sales_route():
    """Query params: start, end (ISO-8601, inclusive), customer_id."""
    try:
        sales = sales_service.list_sales(
            tenant_id=g.tenant_id,
            start=request.args.get("start"),
            end=request.args.get("end"),
            customer_id=request.args.get("customer_id", type=int),
        )
        return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.post("")
@require_tenant
def record_sale_route():
    """
    Record a sale.

    Body: product_id, quantity, customer_name, unit_price (required);
    customer_id, create_customer, amount_paid, payment_method,
    shipping_cost, sale_date, notes.
    """
    payload = request.get_json(silent=True) or {}
    try:
        sale = sales_service.record_sale(
            tenant_id=g.tenant_id,
            product_id=payload.get("product_id"),
            quantity=payload.get("quantity"),
            customer_name=payload.get("customer_name"),
            unit_price=payload.get("unit_price"),
            sale_date=payload.get("sale_date"),
            customer_id=payload.get("customer_id"),
            amount_paid=payload.get("amount_paid"),
            payment_method=payload.get("payment_method"),
            notes=payload.get("notes"),
            shipping_cost=payload.get("shipping_cost"),
            create_customer=bool(payload.get("create_customer", False)),
        )
        return jsonify({"sale": sale.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/<int:sale_id>")
@require_tenant
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(tenant_id=g.tenant_id, sale_id=sale_id)
        return jsonify({"sale": sale.to_dict()})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@sales_bp.delete("/<int:sale_id>")
@require_tenant
def delete_sale_route(sale_id: int):
    try:
        sales_service.delete_sale_record(tenant_id=g.tenant_id, sale_id=sale_id)
        return jsonify({"deleted": True, "id": sale_id})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500
