# Overview: Flask API routes for customers, their ledger and analytics.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import DomainError
from ..services import analytics_service, party_service

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_tenant
def list_customers_route():
    customers = party_service.list_customers(tenant_id=g.tenant_id)
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)})


@customers_bp.post("")
@require_tenant
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    try:
        customer = party_service.create_customer(
            tenant_id=g.tenant_id,
            name=payload.get("name"),
            phone=payload.get("phone"),
            email=payload.get("email"),
            address=payload.get("address"),
            notes=payload.get("notes"),
        )
        return jsonify({"customer": customer.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>")
@require_tenant
def get_customer_route(customer_id: int):
    try:
        customer = party_service.get_customer(tenant_id=g.tenant_id, customer_id=customer_id)
        return jsonify({"customer": customer.to_dict()})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@customers_bp.patch("/<int:customer_id>")
@require_tenant
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        customer = party_service.update_customer(
            tenant_id=g.tenant_id, customer_id=customer_id, fields=payload
        )
        return jsonify({"customer": customer.to_dict()})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<int:customer_id>")
@require_tenant
def delete_customer_route(customer_id: int):
    try:
        party_service.delete_customer(tenant_id=g.tenant_id, customer_id=customer_id)
        return jsonify({"deleted": True, "id": customer_id})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.post("/<int:customer_id>/payments")
@require_tenant
def customer_payment_route(customer_id: int):
    """Body: amount (required), description, transaction_date."""
    payload = request.get_json(silent=True) or {}
    try:
        tx = party_service.record_customer_payment(
            tenant_id=g.tenant_id,
            customer_id=customer_id,
            amount=payload.get("amount"),
            description=payload.get("description"),
            transaction_date=payload.get("transaction_date"),
        )
        customer = party_service.get_customer(tenant_id=g.tenant_id, customer_id=customer_id)
        return jsonify({"transaction": tx.to_dict(), "customer": customer.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record customer payment")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.get("/<int:customer_id>/transactions")
@require_tenant
def customer_transactions_route(customer_id: int):
    try:
        txs = party_service.list_customer_transactions(tenant_id=g.tenant_id, customer_id=customer_id)
        return jsonify({"items": [t.to_dict() for t in txs], "count": len(txs)})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@customers_bp.get("/<int:customer_id>/analytics")
@require_tenant
def customer_analytics_route(customer_id: int):
    """Query params: as_of (ISO-8601), backend (history | aggregate)."""
    try:
        result = analytics_service.compute_customer_analytics(
            tenant_id=g.tenant_id,
            customer_id=customer_id,
            as_of=request.args.get("as_of"),
            backend=request.args.get("backend", "history"),
        )
        return jsonify(result.to_dict())
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to compute customer analytics")
        return jsonify({"error": "Internal server error"}), 500
