# Overview: Flask API routes for suppliers and their ledger.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import DomainError
from ..services import party_service

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_tenant
def list_suppliers_route():
    suppliers = party_service.list_suppliers(tenant_id=g.tenant_id)
    return jsonify({"items": [s.to_dict() for s in suppliers], "count": len(suppliers)})


@suppliers_bp.post("")
@require_tenant
def create_supplier_route():
    payload = request.get_json(silent=True) or {}
    try:
        supplier = party_service.create_supplier(
            tenant_id=g.tenant_id,
            name=payload.get("name"),
            phone=payload.get("phone"),
            email=payload.get("email"),
            address=payload.get("address"),
            notes=payload.get("notes"),
        )
        return jsonify({"supplier": supplier.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return jsonify({"error": "Internal server error"}), 500


@suppliers_bp.get("/<int:supplier_id>")
@require_tenant
def get_supplier_route(supplier_id: int):
    try:
        supplier = party_service.get_supplier(tenant_id=g.tenant_id, supplier_id=supplier_id)
        return jsonify({"supplier": supplier.to_dict()})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@suppliers_bp.patch("/<int:supplier_id>")
@require_tenant
def update_supplier_route(supplier_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        supplier = party_service.update_supplier(
            tenant_id=g.tenant_id, supplier_id=supplier_id, fields=payload
        )
        return jsonify({"supplier": supplier.to_dict()})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update supplier")
        return jsonify({"error": "Internal server error"}), 500


@suppliers_bp.delete("/<int:supplier_id>")
@require_tenant
def delete_supplier_route(supplier_id: int):
    try:
        party_service.delete_supplier(tenant_id=g.tenant_id, supplier_id=supplier_id)
        return jsonify({"deleted": True, "id": supplier_id})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete supplier")
        return jsonify({"error": "Internal server error"}), 500


@suppliers_bp.post("/<int:supplier_id>/payments")
@require_tenant
def supplier_payment_route(supplier_id: int):
    """Body: amount (required), description, transaction_date."""
    payload = request.get_json(silent=True) or {}
    try:
        tx = party_service.record_supplier_payment(
            tenant_id=g.tenant_id,
            supplier_id=supplier_id,
            amount=payload.get("amount"),
            description=payload.get("description"),
            transaction_date=payload.get("transaction_date"),
        )
        supplier = party_service.get_supplier(tenant_id=g.tenant_id, supplier_id=supplier_id)
        return jsonify({"transaction": tx.to_dict(), "supplier": supplier.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record supplier payment")
        return jsonify({"error": "Internal server error"}), 500


@suppliers_bp.get("/<int:supplier_id>/transactions")
@require_tenant
def supplier_transactions_route(supplier_id: int):
    try:
        txs = party_service.list_supplier_transactions(tenant_id=g.tenant_id, supplier_id=supplier_id)
        return jsonify({"items": [t.to_dict() for t in txs], "count": len(txs)})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
