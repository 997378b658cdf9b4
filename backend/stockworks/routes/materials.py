# Overview: Flask API routes for raw materials and receipts; parses input and returns JSON responses.

"""
Raw material routes.

All routes require a tenant API key (@require_tenant); every service call
is scoped to g.tenant_id.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import DomainError
from ..services import materials_service
from ..models.common import as_number

materials_bp = Blueprint("materials", __name__, url_prefix="/api/materials")


@materials_bp.get("")
@require_tenant
def list_materials_route():
    """Query params: low_stock=1 for materials at or below threshold, lang=ar for Arabic display names."""
    low_stock_only = request.args.get("low_stock", "").lower() in {"1", "true", "yes"}
    materials = materials_service.list_materials(tenant_id=g.tenant_id, low_stock_only=low_stock_only)
    return jsonify({"items": [m.to_dict(request.args.get("lang")) for m in materials], "count": len(materials)})


@materials_bp.post("")
@require_tenant
def create_material_route():
    payload = request.get_json(silent=True) or {}
    try:
        material = materials_service.add_material(tenant_id=g.tenant_id, payload=payload)
        return jsonify({"material": material.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create material")
        return jsonify({"error": "Internal server error"}), 500


@materials_bp.get("/<int:material_id>")
@require_tenant
def get_material_route(material_id: int):
    try:
        material = materials_service.get_material(tenant_id=g.tenant_id, material_id=material_id)
        return jsonify({"material": material.to_dict(request.args.get("lang"))})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@materials_bp.patch("/<int:material_id>")
@require_tenant
def update_material_route(material_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        material = materials_service.update_material(
            tenant_id=g.tenant_id, material_id=material_id, payload=payload
        )
        return jsonify({"material": material.to_dict()})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update material")
        return jsonify({"error": "Internal server error"}), 500


@materials_bp.delete("/<int:material_id>")
@require_tenant
def delete_material_route(material_id: int):
    try:
        materials_service.delete_material(tenant_id=g.tenant_id, material_id=material_id)
        return jsonify({"deleted": True, "id": material_id})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete material")
        return jsonify({"error": "Internal server error"}), 500


@materials_bp.post("/<int:material_id>/receive")
@require_tenant
def receive_material_route(material_id: int):
    """
    Receive stock.

    Body: quantity (required), supplier_id, unit_cost, shipping_cost,
    total_cost, received_date.
    """
    payload = request.get_json(silent=True) or {}
    try:
        material = materials_service.receive_material(
            tenant_id=g.tenant_id,
            material_id=material_id,
            quantity=payload.get("quantity"),
            supplier_id=payload.get("supplier_id"),
            unit_cost=payload.get("unit_cost"),
            shipping_cost=payload.get("shipping_cost"),
            total_cost=payload.get("total_cost"),
            received_date=payload.get("received_date"),
        )
        return jsonify({"material": material.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to receive material")
        return jsonify({"error": "Internal server error"}), 500


@materials_bp.get("/receipts")
@require_tenant
def list_receipts_route():
    receipts = materials_service.list_receipts(tenant_id=g.tenant_id)
    return jsonify({"items": [r.to_dict() for r in receipts], "count": len(receipts)})


@materials_bp.get("/<int:material_id>/receipts")
@require_tenant
def material_receipts_route(material_id: int):
    try:
        materials_service.get_material(tenant_id=g.tenant_id, material_id=material_id)
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code

    receipts = materials_service.list_receipts(tenant_id=g.tenant_id, material_id=material_id)
    return jsonify({
        "items": [r.to_dict() for r in receipts],
        "count": len(receipts),
        "latest_unit_cost": as_number(
            materials_service.latest_unit_cost(tenant_id=g.tenant_id, material_id=material_id)
        ),
        "average_unit_cost": as_number(
            materials_service.average_unit_cost(tenant_id=g.tenant_id, material_id=material_id)
        ),
    })
