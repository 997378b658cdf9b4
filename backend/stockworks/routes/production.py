# Overview: Flask API routes for production runs; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import DomainError
from ..services import production_service

production_bp = Blueprint("production", __name__, url_prefix="/api/production")


@production_bp.get("")
@require_tenant
def list_production_route():
    """Query params: start, end (ISO-8601, inclusive)."""
    try:
        records = production_service.list_production_records(
            tenant_id=g.tenant_id,
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
        return jsonify({"items": [r.to_dict() for r in records], "count": len(records)})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@production_bp.post("")
@require_tenant
def record_production_route():
    """
    Record a production run.

    Body: product_id, quantity (required); materials (optional override
    lines [{material_id, quantity_used}]), production_date, notes.
    """
    payload = request.get_json(silent=True) or {}
    try:
        record = production_service.record_production(
            tenant_id=g.tenant_id,
            product_id=payload.get("product_id"),
            quantity=payload.get("quantity"),
            materials=payload.get("materials"),
            production_date=payload.get("production_date"),
            notes=payload.get("notes"),
        )
        return jsonify({"production": record.to_dict(include_materials=True)}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record production")
        return jsonify({"error": "Internal server error"}), 500


@production_bp.get("/<int:record_id>")
@require_tenant
def get_production_route(record_id: int):
    try:
        record = production_service.get_production_record(tenant_id=g.tenant_id, record_id=record_id)
        return jsonify({"production": record.to_dict(include_materials=True)})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@production_bp.patch("/<int:record_id>")
@require_tenant
def update_production_route(record_id: int):
    payload = request.get_json(silent=True) or {}
    unknown = set(payload) - {"production_date", "notes"}
    if unknown:
        return jsonify({
            "error": "Only production_date and notes can be changed; delete and re-record instead",
            "kind": "validation",
            "details": {"fields": sorted(unknown)},
        }), 400

    try:
        record = production_service.update_production_record(
            tenant_id=g.tenant_id,
            record_id=record_id,
            production_date=payload.get("production_date"),
            notes=payload.get("notes"),
        )
        return jsonify({"production": record.to_dict()})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update production record")
        return jsonify({"error": "Internal server error"}), 500


@production_bp.delete("/<int:record_id>")
@require_tenant
def delete_production_route(record_id: int):
    try:
        production_service.delete_production_record(tenant_id=g.tenant_id, record_id=record_id)
        return jsonify({"deleted": True, "id": record_id})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete production record")
        return jsonify({"error": "Internal server error"}), 500
