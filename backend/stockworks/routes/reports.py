# Overview: Flask API routes for read-only reports.

from flask import Blueprint, request, jsonify, g

from ..decorators import require_tenant
from ..errors import DomainError
from ..services import reporting_service
from ..services.ledger_service import list_stock_movements

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/summary")
@require_tenant
def summary_route():
    """Query params: start, end (required, ISO-8601, inclusive)."""
    try:
        return jsonify(reporting_service.period_summary(
            tenant_id=g.tenant_id,
            start=request.args.get("start"),
            end=request.args.get("end"),
        ))
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@reports_bp.get("/low-stock")
@require_tenant
def low_stock_route():
    return jsonify(reporting_service.low_stock_alerts(tenant_id=g.tenant_id))


@reports_bp.get("/valuation")
@require_tenant
def valuation_route():
    return jsonify(reporting_service.inventory_valuation(tenant_id=g.tenant_id))


@reports_bp.get("/stock-movements")
@require_tenant
def stock_movements_route():
    """Query params: item_type (material | product), item_id, limit."""
    movements = list_stock_movements(
        tenant_id=g.tenant_id,
        item_type=request.args.get("item_type"),
        item_id=request.args.get("item_id", type=int),
        limit=min(request.args.get("limit", 200, type=int), 1000),
    )
    return jsonify({"items": [m.to_dict() for m in movements], "count": len(movements)})
