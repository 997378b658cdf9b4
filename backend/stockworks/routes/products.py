# Overview: Flask API routes for products and recipes (BOM); parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..errors import DomainError
from ..services import products_service, reporting_service

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_tenant
def list_products_route():
    low_stock_only = request.args.get("low_stock", "").lower() in {"1", "true", "yes"}
    products = products_service.list_products(tenant_id=g.tenant_id, low_stock_only=low_stock_only)
    return jsonify({"items": [p.to_dict(request.args.get("lang")) for p in products], "count": len(products)})


@products_bp.post("")
@require_tenant
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.create_product(tenant_id=g.tenant_id, payload=payload)
        return jsonify({"product": product.to_dict()}), 201
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>")
@require_tenant
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(tenant_id=g.tenant_id, product_id=product_id)
        return jsonify({"product": product.to_dict(request.args.get("lang"))})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.patch("/<int:product_id>")
@require_tenant
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.update_product(
            tenant_id=g.tenant_id, product_id=product_id, payload=payload
        )
        return jsonify({"product": product.to_dict()})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
@require_tenant
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(tenant_id=g.tenant_id, product_id=product_id)
        return jsonify({"deleted": True, "id": product_id})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/bom")
@require_tenant
def get_bom_route(product_id: int):
    try:
        items = products_service.get_bom(tenant_id=g.tenant_id, product_id=product_id)
        return jsonify({"items": [i.to_dict() for i in items], "count": len(items)})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code


@products_bp.put("/<int:product_id>/bom")
@require_tenant
def save_bom_route(product_id: int):
    """Body: {"items": [{"material_id": 1, "quantity_per_unit": 2.5}, ...]}; replaces the recipe."""
    payload = request.get_json(silent=True) or {}
    try:
        items = products_service.save_bom(
            tenant_id=g.tenant_id, product_id=product_id, items=payload.get("items")
        )
        return jsonify({"items": [i.to_dict() for i in items], "count": len(items)})
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to save product recipe")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.get("/<int:product_id>/recipe-cost")
@require_tenant
def recipe_cost_route(product_id: int):
    try:
        return jsonify(reporting_service.recipe_cost(tenant_id=g.tenant_id, product_id=product_id))
    except DomainError as e:
        return jsonify(e.to_dict()), e.status_code
