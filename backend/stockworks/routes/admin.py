# Overview: Flask API routes for tenant administration (data reset).

"""
Admin routes.

SECURITY: the data reset is double-gated. The caller must echo the
confirmation phrase and supply the tenant's reset password.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_tenant
from ..services import maintenance_service

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.post("/reset")
@require_tenant
def reset_data_route():
    """
    Delete all of the caller's data.

    Body: {"password": "...", "confirmation": "DELETE ALL DATA"}

    Returns:
    - 200: data deleted
    - 400: confirmation phrase missing or wrong
    - 403: wrong reset password
    """
    payload = request.get_json(silent=True) or {}
    phrase = current_app.config["RESET_CONFIRMATION_PHRASE"]

    if payload.get("confirmation") != phrase:
        return jsonify({
            "success": False,
            "error": f"Type '{phrase}' to confirm",
        }), 400

    try:
        result = maintenance_service.reset_all_data(
            tenant_id=g.tenant_id,
            password=payload.get("password"),
        )
    except Exception:
        current_app.logger.exception("Failed to reset tenant data")
        return jsonify({"error": "Internal server error"}), 500

    if not result.success:
        return jsonify(result.to_dict()), 403
    return jsonify(result.to_dict())
