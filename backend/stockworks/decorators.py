# Overview: Request decorators for API routes (tenant authentication).

from functools import wraps
from flask import request, jsonify, g

from .services.tenant_service import resolve_api_key


def require_tenant(f):
    """
    Require a tenant API key and establish tenant context.

    Sets the following Flask g attributes:
    - g.tenant: the authenticated Tenant
    - g.tenant_id: its id, passed to every service call

    Returns 401 if:
    - No Authorization header
    - Unknown key
    - Tenant deactivated
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        api_key = auth_header.split(" ", 1)[1].strip()
        tenant = resolve_api_key(api_key)

        if tenant is None:
            return jsonify({"error": "Invalid API key"}), 401

        g.tenant = tenant
        g.tenant_id = tenant.id

        return f(*args, **kwargs)

    return decorated_function
