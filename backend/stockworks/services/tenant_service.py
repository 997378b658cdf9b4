"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

WHY: Every row belongs to exactly one Tenant. Services receive tenant_id
explicitly and load entities only through get_owned / scoped_query, so an
id belonging to another tenant behaves exactly like a missing one.

USAGE:
    from stockworks.services.tenant_service import get_owned, scoped_query

    material = get_owned(RawMaterial, material_id, tenant_id, label="Raw material")
    products = scoped_query(Product, tenant_id).all()
"""

from __future__ import annotations

from ..extensions import db
from ..errors import NotFoundError, ValidationError
from ..models import Tenant
from .auth_service import generate_api_key, hash_api_key, hash_password
from .concurrency import atomic, lock_for_update


def scoped_query(model, tenant_id: int):
    """Query over model restricted to one tenant's rows."""
    return db.session.query(model).filter(model.tenant_id == tenant_id)


def get_owned(model, entity_id, tenant_id: int, *, lock: bool = False, label: str | None = None):
    """
    Load one tenant-owned row or raise NotFoundError.

    lock=True takes a row lock for the rest of the unit of work.
    """
    label = label or model.__name__
    if entity_id is None:
        raise ValidationError(f"{label} id is required")
    query = scoped_query(model, tenant_id).filter(model.id == entity_id)
    if lock:
        query = lock_for_update(query)
    entity = query.first()
    if entity is None:
        raise NotFoundError(f"{label} not found", details={"id": entity_id})
    return entity


def get_tenant(tenant_id: int) -> Tenant:
    tenant = db.session.query(Tenant).filter_by(id=tenant_id).first()
    if not tenant:
        raise NotFoundError("Tenant not found", details={"id": tenant_id})
    return tenant


def create_tenant(*, name: str, code: str, reset_password: str | None = None) -> tuple[Tenant, str]:
    """
    Create a tenant and issue its first API key.

    Returns (tenant, plaintext_api_key). The plaintext key is never stored.
    """
    if not name or not name.strip():
        raise ValidationError("Tenant name is required")
    if not code or not code.strip():
        raise ValidationError("Tenant code is required")
    code = code.strip().upper()

    existing = db.session.query(Tenant).filter_by(code=code).first()
    if existing:
        raise ValidationError(f"Tenant code '{code}' already exists")

    api_key = generate_api_key()
    with atomic():
        tenant = Tenant(
            name=name.strip(),
            code=code,
            api_key_hash=hash_api_key(api_key),
            reset_password_hash=hash_password(reset_password) if reset_password else None,
            is_active=True,
        )
        db.session.add(tenant)
    return tenant, api_key


def rotate_api_key(tenant_id: int) -> str:
    """Replace a tenant's API key; the old key stops working immediately."""
    api_key = generate_api_key()
    with atomic():
        tenant = get_tenant(tenant_id)
        tenant.api_key_hash = hash_api_key(api_key)
    return api_key


def set_reset_password(tenant_id: int, password: str) -> None:
    with atomic():
        tenant = get_tenant(tenant_id)
        tenant.reset_password_hash = hash_password(password)


def resolve_api_key(api_key: str | None) -> Tenant | None:
    """Active tenant owning api_key, or None."""
    if not api_key:
        return None
    tenant = db.session.query(Tenant).filter_by(api_key_hash=hash_api_key(api_key)).first()
    if tenant is None or not tenant.is_active:
        return None
    return tenant
