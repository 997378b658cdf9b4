# Overview: Destructive maintenance: password-gated wipe of one tenant's data.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..models import (
    Customer,
    CustomerTransaction,
    MaterialReceipt,
    Product,
    ProductBOM,
    ProductionMaterial,
    ProductionRecord,
    RawMaterial,
    SaleRecord,
    StockMovement,
    Supplier,
    SupplierTransaction,
)
from .auth_service import verify_password
from .concurrency import atomic
from .tenant_service import get_tenant, scoped_query


# Children before parents so foreign keys never dangle mid-transaction
RESET_ORDER = (
    ProductionMaterial,
    ProductionRecord,
    CustomerTransaction,
    SupplierTransaction,
    SaleRecord,
    ProductBOM,
    MaterialReceipt,
    StockMovement,
    RawMaterial,
    Product,
    Customer,
    Supplier,
)


@dataclass(frozen=True)
class ResetResult:
    success: bool
    message: str
    deleted: dict | None = None

    def to_dict(self) -> dict:
        return {"success": self.success, "message": self.message, "deleted": self.deleted or {}}


def reset_all_data(*, tenant_id: int, password: str | None) -> ResetResult:
    """
    Delete every row the tenant owns, keeping the Tenant itself.

    A wrong or missing password is a normal outcome (success=False), not an
    exception.
    """
    tenant = get_tenant(tenant_id)
    candidate = (password or "").strip()

    if not tenant.reset_password_hash:
        current_app.logger.warning("Data reset refused for tenant %s: no reset password set", tenant.code)
        return ResetResult(False, "No reset password has been configured for this account")

    if not candidate or not verify_password(candidate, tenant.reset_password_hash):
        current_app.logger.warning("Data reset refused for tenant %s: invalid password", tenant.code)
        return ResetResult(False, "Invalid password")

    deleted = {}
    with atomic():
        for model in RESET_ORDER:
            deleted[model.__tablename__] = scoped_query(model, tenant_id).delete(synchronize_session=False)

    current_app.logger.info("Data reset completed for tenant %s: %s", tenant.code, deleted)
    return ResetResult(True, "All data has been deleted", deleted)
