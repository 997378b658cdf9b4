from __future__ import annotations

from ..extensions import db
from stockworks.time_utils import to_utc_z


class Tenant(db.Model):
    """
    Multi-tenant root: every business using the system is a Tenant.

    DESIGN:
    - All materials, products, parties and ledgers carry tenant_id
    - API callers authenticate with a per-tenant key (stored as SHA-256)
    - The destructive data reset is gated by a per-tenant bcrypt password
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=False, unique=True, index=True)

    api_key_hash = db.Column(db.String(64), nullable=True, unique=True, index=True)
    reset_password_hash = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} code={self.code!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "has_reset_password": self.reset_password_hash is not None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
