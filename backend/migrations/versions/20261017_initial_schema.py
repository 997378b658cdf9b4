"""Initial Stockworks schema

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = True):
    cols = [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]
    if updated:
        cols.append(
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False)
        )
    return cols


def _money(name: str, nullable: bool = False, default: bool = True):
    if default:
        return sa.Column(name, sa.Numeric(14, 4), nullable=nullable, server_default=sa.text("0"))
    return sa.Column(name, sa.Numeric(14, 4), nullable=nullable)


def _party_table(name: str):
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _money("current_balance"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table(name, schema=None) as batch_op:
        batch_op.create_index(f"ix_{name}_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index(f"ix_{name}_tenant_name", ["tenant_id", "name"], unique=False)


def _party_transaction_table(name: str, owner_column: str, owner_table: str):
    op.create_table(
        name,
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column(owner_column, sa.Integer(), nullable=False),
        sa.Column("transaction_type", sa.String(16), nullable=False),
        _money("amount", default=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("reference_id", sa.Integer(), nullable=True),
        sa.Column("transaction_date", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint([owner_column], [f"{owner_table}.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table(name, schema=None) as batch_op:
        batch_op.create_index(f"ix_{name}_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index(f"ix_{name}_{owner_column}", [owner_column], unique=False)
        batch_op.create_index(f"ix_{name}_transaction_type", ["transaction_type"], unique=False)
        batch_op.create_index(f"ix_{name}_reference_id", ["reference_id"], unique=False)
        batch_op.create_index(
            f"ix_{name}_{owner_column.replace('_id', '')}_date",
            [owner_column, "transaction_date"],
            unique=False,
        )


def upgrade():
    op.create_table(
        "tenants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("api_key_hash", sa.String(64), nullable=True),
        sa.Column("reset_password_hash", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("tenants", schema=None) as batch_op:
        batch_op.create_index("ix_tenants_code", ["code"], unique=True)
        batch_op.create_index("ix_tenants_api_key_hash", ["api_key_hash"], unique=True)
        batch_op.create_index("ix_tenants_is_active", ["is_active"], unique=False)

    _party_table("customers")
    _party_table("suppliers")

    op.create_table(
        "raw_materials",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("name_ar", sa.String(255), nullable=True),
        sa.Column("unit", sa.String(16), nullable=False),
        _money("current_stock"),
        _money("min_threshold"),
        _money("cost_per_unit"),
        sa.Column("supplier_id", sa.Integer(), nullable=True),
        sa.Column("last_received", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("raw_materials", schema=None) as batch_op:
        batch_op.create_index("ix_raw_materials_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index("ix_raw_materials_supplier_id", ["supplier_id"], unique=False)
        batch_op.create_index("ix_raw_materials_tenant_name", ["tenant_id", "name"], unique=False)

    op.create_table(
        "material_receipts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("material_id", sa.Integer(), nullable=True),
        sa.Column("supplier_id", sa.Integer(), nullable=True),
        _money("quantity_received", default=False),
        _money("unit_cost", default=False),
        _money("shipping_cost"),
        _money("total_cost", default=False),
        sa.Column("received_date", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["material_id"], ["raw_materials.id"]),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("material_receipts", schema=None) as batch_op:
        batch_op.create_index("ix_material_receipts_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index("ix_material_receipts_material_id", ["material_id"], unique=False)
        batch_op.create_index("ix_material_receipts_supplier_id", ["supplier_id"], unique=False)
        batch_op.create_index("ix_material_receipts_tenant_date", ["tenant_id", "received_date"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("name_ar", sa.String(255), nullable=True),
        sa.Column("size", sa.String(64), nullable=False),
        _money("selling_price"),
        _money("production_cost"),
        _money("current_stock"),
        _money("min_threshold"),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index("ix_products_tenant_name", ["tenant_id", "name"], unique=False)

    op.create_table(
        "product_bom",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("material_id", sa.Integer(), nullable=False),
        _money("quantity_per_unit", default=False),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["material_id"], ["raw_materials.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "material_id", name="uq_product_bom_product_material"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("product_bom", schema=None) as batch_op:
        batch_op.create_index("ix_product_bom_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index("ix_product_bom_product_id", ["product_id"], unique=False)
        batch_op.create_index("ix_product_bom_material_id", ["material_id"], unique=False)

    op.create_table(
        "production_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        _money("quantity", default=False),
        sa.Column("production_date", sa.DateTime(timezone=True), nullable=False),
        _money("total_cost"),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("production_records", schema=None) as batch_op:
        batch_op.create_index("ix_production_records_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index("ix_production_records_product_id", ["product_id"], unique=False)
        batch_op.create_index("ix_production_records_tenant_date", ["tenant_id", "production_date"], unique=False)

    op.create_table(
        "production_materials",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("production_record_id", sa.Integer(), nullable=False),
        sa.Column("material_id", sa.Integer(), nullable=False),
        _money("quantity_used", default=False),
        _money("cost_at_time"),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["production_record_id"], ["production_records.id"]),
        sa.ForeignKeyConstraint(["material_id"], ["raw_materials.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("production_materials", schema=None) as batch_op:
        batch_op.create_index("ix_production_materials_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index("ix_production_materials_production_record_id", ["production_record_id"], unique=False)
        batch_op.create_index("ix_production_materials_material_id", ["material_id"], unique=False)

    op.create_table(
        "sales_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("customer_name", sa.String(255), nullable=False),
        _money("quantity", default=False),
        _money("sale_price", default=False),
        _money("shipping_cost"),
        _money("total_amount", default=False),
        _money("amount_paid"),
        sa.Column("payment_method", sa.String(16), nullable=False),
        sa.Column("payment_status", sa.String(16), nullable=False),
        sa.Column("sale_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sales_records", schema=None) as batch_op:
        batch_op.create_index("ix_sales_records_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index("ix_sales_records_product_id", ["product_id"], unique=False)
        batch_op.create_index("ix_sales_records_payment_status", ["payment_status"], unique=False)
        batch_op.create_index("ix_sales_records_tenant_date", ["tenant_id", "sale_date"], unique=False)
        batch_op.create_index("ix_sales_records_customer_date", ["customer_id", "sale_date"], unique=False)

    _party_transaction_table("customer_transactions", "customer_id", "customers")
    _party_transaction_table("supplier_transactions", "supplier_id", "suppliers")

    op.create_table(
        "stock_movements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("item_type", sa.String(16), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("movement_type", sa.String(32), nullable=False),
        _money("quantity_delta", default=False),
        sa.Column("reference_type", sa.String(32), nullable=True),
        sa.Column("reference_id", sa.Integer(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("note", sa.String(255), nullable=True),
        *_timestamps(updated=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("stock_movements", schema=None) as batch_op:
        batch_op.create_index("ix_stock_movements_tenant_id", ["tenant_id"], unique=False)
        batch_op.create_index("ix_stock_movements_movement_type", ["movement_type"], unique=False)
        batch_op.create_index("ix_stock_movements_occurred_at", ["occurred_at"], unique=False)
        batch_op.create_index("ix_stock_movements_item", ["tenant_id", "item_type", "item_id"], unique=False)
        batch_op.create_index("ix_stock_movements_reference", ["reference_type", "reference_id"], unique=False)


def downgrade():
    for table in (
        "stock_movements",
        "supplier_transactions",
        "customer_transactions",
        "sales_records",
        "production_materials",
        "production_records",
        "product_bom",
        "products",
        "material_receipts",
        "raw_materials",
        "suppliers",
        "customers",
        "tenants",
    ):
        op.drop_table(table)
