"""Initial pet store schema: catalog, inventory ledger, sales, customers

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "item_types",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("item_types", schema=None) as batch_op:
        batch_op.create_index("ix_item_types_is_active", ["is_active"], unique=False)
        batch_op.create_index("ix_item_types_deleted_at", ["deleted_at"], unique=False)

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("item_type_id", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("selling_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("unit", sa.String(20), nullable=False, server_default="pcs"),
        sa.Column("image_path", sa.String(500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["item_type_id"], ["item_types.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("selling_price >= 0", name="ck_items_selling_price_nonneg"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("items", schema=None) as batch_op:
        batch_op.create_index("ix_items_code", ["code"], unique=True)
        batch_op.create_index("ix_items_name", ["name"], unique=False)
        batch_op.create_index("ix_items_item_type_id", ["item_type_id"], unique=False)
        batch_op.create_index("ix_items_type_active", ["item_type_id", "is_active"], unique=False)
        batch_op.create_index("ix_items_deleted_at", ["deleted_at"], unique=False)

    op.create_table(
        "inventory",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("min_stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("avg_cost", sa.Numeric(14, 4), nullable=True),
        sa.Column("location", sa.String(100), nullable=True),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("item_id", name="uq_inventory_item"),
        sa.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_nonneg"),
        sa.CheckConstraint("min_stock >= 0", name="ck_inventory_min_stock_nonneg"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("inventory", schema=None) as batch_op:
        batch_op.create_index("ix_inventory_item_id", ["item_id"], unique=False)
        batch_op.create_index("ix_inventory_deleted_at", ["deleted_at"], unique=False)

    op.create_table(
        "stock_ins",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("import_date", sa.Date(), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(16), nullable=False, server_default="draft"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("stock_ins", schema=None) as batch_op:
        batch_op.create_index("ix_stock_ins_import_date", ["import_date"], unique=False)
        batch_op.create_index("ix_stock_ins_status", ["status"], unique=False)
        batch_op.create_index("ix_stock_ins_deleted_at", ["deleted_at"], unique=False)

    op.create_table(
        "stock_in_details",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("stock_in_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("cost_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(["stock_in_id"], ["stock_ins.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity >= 1", name="ck_stock_in_details_quantity_pos"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("stock_in_details", schema=None) as batch_op:
        batch_op.create_index("ix_stock_in_details_stock_in_id", ["stock_in_id"], unique=False)
        batch_op.create_index("ix_stock_in_details_item_id", ["item_id"], unique=False)

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("email", sa.String(100), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("birthday", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("customers", schema=None) as batch_op:
        batch_op.create_index("ix_customers_name", ["name"], unique=False)
        batch_op.create_index("ix_customers_phone", ["phone"], unique=False)
        batch_op.create_index("ix_customers_is_active", ["is_active"], unique=False)
        batch_op.create_index("ix_customers_deleted_at", ["deleted_at"], unique=False)

    op.create_table(
        "sales",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("sale_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("discount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("final_amount", sa.Numeric(12, 2), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_method", sa.String(16), nullable=False, server_default="cash"),
        sa.Column("status", sa.String(16), nullable=False, server_default="completed"),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sa.CheckConstraint("discount >= 0", name="ck_sales_discount_nonneg"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sales", schema=None) as batch_op:
        batch_op.create_index("ix_sales_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_sales_sale_date", ["sale_date"], unique=False)
        batch_op.create_index("ix_sales_payment_method", ["payment_method"], unique=False)
        batch_op.create_index("ix_sales_status", ["status"], unique=False)
        batch_op.create_index("ix_sales_status_date", ["status", "sale_date"], unique=False)
        batch_op.create_index("ix_sales_deleted_at", ["deleted_at"], unique=False)

    op.create_table(
        "sale_details",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(12, 2), nullable=False),
        sa.Column("cost_price", sa.Numeric(14, 4), nullable=True),
        sa.Column("subtotal", sa.Numeric(12, 2), nullable=False),
        sa.ForeignKeyConstraint(["sale_id"], ["sales.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("quantity >= 1", name="ck_sale_details_quantity_pos"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("sale_details", schema=None) as batch_op:
        batch_op.create_index("ix_sale_details_sale_id", ["sale_id"], unique=False)
        batch_op.create_index("ix_sale_details_item_id", ["item_id"], unique=False)

    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("document_type", name="uq_document_sequences_type"),
        sqlite_autoincrement=True,
    )


def downgrade():
    op.drop_table("document_sequences")
    op.drop_table("sale_details")
    op.drop_table("sales")
    op.drop_table("customers")
    op.drop_table("stock_in_details")
    op.drop_table("stock_ins")
    op.drop_table("inventory")
    op.drop_table("items")
    op.drop_table("item_types")
