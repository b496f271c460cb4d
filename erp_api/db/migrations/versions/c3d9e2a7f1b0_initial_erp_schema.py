"""Initial ERP schema.

- tenants, users, roles, user_roles
- preparation_zones, product_families, payment_methods, price_lists
- suppliers, sales_agents, shifts
- bank_movements, stock_movements, work_orders, invoices

On PostgreSQL every tenant-scoped table also gets a row level security policy
keyed on the app.tenant_id GUC.
"""

from typing import List, Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "c3d9e2a7f1b0"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")
AMOUNT = sa.Numeric(18, 4)

TENANT_SCOPED_TABLES = [
    "users",
    "roles",
    "user_roles",
    "preparation_zones",
    "product_families",
    "payment_methods",
    "price_lists",
    "suppliers",
    "sales_agents",
    "shifts",
    "bank_movements",
    "stock_movements",
    "work_orders",
    "invoices",
]


def _base_columns() -> List[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("tenant_id", sa.Uuid(), sa.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _flag(name: str, value: bool) -> sa.Column:
    return sa.Column(name, sa.Boolean(), nullable=False, server_default=sa.true() if value else sa.false())


def _create_scoped_table(name: str, *items) -> None:
    op.create_table(name, *_base_columns(), *items)
    op.create_index(f"ix_{name}_tenant_id", name, ["tenant_id"])


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False, unique=True),
        sa.Column("slug", sa.Text(), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Security
    _create_scoped_table(
        "users",
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=True),
        sa.Column("hashed_password", sa.Text(), nullable=False),
        _flag("is_active", True),
        _flag("is_superadmin", False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
    )
    _create_scoped_table(
        "roles",
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.UniqueConstraint("tenant_id", "name", name="uq_roles_tenant_name"),
    )
    _create_scoped_table(
        "user_roles",
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("role_id", sa.Uuid(), sa.ForeignKey("roles.id", ondelete="CASCADE"), nullable=False),
        sa.UniqueConstraint("tenant_id", "user_id", "role_id", name="uq_user_roles_tenant_user_role"),
    )

    # Catalog
    _create_scoped_table(
        "preparation_zones",
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.Text(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("avg_preparation_minutes", sa.Integer(), nullable=False, server_default="15"),
        _flag("notify_delay", True),
        sa.Column("alert_after_minutes", sa.Integer(), nullable=False, server_default="10"),
        sa.Column("printer_id", sa.Uuid(), nullable=True),
        sa.Column("kds", JSON, nullable=False),
        _flag("active", True),
        sa.UniqueConstraint("tenant_id", "code", name="uq_preparation_zones_tenant_code"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_preparation_zones_tenant_name"),
    )
    _create_scoped_table(
        "product_families",
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("short_description", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("parent_id", sa.Uuid(), sa.ForeignKey("product_families.id", ondelete="SET NULL"), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        _flag("use_in_pos", True),
        sa.Column("pos_position", sa.Integer(), nullable=True),
        sa.Column("color", sa.Text(), nullable=True),
        _flag("active", True),
        sa.UniqueConstraint("tenant_id", "code", name="uq_product_families_tenant_code"),
    )
    _create_scoped_table(
        "payment_methods",
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("method_type", sa.Text(), nullable=False, server_default="cash"),
        sa.Column("commission_percent", AMOUNT, nullable=False, server_default="0"),
        _flag("requires_bank_details", False),
        sa.Column("color", sa.Text(), nullable=True),
        sa.Column("icon", sa.Text(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        _flag("active", True),
        sa.UniqueConstraint("tenant_id", "code", name="uq_payment_methods_tenant_code"),
    )
    _create_scoped_table(
        "price_lists",
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("list_type", sa.Text(), nullable=False, server_default="fixed"),
        sa.Column("price_base", sa.Text(), nullable=False, server_default="sale"),
        sa.Column("general_percent", AMOUNT, nullable=False, server_default="0"),
        sa.Column("valid_from", sa.Date(), nullable=True),
        sa.Column("valid_to", sa.Date(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("lines", JSON, nullable=False),
        _flag("active", True),
        sa.UniqueConstraint("tenant_id", "code", name="uq_price_lists_tenant_code"),
    )

    # Partners and HR
    _create_scoped_table(
        "suppliers",
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("supplier_type", sa.Text(), nullable=False, server_default="company"),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("trade_name", sa.Text(), nullable=True),
        sa.Column("tax_id", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("mobile", sa.Text(), nullable=True),
        sa.Column("website", sa.Text(), nullable=True),
        sa.Column("address", JSON, nullable=False),
        sa.Column("payment_method_id", sa.Uuid(), nullable=True),
        sa.Column("payment_days", sa.Integer(), nullable=True),
        sa.Column("general_discount", AMOUNT, nullable=False, server_default="0"),
        sa.Column("rating", sa.Integer(), nullable=True),
        sa.Column("avg_delivery_days", AMOUNT, nullable=True),
        sa.Column("reliability", AMOUNT, nullable=True),
        sa.Column("iban", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("tags", JSON, nullable=False),
        _flag("active", True),
        sa.UniqueConstraint("tenant_id", "code", name="uq_suppliers_tenant_code"),
        sa.UniqueConstraint("tenant_id", "tax_id", name="uq_suppliers_tenant_tax_id"),
    )
    _create_scoped_table(
        "sales_agents",
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("surname", sa.Text(), nullable=True),
        sa.Column("tax_id", sa.Text(), nullable=True),
        sa.Column("agent_type", sa.Text(), nullable=False, server_default="internal"),
        sa.Column("status", sa.Text(), nullable=False, server_default="active"),
        sa.Column("email", sa.Text(), nullable=True),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("commission_percent", AMOUNT, nullable=False, server_default="0"),
        sa.Column("sales_target", AMOUNT, nullable=True),
        sa.Column("total_sales", AMOUNT, nullable=False, server_default="0"),
        sa.Column("accumulated_commission", AMOUNT, nullable=False, server_default="0"),
        sa.Column("zone", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        _flag("active", True),
        sa.UniqueConstraint("tenant_id", "code", name="uq_sales_agents_tenant_code"),
    )
    op.create_index("ix_sales_agents_tax_id", "sales_agents", ["tax_id"])
    _create_scoped_table(
        "shifts",
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_time", sa.Text(), nullable=False),
        sa.Column("end_time", sa.Text(), nullable=False),
        sa.Column("break_start", sa.Text(), nullable=True),
        sa.Column("break_end", sa.Text(), nullable=True),
        sa.Column("break_minutes", sa.Integer(), nullable=True),
        sa.Column("theoretical_hours", AMOUNT, nullable=False, server_default="0"),
        sa.Column("weekdays", JSON, nullable=False),
        sa.Column("color", sa.Text(), nullable=True),
        _flag("active", True),
        sa.UniqueConstraint("tenant_id", "code", name="uq_shifts_tenant_code"),
    )

    # Treasury
    _create_scoped_table(
        "bank_movements",
        sa.Column("number", sa.Text(), nullable=False),
        sa.Column("direction", sa.Text(), nullable=False),
        sa.Column("origin", sa.Text(), nullable=False, server_default="manual"),
        sa.Column("method", sa.Text(), nullable=False, server_default="transfer"),
        sa.Column("status", sa.Text(), nullable=False, server_default="confirmed"),
        sa.Column("amount", AMOUNT, nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("value_date", sa.Date(), nullable=True),
        sa.Column("concept", sa.Text(), nullable=False),
        sa.Column("bank_account", sa.Text(), nullable=True),
        sa.Column("counterparty_type", sa.Text(), nullable=True),
        sa.Column("counterparty_id", sa.Uuid(), nullable=True),
        sa.Column("counterparty_name", sa.Text(), nullable=True),
        sa.Column("counterparty_tax_id", sa.Text(), nullable=True),
        sa.Column("source_document_type", sa.Text(), nullable=True),
        sa.Column("source_document_id", sa.Uuid(), nullable=True),
        sa.Column("source_document_number", sa.Text(), nullable=True),
        sa.Column("bank_reference", sa.Text(), nullable=True),
        sa.Column("payment_method_id", sa.Uuid(), nullable=True),
        _flag("reconciled", False),
        sa.Column("reconciled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("annulled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("annul_reason", sa.Text(), nullable=True),
        _flag("active", True),
        sa.UniqueConstraint("tenant_id", "number", name="uq_bank_movements_tenant_number"),
    )
    op.create_index("ix_bank_movements_date", "bank_movements", ["date"])

    # Inventory
    _create_scoped_table(
        "stock_movements",
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("product_code", sa.Text(), nullable=True),
        sa.Column("product_name", sa.Text(), nullable=True),
        sa.Column("sku", sa.Text(), nullable=True),
        sa.Column("variant_id", sa.Uuid(), nullable=True),
        sa.Column("warehouse_id", sa.Uuid(), nullable=False),
        sa.Column("warehouse_name", sa.Text(), nullable=True),
        sa.Column("destination_warehouse_id", sa.Uuid(), nullable=True),
        sa.Column("movement_type", sa.Text(), nullable=False),
        sa.Column("origin", sa.Text(), nullable=False, server_default="manual_adjustment"),
        sa.Column("document_id", sa.Uuid(), nullable=True),
        sa.Column("document_number", sa.Text(), nullable=True),
        sa.Column("counterparty_type", sa.Text(), nullable=True),
        sa.Column("counterparty_id", sa.Uuid(), nullable=True),
        sa.Column("counterparty_name", sa.Text(), nullable=True),
        sa.Column("quantity", AMOUNT, nullable=False),
        sa.Column("stock_before", AMOUNT, nullable=False, server_default="0"),
        sa.Column("stock_after", AMOUNT, nullable=False, server_default="0"),
        sa.Column("unit_price", AMOUNT, nullable=False, server_default="0"),
        sa.Column("unit_cost", AMOUNT, nullable=False, server_default="0"),
        sa.Column("movement_value", AMOUNT, nullable=False, server_default="0"),
        sa.Column("lot", sa.Text(), nullable=True),
        sa.Column("serial_number", sa.Text(), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        _flag("annulled", False),
        sa.Column("annulled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("annul_reason", sa.Text(), nullable=True),
        sa.Column("reverses_id", sa.Uuid(), nullable=True),
    )
    op.create_index(
        "ix_stock_movements_product_warehouse", "stock_movements", ["tenant_id", "product_id", "warehouse_id"]
    )

    # Operations
    _create_scoped_table(
        "work_orders",
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("series", sa.Text(), nullable=False, server_default="PT"),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("work_order_type", sa.Text(), nullable=False, server_default="service"),
        sa.Column("status", sa.Text(), nullable=False, server_default="draft"),
        sa.Column("priority", sa.Text(), nullable=False, server_default="medium"),
        sa.Column("customer_id", sa.Uuid(), nullable=True),
        sa.Column("customer_name", sa.Text(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("start_time", sa.Text(), nullable=True),
        sa.Column("end_time", sa.Text(), nullable=True),
        sa.Column("staff_lines", JSON, nullable=False),
        sa.Column("material_lines", JSON, nullable=False),
        sa.Column("machinery_lines", JSON, nullable=False),
        sa.Column("transport_lines", JSON, nullable=False),
        sa.Column("expense_lines", JSON, nullable=False),
        sa.Column("discount_percent", AMOUNT, nullable=False, server_default="0"),
        sa.Column("discount_amount", AMOUNT, nullable=False, server_default="0"),
        sa.Column("totals", JSON, nullable=False),
        sa.Column("total_sale", AMOUNT, nullable=False, server_default="0"),
        sa.Column("total_cost", AMOUNT, nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        _flag("active", True),
        sa.UniqueConstraint("tenant_id", "code", name="uq_work_orders_tenant_code"),
    )
    op.create_index("ix_work_orders_date", "work_orders", ["date"])
    op.create_index("ix_work_orders_start_date", "work_orders", ["start_date"])

    # Billing
    _create_scoped_table(
        "invoices",
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("series", sa.Text(), nullable=False, server_default="FAC"),
        sa.Column("invoice_type", sa.Text(), nullable=False, server_default="standard"),
        sa.Column("status", sa.Text(), nullable=False, server_default="draft"),
        sa.Column("customer_id", sa.Uuid(), nullable=True),
        sa.Column("customer_name", sa.Text(), nullable=False),
        sa.Column("customer_tax_id", sa.Text(), nullable=True),
        sa.Column("customer_address", sa.Text(), nullable=True),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("issued_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("lines", JSON, nullable=False),
        sa.Column("discount_percent", AMOUNT, nullable=False, server_default="0"),
        sa.Column("withholding_percent", AMOUNT, nullable=False, server_default="0"),
        sa.Column("tax_breakdown", JSON, nullable=False),
        sa.Column("totals", JSON, nullable=False),
        sa.Column("total", AMOUNT, nullable=False, server_default="0"),
        sa.Column("payments", JSON, nullable=False),
        sa.Column("amount_paid", AMOUNT, nullable=False, server_default="0"),
        sa.Column("amount_pending", AMOUNT, nullable=False, server_default="0"),
        sa.Column("original_invoice_id", sa.Uuid(), nullable=True),
        sa.Column("corrective_reason", sa.Text(), nullable=True),
        sa.Column("annul_reason", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("history", JSON, nullable=False),
        _flag("immutable", False),
        _flag("active", True),
        sa.UniqueConstraint("tenant_id", "code", name="uq_invoices_tenant_code"),
    )
    op.create_index("ix_invoices_issue_date", "invoices", ["issue_date"])

    if op.get_bind().dialect.name == "postgresql":
        for tbl in TENANT_SCOPED_TABLES:
            op.execute(f"ALTER TABLE {tbl} ENABLE ROW LEVEL SECURITY;")
            op.execute(
                f"""
                CREATE POLICY {tbl}_tenant_isolation ON {tbl}
                USING (tenant_id = current_setting('app.tenant_id', true)::uuid)
                WITH CHECK (tenant_id = current_setting('app.tenant_id', true)::uuid);
                """
            )


def downgrade() -> None:
    if op.get_bind().dialect.name == "postgresql":
        for tbl in TENANT_SCOPED_TABLES:
            op.execute(f"DROP POLICY IF EXISTS {tbl}_tenant_isolation ON {tbl};")
            op.execute(f"ALTER TABLE {tbl} DISABLE ROW LEVEL SECURITY;")

    # Reverse dependency order
    for tbl in reversed(TENANT_SCOPED_TABLES):
        op.drop_table(tbl)
    op.drop_table("tenants")
