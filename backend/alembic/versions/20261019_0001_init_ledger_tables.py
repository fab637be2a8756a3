"""init ledger tables

Revision ID: 20261019_0001
Revises: None
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_0001_init_ledger_tables"
down_revision = None
branch_labels = None
depends_on = None


def _enum(*values: str, name: str) -> sa.Enum:
    # Stored as plain strings (enum member names) on every backend.
    return sa.Enum(*values, name=name, native_enum=False, create_constraint=False)


intake_case = _enum("CASE1", "CASE2", name="intakecase")
commission_policy = _enum("FARMER", "MILL", "SPLIT", "NONE", name="commissionpolicy")
payer = _enum("FARMER", "MILL", "COMPANY", name="payer")
expense_line = _enum(
    "LABOUR",
    "COMPANION",
    "WEIGHT_FEE",
    "VEHICLE_RENT",
    "FREIGHT_ADVANCE",
    "GUMASTHA_RUSUL",
    "CASH_DRIVER",
    "HAMALI",
    "OTHER",
    name="expenseline",
)
payment_status = _enum("PENDING", "PARTIAL", "FULL", name="paymentstatus")
change_action = _enum("INSERT", "UPDATE", "DELETE", name="changeaction")


def _money() -> sa.Numeric:
    return sa.Numeric(14, 2)


def _weight() -> sa.Numeric:
    return sa.Numeric(12, 2)


def _record_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    ]


def upgrade() -> None:
    op.create_table(
        "ledger_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("organization_name", sa.String(length=255), nullable=False),
        sa.Column("load_number_prefix", sa.String(length=16), nullable=False),
        sa.Column("bag_weight_kg", sa.Numeric(10, 3), nullable=False),
        sa.Column("case1_deduct_per_bag_kg", sa.Numeric(10, 3), nullable=False),
        sa.Column("case2_deduct_per_ton_kg", sa.Numeric(10, 3), nullable=False),
        sa.Column("commission_per_bag", _money(), nullable=False),
        sa.Column("companion_per_bag_default", _money(), nullable=False),
        sa.Column("credit_cut_percent", sa.Numeric(6, 3), nullable=False),
        sa.Column("credit_cut_days", sa.Integer(), nullable=False),
        sa.Column("default_commission_policy", commission_policy, nullable=False),
        sa.Column("default_commission_split_percent", sa.Numeric(6, 2), nullable=False),
        sa.Column("payout_rounding", sa.Integer(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "farmers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("village", sa.String(length=128)),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("bank_account", sa.String(length=64)),
        sa.Column("bank_ifsc", sa.String(length=32)),
        sa.Column("default_rate", _money()),
        sa.Column("tags", sa.String(length=255)),
        sa.Column("notes", sa.Text()),
        *_record_columns(),
    )
    op.create_index("ix_farmers_name", "farmers", ["name"])
    op.create_index("ix_farmers_village", "farmers", ["village"])
    op.create_index("ix_farmers_phone", "farmers", ["phone"])
    op.create_index("ix_farmers_active", "farmers", ["active"])

    op.create_table(
        "mills",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("village", sa.String(length=128)),
        sa.Column("contact_person", sa.String(length=255)),
        sa.Column("phone", sa.String(length=32)),
        sa.Column("address", sa.String(length=255)),
        sa.Column("gstin", sa.String(length=32)),
        sa.Column("default_rate", _money()),
        sa.Column("payment_terms", sa.String(length=128)),
        sa.Column("commission_policy", commission_policy),
        sa.Column("commission_split_percent", sa.Numeric(6, 2)),
        sa.Column("tags", sa.String(length=255)),
        sa.Column("notes", sa.Text()),
        *_record_columns(),
    )
    op.create_index("ix_mills_name", "mills", ["name"])
    op.create_index("ix_mills_village", "mills", ["village"])
    op.create_index("ix_mills_active", "mills", ["active"])

    op.create_table(
        "vehicles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("number", sa.String(length=32), nullable=False, unique=True),
        sa.Column("vehicle_type", sa.String(length=64)),
        sa.Column("owner_name", sa.String(length=255)),
        sa.Column("driver_name", sa.String(length=255)),
        sa.Column("driver_phone", sa.String(length=32)),
        sa.Column("notes", sa.Text()),
        *_record_columns(),
    )
    op.create_index("ix_vehicles_active", "vehicles", ["active"])

    op.create_table(
        "loads",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("load_number", sa.String(length=32), nullable=False),
        sa.Column("load_date", sa.Date(), nullable=False),
        sa.Column("farmer_id", sa.Integer()),
        sa.Column("mill_id", sa.Integer()),
        sa.Column("vehicle_id", sa.Integer()),
        sa.Column("case", intake_case, nullable=False),
        sa.Column("gross_kg", _weight(), nullable=False),
        sa.Column("tare_kg", _weight()),
        sa.Column("declared_bags", sa.Integer(), nullable=False),
        sa.Column("buy_rate_per_bag", _money(), nullable=False),
        sa.Column("sell_rate_per_bag", _money(), nullable=False),
        sa.Column("commission_policy", commission_policy, nullable=False),
        sa.Column("split_percent", sa.Numeric(6, 2), nullable=False),
        sa.Column("use_declared_for_commission", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("deduction_kg", _weight(), nullable=False),
        sa.Column("net_kg", _weight(), nullable=False),
        sa.Column("net_bags", sa.Integer(), nullable=False),
        sa.Column("commission_bags", sa.Integer(), nullable=False),
        sa.Column("commission_amount", _money(), nullable=False),
        sa.Column("farmer_commission_share", _money(), nullable=False),
        sa.Column("mill_commission_share", _money(), nullable=False),
        sa.Column("farmer_expenses_total", _money(), nullable=False),
        sa.Column("mill_expenses_total", _money(), nullable=False),
        sa.Column("company_expenses_total", _money(), nullable=False),
        sa.Column("farmer_gross_amount", _money(), nullable=False),
        sa.Column("farmer_total_deductions", _money(), nullable=False),
        sa.Column("farmer_payable_exact", _money(), nullable=False),
        sa.Column("farmer_payable", _money(), nullable=False),
        sa.Column("mill_gross_amount", _money(), nullable=False),
        sa.Column("mill_total_deductions", _money(), nullable=False),
        sa.Column("mill_receivable_exact", _money(), nullable=False),
        sa.Column("mill_receivable", _money(), nullable=False),
        sa.Column("settled_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("mill_payment_status", payment_status, nullable=False, server_default="PENDING"),
        sa.Column("mill_paid_amount", _money(), nullable=False, server_default="0"),
        sa.Column("mill_paid_date", sa.Date()),
        sa.Column("farmer_payment_status", payment_status, nullable=False, server_default="PENDING"),
        sa.Column("farmer_paid_amount", _money(), nullable=False, server_default="0"),
        sa.Column("farmer_paid_date", sa.Date()),
        sa.Column("credit_cut_amount", _money(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text()),
        *_record_columns(),
    )
    op.create_index("ix_loads_load_number", "loads", ["load_number"], unique=True)
    op.create_index("ix_loads_load_date", "loads", ["load_date"])
    op.create_index("ix_loads_farmer_id", "loads", ["farmer_id"])
    op.create_index("ix_loads_mill_id", "loads", ["mill_id"])
    op.create_index("ix_loads_vehicle_id", "loads", ["vehicle_id"])
    op.create_index("ix_loads_mill_payment_status", "loads", ["mill_payment_status"])
    op.create_index("ix_loads_farmer_payment_status", "loads", ["farmer_payment_status"])
    op.create_index("ix_loads_active", "loads", ["active"])

    op.create_table(
        "load_expenses",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("load_id", sa.Integer(), sa.ForeignKey("loads.id", ondelete="CASCADE"), nullable=False),
        sa.Column("line", expense_line, nullable=False),
        sa.Column("amount", _money(), nullable=False),
        sa.Column("payer", payer, nullable=False),
        sa.Column("entered", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("load_id", "line", name="uq_load_expenses_load_line"),
    )
    op.create_index("ix_load_expenses_load_id", "load_expenses", ["load_id"])

    op.create_table(
        "mill_payments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("mill_id", sa.Integer(), nullable=False),
        sa.Column("load_id", sa.Integer()),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("amount", _money(), nullable=False),
        sa.Column("payment_method", sa.String(length=32), nullable=False, server_default="CASH"),
        sa.Column("reference_number", sa.String(length=64)),
        sa.Column("allocation_method", sa.String(length=16), nullable=False, server_default="FIFO"),
        sa.Column("notes", sa.Text()),
        *_record_columns(),
    )
    op.create_index("ix_mill_payments_mill_id", "mill_payments", ["mill_id"])
    op.create_index("ix_mill_payments_load_id", "mill_payments", ["load_id"])
    op.create_index("ix_mill_payments_payment_date", "mill_payments", ["payment_date"])
    op.create_index("ix_mill_payments_active", "mill_payments", ["active"])

    op.create_table(
        "farmer_payments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("farmer_id", sa.Integer()),
        sa.Column("load_id", sa.Integer(), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("gross_amount", _money(), nullable=False),
        sa.Column("credit_cut_amount", _money(), nullable=False, server_default="0"),
        sa.Column("net_amount", _money(), nullable=False),
        sa.Column("payment_method", sa.String(length=32), nullable=False, server_default="CASH"),
        sa.Column("reference_number", sa.String(length=64)),
        sa.Column("invoice_number", sa.String(length=32), nullable=False, unique=True),
        sa.Column("notes", sa.Text()),
        *_record_columns(),
    )
    op.create_index("ix_farmer_payments_farmer_id", "farmer_payments", ["farmer_id"])
    op.create_index("ix_farmer_payments_load_id", "farmer_payments", ["load_id"])
    op.create_index("ix_farmer_payments_payment_date", "farmer_payments", ["payment_date"])
    op.create_index("ix_farmer_payments_active", "farmer_payments", ["active"])

    op.create_table(
        "change_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("entity_type", sa.String(length=32), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("action", change_action, nullable=False),
        sa.Column("actor", sa.String(length=64), nullable=False, server_default="system"),
        sa.Column("before", sa.JSON()),
        sa.Column("after", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_change_log_entity", "change_log", ["entity_type", "entity_id", "created_at"])

    op.create_table(
        "document_daily_sequences",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("doc_type", sa.String(length=16), nullable=False),
        sa.Column("day", sa.String(length=8), nullable=False),
        sa.Column("last_seq", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("doc_type", "day", name="uq_doc_seq_doc_type_day"),
    )


def downgrade() -> None:
    op.drop_table("document_daily_sequences")
    op.drop_index("ix_change_log_entity", table_name="change_log")
    op.drop_table("change_log")
    op.drop_table("farmer_payments")
    op.drop_table("mill_payments")
    op.drop_table("load_expenses")
    op.drop_table("loads")
    op.drop_table("vehicles")
    op.drop_table("mills")
    op.drop_table("farmers")
    op.drop_table("ledger_settings")
