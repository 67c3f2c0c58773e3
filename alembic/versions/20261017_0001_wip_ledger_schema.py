"""wip ledger schema

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


transaction_type = sa.Enum(
    "time",
    "disbursement",
    "adjustment_time",
    "adjustment_disbursement",
    "fee_time",
    "fee_disbursement",
    "provision",
    name="transaction_type",
)


def _money(name: str, precision: int = 14) -> sa.Column:
    return sa.Column(name, sa.Numeric(precision, 2), nullable=False, server_default=sa.text("0"))


def upgrade() -> None:
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("client_code", sa.String(length=32), nullable=False, unique=True),
        sa.Column("client_name", sa.String(length=255), nullable=False),
        sa.Column("group_code", sa.String(length=32), nullable=True),
        sa.Column("group_desc", sa.String(length=255), nullable=True),
    )
    op.create_index("ix_clients_group_code", "clients", ["group_code"])

    op.create_table(
        "employees",
        sa.Column("emp_code", sa.String(length=32), primary_key=True, nullable=False),
        sa.Column("emp_name", sa.String(length=255), nullable=False),
        sa.Column("emp_cat_code", sa.String(length=32), nullable=True),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_employees_category", "employees", ["emp_cat_code"])

    op.create_table(
        "service_line_masters",
        sa.Column("code", sa.String(length=32), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )

    op.create_table(
        "service_line_externals",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("serv_line_code", sa.String(length=32), nullable=False),
        sa.Column("serv_line_desc", sa.String(length=255), nullable=True),
        sa.Column("master_code", sa.String(length=32), sa.ForeignKey("service_line_masters.code"), nullable=True),
        sa.Column("sub_group_code", sa.String(length=32), nullable=True),
        sa.Column("sub_group_desc", sa.String(length=255), nullable=True),
        sa.UniqueConstraint("serv_line_code", name="uq_service_line_externals_code"),
    )
    op.create_index("ix_service_line_externals_master", "service_line_externals", ["master_code"])
    op.create_index("ix_service_line_externals_sub_group", "service_line_externals", ["sub_group_code"])

    op.create_table(
        "wip_transactions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=False),
        sa.Column("task_code", sa.String(length=64), nullable=True),
        sa.Column("serv_line_code", sa.String(length=32), nullable=False),
        sa.Column("emp_code", sa.String(length=32), nullable=True),
        sa.Column("t_type", transaction_type, nullable=False),
        sa.Column("tran_date", sa.DateTime(timezone=False), nullable=False),
        _money("amount"),
        sa.Column("cost", sa.Numeric(14, 2), nullable=True),
        sa.Column("hours", sa.Numeric(10, 2), nullable=True),
    )
    op.create_index("ix_wip_transactions_client_date", "wip_transactions", ["client_id", "tran_date"])
    op.create_index("ix_wip_transactions_task", "wip_transactions", ["task_id"])

    op.create_table(
        "wip_task_balances",
        sa.Column("task_id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("serv_line_code", sa.String(length=32), nullable=False),
        _money("ltd_time"),
        _money("ltd_disb"),
        _money("ltd_adj_time"),
        _money("ltd_adj_disb"),
        _money("ltd_fee_time"),
        _money("ltd_fee_disb"),
        _money("ltd_cost"),
        _money("ltd_hours", precision=12),
        _money("bal_wip"),
        _money("bal_time"),
        _money("bal_disb"),
        _money("wip_provision"),
        sa.Column("updated_at", sa.DateTime(timezone=False), nullable=False),
    )
    op.create_index("ix_wip_task_balances_client", "wip_task_balances", ["client_id"])


def downgrade() -> None:
    op.drop_index("ix_wip_task_balances_client", table_name="wip_task_balances")
    op.drop_table("wip_task_balances")
    op.drop_index("ix_wip_transactions_task", table_name="wip_transactions")
    op.drop_index("ix_wip_transactions_client_date", table_name="wip_transactions")
    op.drop_table("wip_transactions")
    op.drop_index("ix_service_line_externals_sub_group", table_name="service_line_externals")
    op.drop_index("ix_service_line_externals_master", table_name="service_line_externals")
    op.drop_table("service_line_externals")
    op.drop_table("service_line_masters")
    op.drop_index("ix_employees_category", table_name="employees")
    op.drop_table("employees")
    op.drop_index("ix_clients_group_code", table_name="clients")
    op.drop_table("clients")
    transaction_type.drop(op.get_bind(), checkfirst=True)
