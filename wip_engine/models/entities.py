"""ORM entities for the WIP ledger and its reference data."""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from wip_engine.db.base import Base


class TransactionType(str, enum.Enum):
    TIME = "time"
    DISBURSEMENT = "disbursement"
    ADJUSTMENT_TIME = "adjustment_time"
    ADJUSTMENT_DISBURSEMENT = "adjustment_disbursement"
    FEE_TIME = "fee_time"
    FEE_DISBURSEMENT = "fee_disbursement"
    PROVISION = "provision"


ADJUSTMENT_TYPES = (TransactionType.ADJUSTMENT_TIME, TransactionType.ADJUSTMENT_DISBURSEMENT)
FEE_TYPES = (TransactionType.FEE_TIME, TransactionType.FEE_DISBURSEMENT)


def utc_now() -> datetime:
    """Naive UTC timestamp, matching the timezone-less columns."""

    return datetime.now(UTC).replace(tzinfo=None)


class Client(Base):
    __tablename__ = "clients"
    __table_args__ = (Index("ix_clients_group_code", "group_code"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    group_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    group_desc: Mapped[str | None] = mapped_column(String(255), nullable=True)


class Employee(Base):
    __tablename__ = "employees"
    __table_args__ = (Index("ix_employees_category", "emp_cat_code"),)

    emp_code: Mapped[str] = mapped_column(String(32), primary_key=True)
    emp_name: Mapped[str] = mapped_column(String(255), nullable=False)
    emp_cat_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ServiceLineMaster(Base):
    __tablename__ = "service_line_masters"

    code: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ServiceLineExternal(Base):
    __tablename__ = "service_line_externals"
    __table_args__ = (
        UniqueConstraint("serv_line_code", name="uq_service_line_externals_code"),
        Index("ix_service_line_externals_master", "master_code"),
        Index("ix_service_line_externals_sub_group", "sub_group_code"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    serv_line_code: Mapped[str] = mapped_column(String(32), nullable=False)
    serv_line_desc: Mapped[str | None] = mapped_column(String(255), nullable=True)
    master_code: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("service_line_masters.code"), nullable=True
    )
    sub_group_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    sub_group_desc: Mapped[str | None] = mapped_column(String(255), nullable=True)


class WipTransaction(Base):
    __tablename__ = "wip_transactions"
    __table_args__ = (
        Index("ix_wip_transactions_client_date", "client_id", "tran_date"),
        Index("ix_wip_transactions_task", "task_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"), nullable=False)
    task_id: Mapped[int] = mapped_column(Integer, nullable=False)
    task_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    serv_line_code: Mapped[str] = mapped_column(String(32), nullable=False)
    emp_code: Mapped[str | None] = mapped_column(String(32), nullable=True)
    t_type: Mapped[TransactionType] = mapped_column(
        SQLEnum(
            TransactionType,
            name="transaction_type",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
    )
    tran_date: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    cost: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    hours: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)


class WipTaskBalance(Base):
    """Life-to-date totals per task, refreshed upstream."""

    __tablename__ = "wip_task_balances"
    __table_args__ = (Index("ix_wip_task_balances_client", "client_id"),)

    task_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"), nullable=False)
    serv_line_code: Mapped[str] = mapped_column(String(32), nullable=False)
    ltd_time: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    ltd_disb: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    ltd_adj_time: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    ltd_adj_disb: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    ltd_fee_time: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    ltd_fee_disb: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    ltd_cost: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    ltd_hours: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    bal_wip: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    bal_time: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    bal_disb: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    wip_provision: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=utc_now)
