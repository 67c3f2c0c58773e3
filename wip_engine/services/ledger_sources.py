"""Interchangeable ledger sources and the normalization into ``LedgerEntry``.

Every strategy returns the same shape. Split adjustment/fee sources also fill
the merged totals, merged-only sources leave the split fields at zero, and
balance fields are always populated here so the aggregator never branches on
where a row came from.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wip_engine.core.config import Settings
from wip_engine.core.errors import LedgerRowLimitExceeded, UpstreamUnavailable
from wip_engine.models.entities import Client, TransactionType, WipTaskBalance, WipTransaction
from wip_engine.repositories.ledger_repository import LedgerRepository
from wip_engine.services.period_resolver import PeriodWindow

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")


def _money(value: object) -> Decimal:
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(Q2)


@dataclass(slots=True)
class LedgerFigures:
    ltd_time: Decimal = ZERO
    ltd_disb: Decimal = ZERO
    ltd_adj_time: Decimal = ZERO
    ltd_adj_disb: Decimal = ZERO
    ltd_fee_time: Decimal = ZERO
    ltd_fee_disb: Decimal = ZERO
    ltd_adjustments: Decimal = ZERO
    ltd_fees_billed: Decimal = ZERO
    ltd_cost: Decimal = ZERO
    ltd_hours: Decimal = ZERO
    bal_wip: Decimal = ZERO
    bal_time: Decimal = ZERO
    bal_disb: Decimal = ZERO
    wip_provision: Decimal = ZERO

    @classmethod
    def from_split(
        cls,
        *,
        ltd_time: Decimal = ZERO,
        ltd_disb: Decimal = ZERO,
        ltd_adj_time: Decimal = ZERO,
        ltd_adj_disb: Decimal = ZERO,
        ltd_fee_time: Decimal = ZERO,
        ltd_fee_disb: Decimal = ZERO,
        ltd_cost: Decimal = ZERO,
        ltd_hours: Decimal = ZERO,
        wip_provision: Decimal = ZERO,
    ) -> LedgerFigures:
        bal_time = ltd_time + ltd_adj_time - ltd_fee_time
        bal_disb = ltd_disb + ltd_adj_disb - ltd_fee_disb
        return cls(
            ltd_time=ltd_time,
            ltd_disb=ltd_disb,
            ltd_adj_time=ltd_adj_time,
            ltd_adj_disb=ltd_adj_disb,
            ltd_fee_time=ltd_fee_time,
            ltd_fee_disb=ltd_fee_disb,
            ltd_adjustments=ltd_adj_time + ltd_adj_disb,
            ltd_fees_billed=ltd_fee_time + ltd_fee_disb,
            ltd_cost=ltd_cost,
            ltd_hours=ltd_hours,
            bal_wip=bal_time + bal_disb,
            bal_time=bal_time,
            bal_disb=bal_disb,
            wip_provision=wip_provision,
        )

    @classmethod
    def from_merged(
        cls,
        *,
        ltd_time: Decimal,
        ltd_disb: Decimal,
        ltd_adjustments: Decimal,
        ltd_fees_billed: Decimal,
        ltd_cost: Decimal,
        ltd_hours: Decimal,
        bal_wip: Decimal,
        wip_provision: Decimal,
    ) -> LedgerFigures:
        return cls(
            ltd_time=ltd_time,
            ltd_disb=ltd_disb,
            ltd_adjustments=ltd_adjustments,
            ltd_fees_billed=ltd_fees_billed,
            ltd_cost=ltd_cost,
            ltd_hours=ltd_hours,
            bal_wip=bal_wip,
            bal_time=ltd_time + ltd_adjustments - ltd_fees_billed,
            bal_disb=ltd_disb,
            wip_provision=wip_provision,
        )


@dataclass(slots=True)
class LedgerEntry:
    client_id: int
    task_id: int
    serv_line_code: str
    figures: LedgerFigures = field(default_factory=LedgerFigures)
    emp_code: str | None = None
    master_code: str | None = None
    master_name: str | None = None
    observed_at: datetime | None = None


class LedgerSourceStrategy(Protocol):
    name: str
    supports_period_window: bool

    def fetch(
        self,
        clients: Sequence[Client],
        window: PeriodWindow,
        exclusions: Collection[str],
        serv_line_codes: Collection[str] | None = None,
    ) -> list[LedgerEntry]: ...


def _transaction_figures(row: WipTransaction) -> LedgerFigures:
    amount = _money(row.amount)
    if row.t_type == TransactionType.PROVISION:
        return LedgerFigures.from_split(wip_provision=amount)

    cost = _money(row.cost)
    if row.t_type == TransactionType.TIME:
        return LedgerFigures.from_split(ltd_time=amount, ltd_cost=cost, ltd_hours=_money(row.hours))
    if row.t_type == TransactionType.DISBURSEMENT:
        return LedgerFigures.from_split(ltd_disb=amount, ltd_cost=cost)
    if row.t_type == TransactionType.ADJUSTMENT_TIME:
        return LedgerFigures.from_split(ltd_adj_time=amount, ltd_cost=cost)
    if row.t_type == TransactionType.ADJUSTMENT_DISBURSEMENT:
        return LedgerFigures.from_split(ltd_adj_disb=amount, ltd_cost=cost)
    # Fees are recorded negative; billed totals are reported positive.
    if row.t_type == TransactionType.FEE_TIME:
        return LedgerFigures.from_split(ltd_fee_time=-amount, ltd_cost=cost)
    if row.t_type == TransactionType.FEE_DISBURSEMENT:
        return LedgerFigures.from_split(ltd_fee_disb=-amount, ltd_cost=cost)
    raise ValueError(f"Unsupported transaction type: {row.t_type!r}")


class TransactionLedgerSource:
    """Scans individual transactions; one entry per ledger row."""

    name = "transactions"
    supports_period_window = True

    def __init__(self, db: Session, *, row_limit: int) -> None:
        self.repo = LedgerRepository(db)
        self.row_limit = row_limit

    def fetch(
        self,
        clients: Sequence[Client],
        window: PeriodWindow,
        exclusions: Collection[str],
        serv_line_codes: Collection[str] | None = None,
    ) -> list[LedgerEntry]:
        date_from, date_to = window.query_bounds()
        try:
            rows = self.repo.list_transactions(
                [client.id for client in clients],
                date_from=date_from,
                date_to=date_to,
                serv_line_codes=serv_line_codes,
                limit=self.row_limit + 1,
            )
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(self.name, exc.__class__.__name__) from exc

        if len(rows) > self.row_limit:
            raise LedgerRowLimitExceeded(self.name, self.row_limit)

        return [
            LedgerEntry(
                client_id=row.client_id,
                task_id=row.task_id,
                serv_line_code=row.serv_line_code,
                figures=_transaction_figures(row),
                emp_code=row.emp_code,
                observed_at=row.tran_date,
            )
            for row in rows
        ]


def _snapshot_figures(row: WipTaskBalance) -> LedgerFigures:
    figures = LedgerFigures.from_split(
        ltd_time=_money(row.ltd_time),
        ltd_disb=_money(row.ltd_disb),
        ltd_adj_time=_money(row.ltd_adj_time),
        ltd_adj_disb=_money(row.ltd_adj_disb),
        ltd_fee_time=_money(row.ltd_fee_time),
        ltd_fee_disb=_money(row.ltd_fee_disb),
        ltd_cost=_money(row.ltd_cost),
        ltd_hours=_money(row.ltd_hours),
        wip_provision=_money(row.wip_provision),
    )
    # Stored balances win over the recomputed ones.
    figures.bal_wip = _money(row.bal_wip)
    figures.bal_time = _money(row.bal_time)
    figures.bal_disb = _money(row.bal_disb)
    return figures


class BalanceSnapshotLedgerSource:
    """Reads one life-to-date row per task. All-time windows only.

    Snapshot rows carry no employee, so the partner cost exclusion cannot be
    applied here; ``ltd_cost`` is taken as already excluded upstream.
    """

    name = "balance_snapshot"
    supports_period_window = False

    def __init__(self, db: Session, *, row_limit: int) -> None:
        self.repo = LedgerRepository(db)
        self.row_limit = row_limit

    def fetch(
        self,
        clients: Sequence[Client],
        window: PeriodWindow,
        exclusions: Collection[str],
        serv_line_codes: Collection[str] | None = None,
    ) -> list[LedgerEntry]:
        if exclusions:
            logger.debug(
                "Cost exclusion for %d employee(s) not applied to %s; snapshot cost is used as stored",
                len(exclusions),
                self.name,
            )
        try:
            rows = self.repo.list_task_balances(
                [client.id for client in clients],
                serv_line_codes=serv_line_codes,
                limit=self.row_limit + 1,
            )
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(self.name, exc.__class__.__name__) from exc

        if len(rows) > self.row_limit:
            raise LedgerRowLimitExceeded(self.name, self.row_limit)

        return [
            LedgerEntry(
                client_id=row.client_id,
                task_id=row.task_id,
                serv_line_code=row.serv_line_code,
                figures=_snapshot_figures(row),
                observed_at=row.updated_at,
            )
            for row in rows
        ]


class StoredAggregationLedgerSource:
    """Set-based per-task aggregation executed in the database."""

    name = "stored_aggregation"
    supports_period_window = True

    def __init__(self, db: Session, *, row_limit: int) -> None:
        self.repo = LedgerRepository(db)
        self.row_limit = row_limit

    def fetch(
        self,
        clients: Sequence[Client],
        window: PeriodWindow,
        exclusions: Collection[str],
        serv_line_codes: Collection[str] | None = None,
    ) -> list[LedgerEntry]:
        date_from, date_to = window.query_bounds()
        try:
            rows = self.repo.aggregate_profitability(
                [client.client_code for client in clients],
                date_from=date_from,
                date_to=date_to,
                excluded_emp_codes=sorted(exclusions),
                serv_line_codes=serv_line_codes,
                limit=self.row_limit + 1,
            )
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(self.name, exc.__class__.__name__) from exc

        if len(rows) > self.row_limit:
            raise LedgerRowLimitExceeded(self.name, self.row_limit)

        return [
            LedgerEntry(
                client_id=row["GSClientID"],
                task_id=row["GSTaskID"],
                serv_line_code=row["ServLineCode"],
                master_code=row["masterCode"],
                master_name=row["masterServiceLineName"],
                figures=LedgerFigures.from_merged(
                    ltd_time=_money(row["LTDTimeCharged"]),
                    ltd_disb=_money(row["LTDDisbCharged"]),
                    ltd_adjustments=_money(row["LTDAdjustments"]),
                    ltd_fees_billed=_money(row["LTDFeesBilled"]),
                    ltd_cost=_money(row["LTDCost"]),
                    ltd_hours=_money(row["LTDHours"]),
                    bal_wip=_money(row["BalWip"]),
                    wip_provision=_money(row["LTDWipProvision"]),
                ),
            )
            for row in rows
        ]


def build_ledger_source(name: str, db: Session, settings: Settings) -> LedgerSourceStrategy:
    if name == TransactionLedgerSource.name:
        return TransactionLedgerSource(db, row_limit=settings.ledger_row_limit)
    if name == BalanceSnapshotLedgerSource.name:
        return BalanceSnapshotLedgerSource(db, row_limit=settings.ledger_row_limit)
    if name == StoredAggregationLedgerSource.name:
        return StoredAggregationLedgerSource(db, row_limit=settings.ledger_row_limit)
    raise ValueError(f"Unknown ledger source strategy: {name}")
