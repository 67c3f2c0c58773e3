"""Read-only queries over the WIP ledger."""

from __future__ import annotations

from collections.abc import Collection, Sequence
from datetime import datetime
from decimal import Decimal

from sqlalchemy import and_, case, func, or_, select, true
from sqlalchemy.engine import RowMapping
from sqlalchemy.orm import Session

from wip_engine.models.entities import (
    ADJUSTMENT_TYPES,
    FEE_TYPES,
    Client,
    ServiceLineExternal,
    ServiceLineMaster,
    TransactionType,
    WipTaskBalance,
    WipTransaction,
)

ZERO = Decimal("0.00")
BALANCE_THRESHOLD = Decimal("0.01")


class LedgerRepository:
    """Persistence operations feeding the ledger source strategies."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Clients ----------
    def get_client(self, client_id: int) -> Client | None:
        return self.db.scalar(select(Client).where(Client.id == client_id))

    def list_clients_for_group(self, group_code: str) -> list[Client]:
        return self.db.scalars(
            select(Client).where(Client.group_code == group_code).order_by(Client.client_code.asc())
        ).all()

    # ---------- Raw transactions ----------
    def list_transactions(
        self,
        client_ids: Collection[int],
        *,
        date_from: datetime | None,
        date_to: datetime | None,
        serv_line_codes: Collection[str] | None = None,
        limit: int | None = None,
    ) -> list[WipTransaction]:
        """Transactions with ``date_from <= tran_date < date_to``; open bounds when None."""

        conditions = [WipTransaction.client_id.in_(list(client_ids))]
        if date_from is not None:
            conditions.append(WipTransaction.tran_date >= date_from)
        if date_to is not None:
            conditions.append(WipTransaction.tran_date < date_to)
        if serv_line_codes is not None:
            conditions.append(WipTransaction.serv_line_code.in_(list(serv_line_codes)))

        stmt = select(WipTransaction).where(and_(*conditions)).order_by(WipTransaction.id.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return self.db.scalars(stmt).all()

    # ---------- Balance snapshots ----------
    def list_task_balances(
        self,
        client_ids: Collection[int],
        *,
        serv_line_codes: Collection[str] | None = None,
        limit: int | None = None,
    ) -> list[WipTaskBalance]:
        conditions = [WipTaskBalance.client_id.in_(list(client_ids))]
        if serv_line_codes is not None:
            conditions.append(WipTaskBalance.serv_line_code.in_(list(serv_line_codes)))
        stmt = select(WipTaskBalance).where(and_(*conditions)).order_by(WipTaskBalance.task_id.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return self.db.scalars(stmt).all()

    # ---------- Set-based aggregation ----------
    def aggregate_profitability(
        self,
        client_codes: Collection[str],
        *,
        date_from: datetime | None,
        date_to: datetime | None,
        excluded_emp_codes: Collection[str] = (),
        serv_line_codes: Collection[str] | None = None,
        limit: int | None = None,
    ) -> Sequence[RowMapping]:
        """Per-task profitability figures grouped in the database.

        Period figures (``LTD*``) cover ``[date_from, date_to)``; ``BalWip`` is
        cumulative through ``date_to``. Cost of excluded employees and of
        provision rows is left out. Tasks with no period activity and no
        outstanding balance are dropped.
        """

        tx = WipTransaction
        in_window = tx.tran_date >= date_from if date_from is not None else true()
        cost_counted = (
            or_(tx.emp_code.is_(None), tx.emp_code.not_in(list(excluded_emp_codes)))
            if excluded_emp_codes
            else true()
        )

        def period_sum(types: Sequence[TransactionType], value):
            return func.coalesce(
                func.sum(case((and_(tx.t_type.in_(list(types)), in_window), value), else_=ZERO)),
                ZERO,
            )

        def balance_sum(types: Sequence[TransactionType], value):
            return func.coalesce(func.sum(case((tx.t_type.in_(list(types)), value), else_=ZERO)), ZERO)

        amount = func.coalesce(tx.amount, ZERO)
        ltd_time = period_sum([TransactionType.TIME], amount)
        ltd_disb = period_sum([TransactionType.DISBURSEMENT], amount)
        ltd_fees = period_sum(FEE_TYPES, ZERO - amount)
        ltd_adj = period_sum(ADJUSTMENT_TYPES, amount)
        ltd_provision = period_sum([TransactionType.PROVISION], amount)
        ltd_hours = period_sum([TransactionType.TIME], func.coalesce(tx.hours, ZERO))
        ltd_cost = func.coalesce(
            func.sum(
                case(
                    (
                        and_(tx.t_type != TransactionType.PROVISION, cost_counted, in_window),
                        func.coalesce(tx.cost, ZERO),
                    ),
                    else_=ZERO,
                )
            ),
            ZERO,
        )
        # Fee rows are negative, so summing raw amounts gives T + D + ADJ - F.
        bal_wip = balance_sum(
            [TransactionType.TIME, TransactionType.DISBURSEMENT, *ADJUSTMENT_TYPES, *FEE_TYPES],
            amount,
        )
        period_rows = func.sum(case((in_window, 1), else_=0))

        conditions = [Client.client_code.in_(list(client_codes))]
        if date_to is not None:
            conditions.append(tx.tran_date < date_to)
        if serv_line_codes is not None:
            conditions.append(tx.serv_line_code.in_(list(serv_line_codes)))

        stmt = (
            select(
                Client.id.label("GSClientID"),
                Client.client_code.label("clientCode"),
                tx.task_id.label("GSTaskID"),
                tx.serv_line_code.label("ServLineCode"),
                ServiceLineExternal.master_code.label("masterCode"),
                ServiceLineMaster.name.label("masterServiceLineName"),
                ltd_time.label("LTDTimeCharged"),
                ltd_disb.label("LTDDisbCharged"),
                ltd_fees.label("LTDFeesBilled"),
                ltd_adj.label("LTDAdjustments"),
                ltd_provision.label("LTDWipProvision"),
                ltd_hours.label("LTDHours"),
                ltd_cost.label("LTDCost"),
                bal_wip.label("BalWip"),
            )
            .select_from(tx)
            .join(Client, Client.id == tx.client_id)
            .outerjoin(ServiceLineExternal, ServiceLineExternal.serv_line_code == tx.serv_line_code)
            .outerjoin(ServiceLineMaster, ServiceLineMaster.code == ServiceLineExternal.master_code)
            .where(and_(*conditions))
            .group_by(
                Client.id,
                Client.client_code,
                tx.task_id,
                tx.serv_line_code,
                ServiceLineExternal.master_code,
                ServiceLineMaster.name,
            )
            .having(or_(period_rows > 0, func.abs(bal_wip) > BALANCE_THRESHOLD))
            .order_by(Client.client_code.asc(), tx.task_id.asc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return self.db.execute(stmt).mappings().all()
