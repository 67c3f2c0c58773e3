"""Profitability ratios derived from one aggregate bucket."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from decimal import Decimal

from wip_engine.services.aggregation import AggregateBucket

ZERO = Decimal("0.00")
Q2 = Decimal("0.01")
HUNDRED = Decimal("100")


def _q2(value: Decimal) -> Decimal:
    return value.quantize(Q2)


def _safe_div(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator == ZERO:
        return ZERO
    return (numerator / denominator).quantize(Q2)


@dataclass(frozen=True, slots=True)
class ProfitabilityMetrics:
    ltd_time: Decimal
    ltd_disb: Decimal
    ltd_adj_time: Decimal
    ltd_adj_disb: Decimal
    ltd_adj: Decimal
    ltd_fee_time: Decimal
    ltd_fee_disb: Decimal
    ltd_fee: Decimal
    ltd_cost: Decimal
    ltd_hours: Decimal
    gross_production: Decimal
    net_revenue: Decimal
    adjustment_percentage: Decimal
    gross_profit: Decimal
    gross_profit_percentage: Decimal
    average_chargeout_rate: Decimal
    average_recovery_rate: Decimal
    bal_wip: Decimal
    bal_time: Decimal
    bal_disb: Decimal
    wip_provision: Decimal
    task_count: int

    def to_dict(self) -> dict[str, object]:
        return {
            key: value if isinstance(value, int) else str(_q2(value))
            for key, value in asdict(self).items()
        }


def calculate_metrics(bucket: AggregateBucket, *, include_disbursements: bool) -> ProfitabilityMetrics:
    """Derive the report for ``bucket``.

    ``include_disbursements`` picks the gross production convention:
    ``ltd_time + ltd_disb`` when True, ``ltd_time`` alone when False. Callers
    pass one value for a whole run.
    """

    totals = bucket.totals
    gross_production = totals.ltd_time + totals.ltd_disb if include_disbursements else totals.ltd_time
    # Merged figures are filled for every source, split ones only where available.
    ltd_adj = totals.ltd_adjustments
    net_revenue = gross_production + ltd_adj
    gross_profit = net_revenue - totals.ltd_cost

    return ProfitabilityMetrics(
        ltd_time=_q2(totals.ltd_time),
        ltd_disb=_q2(totals.ltd_disb),
        ltd_adj_time=_q2(totals.ltd_adj_time),
        ltd_adj_disb=_q2(totals.ltd_adj_disb),
        ltd_adj=_q2(ltd_adj),
        ltd_fee_time=_q2(totals.ltd_fee_time),
        ltd_fee_disb=_q2(totals.ltd_fee_disb),
        ltd_fee=_q2(totals.ltd_fees_billed),
        ltd_cost=_q2(totals.ltd_cost),
        ltd_hours=_q2(totals.ltd_hours),
        gross_production=_q2(gross_production),
        net_revenue=_q2(net_revenue),
        adjustment_percentage=_safe_div(ltd_adj * HUNDRED, gross_production),
        gross_profit=_q2(gross_profit),
        gross_profit_percentage=_safe_div(gross_profit * HUNDRED, net_revenue),
        average_chargeout_rate=_safe_div(gross_production, totals.ltd_hours),
        average_recovery_rate=_safe_div(net_revenue, totals.ltd_hours),
        bal_wip=_q2(totals.bal_wip),
        bal_time=_q2(totals.bal_time),
        bal_disb=_q2(totals.bal_disb),
        wip_provision=_q2(totals.wip_provision),
        task_count=bucket.task_count,
    )
