"""Fold ledger entries into per-master-service-line and overall buckets."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from wip_engine.services.ledger_sources import LedgerEntry, LedgerFigures
from wip_engine.services.service_line_mapper import UNKNOWN, ServiceLineMapper

ZERO = Decimal("0.00")

ADDITIVE_FIELDS = (
    "ltd_time",
    "ltd_disb",
    "ltd_adj_time",
    "ltd_adj_disb",
    "ltd_fee_time",
    "ltd_fee_disb",
    "ltd_adjustments",
    "ltd_fees_billed",
    "ltd_cost",
    "ltd_hours",
    "bal_wip",
    "bal_time",
    "bal_disb",
    "wip_provision",
)


@dataclass(slots=True)
class AggregateBucket:
    key: str
    totals: LedgerFigures = field(default_factory=LedgerFigures)
    task_ids: set[tuple[int, int]] = field(default_factory=set)
    master_name: str | None = None

    @property
    def task_count(self) -> int:
        return len(self.task_ids)

    def add(self, entry: LedgerEntry) -> None:
        for name in ADDITIVE_FIELDS:
            setattr(self.totals, name, getattr(self.totals, name) + getattr(entry.figures, name))
        # Task ids are only unique per client.
        self.task_ids.add((entry.client_id, entry.task_id))


@dataclass(slots=True)
class AggregationResult:
    overall: AggregateBucket
    by_master: dict[str, AggregateBucket]
    last_observed_at: datetime | None = None


def aggregate(entries: Iterable[LedgerEntry], mapper: ServiceLineMapper) -> AggregationResult:
    """Single pass over ``entries``. Row order never affects the totals."""

    overall = AggregateBucket(key="overall")
    by_master: dict[str, AggregateBucket] = {}
    last_observed_at: datetime | None = None

    for entry in entries:
        master_code = entry.master_code or mapper.master_or_unknown(entry.serv_line_code)
        bucket = by_master.get(master_code)
        if bucket is None:
            bucket = by_master[master_code] = AggregateBucket(key=master_code)
        if bucket.master_name is None and entry.master_name and master_code != UNKNOWN:
            bucket.master_name = entry.master_name

        bucket.add(entry)
        overall.add(entry)

        if entry.observed_at is not None and (last_observed_at is None or entry.observed_at > last_observed_at):
            last_observed_at = entry.observed_at

    return AggregationResult(overall=overall, by_master=by_master, last_observed_at=last_observed_at)
