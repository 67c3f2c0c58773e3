"""WIP and profitability reporting for a client or a client group."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from wip_engine.core.config import Settings, get_settings
from wip_engine.core.errors import CacheUnavailable, NotFoundError, UpstreamUnavailable, ValidationError
from wip_engine.models.entities import Client, utc_now
from wip_engine.repositories.ledger_repository import LedgerRepository
from wip_engine.repositories.reference_repository import ReferenceRepository
from wip_engine.services.aggregation import AggregateBucket, AggregationResult, aggregate
from wip_engine.services.cost_override import apply_cost_override
from wip_engine.services.ledger_sources import LedgerSourceStrategy, build_ledger_source
from wip_engine.services.period_resolver import FiscalCalendar, PeriodMode, PeriodResolver, PeriodWindow
from wip_engine.services.profitability import calculate_metrics
from wip_engine.services.result_cache import ResultCache, build_cache_key
from wip_engine.services.service_line_mapper import UNKNOWN, ServiceLineMapper

logger = logging.getLogger(__name__)

REFERENCE_SOURCE = "reference_data"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class WipReportingService:
    """Runs the period -> cache -> ledger -> fold -> metrics pipeline."""

    def __init__(
        self,
        db: Session,
        *,
        cache: ResultCache | None = None,
        settings: Settings | None = None,
        strategy: LedgerSourceStrategy | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings()
        self.cache = cache if self.settings.cache_enabled else None
        self.repo = LedgerRepository(db)
        self.reference = ReferenceRepository(db)
        self.strategy = strategy or build_ledger_source(self.settings.ledger_source_strategy, db, self.settings)
        self.resolver = PeriodResolver(FiscalCalendar(self.settings.fiscal_year_start_month))
        self.clock = clock

    # ---------- Public operations ----------
    def client_wip(
        self,
        client_id: int,
        *,
        mode: str | None = None,
        fiscal_year: str | int | None = None,
        fiscal_month: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        sub_service_line_group: str | None = None,
    ) -> dict[str, Any]:
        client = self._lookup(lambda: self.repo.get_client(client_id))
        if client is None:
            raise NotFoundError(f"Client {client_id} not found.")

        context = {
            "client_id": client.id,
            "client_code": client.client_code,
            "client_name": client.client_name,
        }
        return self._run(
            scope="client",
            subject=client.id,
            clients=[client],
            context=context,
            mode=mode,
            fiscal_year=fiscal_year,
            fiscal_month=fiscal_month,
            start_date=start_date,
            end_date=end_date,
            sub_service_line_group=sub_service_line_group,
        )

    def group_wip(
        self,
        group_code: str,
        *,
        mode: str | None = None,
        fiscal_year: str | int | None = None,
        fiscal_month: str | None = None,
        start_date: str | None = None,
        end_date: str | None = None,
        sub_service_line_group: str | None = None,
    ) -> dict[str, Any]:
        clients = self._lookup(lambda: self.repo.list_clients_for_group(group_code))
        if not clients:
            raise NotFoundError(f"Client group {group_code} not found.")

        context = {
            "group_code": group_code,
            "group_desc": next((client.group_desc for client in clients if client.group_desc), None),
            "client_count": len(clients),
        }
        return self._run(
            scope="group",
            subject=group_code,
            clients=clients,
            context=context,
            mode=mode,
            fiscal_year=fiscal_year,
            fiscal_month=fiscal_month,
            start_date=start_date,
            end_date=end_date,
            sub_service_line_group=sub_service_line_group,
        )

    # ---------- Pipeline ----------
    def _run(
        self,
        *,
        scope: str,
        subject: str | int,
        clients: Sequence[Client],
        context: dict[str, Any],
        mode: str | None,
        fiscal_year: str | int | None,
        fiscal_month: str | None,
        start_date: str | None,
        end_date: str | None,
        sub_service_line_group: str | None,
    ) -> dict[str, Any]:
        started = time.perf_counter()
        now = self.clock()
        sub_group = _clean(sub_service_line_group)
        window = self.resolver.resolve(
            today=now.date(),
            mode=mode,
            fiscal_year=fiscal_year,
            fiscal_month=fiscal_month,
            start_date=start_date,
            end_date=end_date,
        )
        logger.debug("Resolved %s %s period to %s", scope, subject, window)
        if window.is_bounded and not self.strategy.supports_period_window:
            raise ValidationError(
                "mode",
                f"The {self.strategy.name} ledger source only supports mode=all_time.",
            )

        cache_key = build_cache_key(
            scope=scope,
            subject=subject,
            strategy=self.strategy.name,
            mode=_clean(mode),
            fiscal_year=_clean(str(fiscal_year)) if fiscal_year is not None else None,
            fiscal_month=_clean(fiscal_month),
            start_date=_clean(start_date),
            end_date=_clean(end_date),
            sub_service_line_group=sub_group,
            window=(
                window.start_date.isoformat() if window.start_date else None,
                window.end_date.isoformat() if window.end_date else None,
            ),
        )
        cached = self._cache_get(cache_key)
        if cached is not None:
            logger.debug("Cache hit for %s %s", scope, subject)
            return cached
        logger.debug("Cache miss for %s %s", scope, subject)

        mapper = self._lookup(lambda: ServiceLineMapper.load(self.db))
        exclusions = self._lookup(
            lambda: self.reference.list_employee_codes_in_categories(self.settings.cost_exclusion_categories)
        )
        serv_line_codes = mapper.external_codes_for_sub_group(sub_group) if sub_group else None
        if sub_group and not serv_line_codes:
            raise ValidationError(
                "sub_service_line_group",
                f"Unknown sub_service_line_group '{sub_group}'.",
            )

        try:
            entries = self.strategy.fetch(clients, window, exclusions, serv_line_codes)
        except UpstreamUnavailable:
            logger.error(
                "Ledger source %s failed for %s %s over %s .. %s",
                self.strategy.name,
                scope,
                subject,
                window.start_date,
                window.end_date,
            )
            raise

        result = aggregate(apply_cost_override(entries, exclusions), mapper)
        payload = {
            **context,
            "strategy": self.strategy.name,
            "gross_production_basis": self._gross_production_basis(),
            "sub_service_line_group": sub_group,
            **self._assemble(result, now),
            "period": window.to_dict(),
        }

        self._cache_set(cache_key, payload, self._ttl_for(window, now))
        logger.info(
            "WIP report %s=%s strategy=%s tasks=%d buckets=%d duration_ms=%.1f",
            scope,
            subject,
            self.strategy.name,
            result.overall.task_count,
            len(result.by_master),
            (time.perf_counter() - started) * 1000,
        )
        return payload

    def _assemble(self, result: AggregationResult, now: datetime) -> dict[str, Any]:
        include_disbursements = self.settings.gross_production_includes_disbursements
        known_codes = [code for code in result.by_master if code != UNKNOWN]
        masters = self._lookup(lambda: self.reference.list_master_service_lines(known_codes))

        master_service_lines = [{"code": row.code, "name": row.name} for row in masters]
        named = {row["code"] for row in master_service_lines}
        for code in sorted(set(known_codes) - named):
            bucket = result.by_master[code]
            master_service_lines.append({"code": code, "name": bucket.master_name or code})

        ordered_codes = [row["code"] for row in master_service_lines]
        if UNKNOWN in result.by_master:
            ordered_codes.append(UNKNOWN)
        names = {row["code"]: row["name"] for row in master_service_lines}

        def serialize(bucket: AggregateBucket) -> dict[str, object]:
            return calculate_metrics(bucket, include_disbursements=include_disbursements).to_dict()

        last_updated = result.last_observed_at or now
        return {
            "overall": serialize(result.overall),
            "by_master_service_line": [
                {
                    "master_code": code,
                    "master_service_line_name": names.get(code),
                    **serialize(result.by_master[code]),
                }
                for code in ordered_codes
            ],
            "master_service_lines": master_service_lines,
            "task_count": result.overall.task_count,
            "last_updated": last_updated.isoformat(),
        }

    # ---------- Helpers ----------
    def _gross_production_basis(self) -> str:
        if self.settings.gross_production_includes_disbursements:
            return "time_and_disbursements"
        return "time_only"

    def _ttl_for(self, window: PeriodWindow, now: datetime) -> int:
        if (
            window.mode is PeriodMode.FISCAL
            and window.fiscal_year is not None
            and window.fiscal_year < self.resolver.current_fiscal_year(now.date())
        ):
            return self.settings.cache_closed_period_ttl_seconds
        return self.settings.cache_ttl_seconds

    def _lookup(self, query: Callable[[], Any]) -> Any:
        try:
            return query()
        except SQLAlchemyError as exc:
            logger.error("Reference lookup failed: %s", exc.__class__.__name__)
            raise UpstreamUnavailable(REFERENCE_SOURCE, exc.__class__.__name__) from exc

    def _cache_get(self, key: str) -> dict[str, Any] | None:
        if self.cache is None:
            return None
        try:
            return self.cache.get(key)
        except CacheUnavailable as exc:
            logger.debug("Cache read failed, computing: %s", exc)
            return None

    def _cache_set(self, key: str, value: dict[str, Any], ttl_seconds: int) -> None:
        if self.cache is None:
            return
        try:
            self.cache.set(key, value, ttl_seconds)
        except CacheUnavailable as exc:
            logger.debug("Cache write failed: %s", exc)
