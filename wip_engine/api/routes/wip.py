"""WIP and profitability report endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from wip_engine.db.dependencies import get_db_session
from wip_engine.services.result_cache import ResultCache, get_result_cache
from wip_engine.services.wip_reporting_service import WipReportingService

router = APIRouter(tags=["wip"])


def _service(db: Session, cache: ResultCache) -> WipReportingService:
    return WipReportingService(db, cache=cache)


@router.get("/clients/{client_id}/wip")
def client_wip(
    client_id: int,
    mode: str | None = None,
    fiscal_year: str | None = None,
    fiscal_month: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    sub_service_line_group: str | None = None,
    cache: ResultCache = Depends(get_result_cache),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db, cache)
    return service.client_wip(
        client_id,
        mode=mode,
        fiscal_year=fiscal_year,
        fiscal_month=fiscal_month,
        start_date=start_date,
        end_date=end_date,
        sub_service_line_group=sub_service_line_group,
    )


@router.get("/groups/{group_code}/wip")
def group_wip(
    group_code: str,
    mode: str | None = None,
    fiscal_year: str | None = None,
    fiscal_month: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    sub_service_line_group: str | None = None,
    cache: ResultCache = Depends(get_result_cache),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db, cache)
    return service.group_wip(
        group_code,
        mode=mode,
        fiscal_year=fiscal_year,
        fiscal_month=fiscal_month,
        start_date=start_date,
        end_date=end_date,
        sub_service_line_group=sub_service_line_group,
    )
