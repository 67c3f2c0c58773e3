"""Service-line reference data and employee directory lookups."""

from __future__ import annotations

from collections.abc import Collection

from sqlalchemy import select
from sqlalchemy.orm import Session

from wip_engine.models.entities import Employee, ServiceLineExternal, ServiceLineMaster


class ReferenceRepository:
    """Read-only access to reference tables maintained out of band."""

    def __init__(self, db: Session) -> None:
        self.db = db

    # ---------- Service lines ----------
    def list_service_line_externals(self) -> list[ServiceLineExternal]:
        return self.db.scalars(
            select(ServiceLineExternal).order_by(ServiceLineExternal.serv_line_code.asc())
        ).all()

    def list_master_service_lines(self, codes: Collection[str]) -> list[ServiceLineMaster]:
        if not codes:
            return []
        return self.db.scalars(
            select(ServiceLineMaster)
            .where(ServiceLineMaster.code.in_(list(codes)))
            .order_by(ServiceLineMaster.sort_order.asc(), ServiceLineMaster.code.asc())
        ).all()

    # ---------- Employees ----------
    def list_employee_codes_in_categories(self, categories: Collection[str]) -> set[str]:
        if not categories:
            return set()
        return set(
            self.db.scalars(
                select(Employee.emp_code).where(Employee.emp_cat_code.in_(list(categories)))
            ).all()
        )
