"""External to master service-line resolution."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.orm import Session

from wip_engine.models.entities import ServiceLineExternal
from wip_engine.repositories.reference_repository import ReferenceRepository

UNKNOWN = "UNKNOWN"


class ServiceLineMapper:
    """Read-only lookup built once per run from the reference rows."""

    def __init__(self, externals: Iterable[ServiceLineExternal]) -> None:
        self._master_by_external: dict[str, str] = {}
        self._externals_by_sub_group: dict[str, list[str]] = {}
        for row in externals:
            if row.master_code:
                self._master_by_external[row.serv_line_code] = row.master_code
            if row.sub_group_code:
                self._externals_by_sub_group.setdefault(row.sub_group_code, []).append(row.serv_line_code)

    @classmethod
    def load(cls, db: Session) -> ServiceLineMapper:
        return cls(ReferenceRepository(db).list_service_line_externals())

    def map_external_to_master(self, code: str | None) -> str | None:
        if not code:
            return None
        return self._master_by_external.get(code)

    def master_or_unknown(self, code: str | None) -> str:
        return self.map_external_to_master(code) or UNKNOWN

    def external_codes_for_sub_group(self, sub_group_code: str) -> list[str]:
        return sorted(self._externals_by_sub_group.get(sub_group_code, []))
