"""Partner cost exclusion."""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import replace
from decimal import Decimal

from wip_engine.services.ledger_sources import LedgerEntry

ZERO = Decimal("0.00")


def apply_cost_override(entries: Iterable[LedgerEntry], excluded_codes: Collection[str]) -> list[LedgerEntry]:
    """Zero the cost of every entry booked by an excluded employee.

    Entries are copied, never mutated. ``excluded_codes`` is resolved once per
    run by the caller.
    """

    excluded = frozenset(excluded_codes)
    result: list[LedgerEntry] = []
    for entry in entries:
        if entry.emp_code is not None and entry.emp_code in excluded and entry.figures.ltd_cost != ZERO:
            entry = replace(entry, figures=replace(entry.figures, ltd_cost=ZERO))
        result.append(entry)
    return result
