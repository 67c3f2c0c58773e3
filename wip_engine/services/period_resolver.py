"""Fiscal calendar and reporting period resolution.

A fiscal year is named after the calendar year it ends in. With a September
start, FY2024 runs 2023-09-01 .. 2024-08-31; with a March start it runs
2023-03-01 .. 2024-02-29. A January start makes fiscal and calendar years equal.

Windows are inclusive on both dates. Queries use the half-open datetime range
``[start 00:00, day after end 00:00)`` so every timestamp on the end date counts.
"""

from __future__ import annotations

import enum
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from wip_engine.core.errors import ValidationError

CALENDAR_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

MIN_FISCAL_YEAR = 1901
MAX_FISCAL_YEAR = 9999


class PeriodMode(str, enum.Enum):
    FISCAL = "fiscal"
    CUSTOM = "custom"
    ALL_TIME = "all_time"


@dataclass(frozen=True, slots=True)
class PeriodWindow:
    mode: PeriodMode
    start_date: date | None
    end_date: date | None
    fiscal_year: int | None = None
    fiscal_month: str | None = None

    @property
    def is_bounded(self) -> bool:
        return self.start_date is not None or self.end_date is not None

    def query_bounds(self) -> tuple[datetime | None, datetime | None]:
        date_from = datetime.combine(self.start_date, time.min) if self.start_date else None
        date_to = datetime.combine(self.end_date + timedelta(days=1), time.min) if self.end_date else None
        return date_from, date_to

    def to_dict(self) -> dict[str, object]:
        return {
            "mode": self.mode.value,
            "fiscal_year": self.fiscal_year,
            "fiscal_month": self.fiscal_month,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }


class FiscalCalendar:
    """Twelve named fiscal months beginning at ``start_month``."""

    def __init__(self, start_month: int = 9) -> None:
        if not 1 <= start_month <= 12:
            raise ValueError("start_month must be between 1 and 12.")
        self.start_month = start_month
        self.month_names = tuple(
            CALENDAR_MONTH_NAMES[(start_month - 1 + offset) % 12] for offset in range(12)
        )

    def _calendar_year(self, fiscal_year: int, calendar_month: int) -> int:
        if self.start_month > 1 and calendar_month >= self.start_month:
            return fiscal_year - 1
        return fiscal_year

    def fiscal_year_for(self, day: date) -> int:
        if self.start_month > 1 and day.month >= self.start_month:
            return day.year + 1
        return day.year

    def year_range(self, fiscal_year: int) -> tuple[date, date]:
        start = date(self._calendar_year(fiscal_year, self.start_month), self.start_month, 1)
        last_month = (self.start_month - 2) % 12 + 1
        last_year = self._calendar_year(fiscal_year, last_month)
        return start, date(last_year, last_month, monthrange(last_year, last_month)[1])

    def month_end(self, fiscal_year: int, month_name: str) -> date:
        canonical = self.canonical_month(month_name)
        calendar_month = CALENDAR_MONTH_NAMES.index(canonical) + 1
        year = self._calendar_year(fiscal_year, calendar_month)
        return date(year, calendar_month, monthrange(year, calendar_month)[1])

    def canonical_month(self, value: str) -> str:
        """Full month name for ``value``; accepts any case and three-letter forms."""

        needle = value.strip().lower()
        for name in self.month_names:
            if needle in (name.lower(), name[:3].lower()):
                return name
        raise ValidationError(
            "fiscal_month",
            f"Invalid fiscal_month '{value}'. Must be one of: {', '.join(self.month_names)}.",
        )


def _parse_fiscal_year(value: int | str | None) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError("fiscal_year", "fiscal_year must be an integer.")
    try:
        parsed = int(value.strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        raise ValidationError("fiscal_year", f"fiscal_year must be an integer, got '{value}'.") from None
    if not MIN_FISCAL_YEAR <= parsed <= MAX_FISCAL_YEAR:
        raise ValidationError(
            "fiscal_year",
            f"fiscal_year must be between {MIN_FISCAL_YEAR} and {MAX_FISCAL_YEAR}.",
        )
    return parsed


def _parse_date(field: str, value: date | str | None) -> date | None:
    if value is None or isinstance(value, date):
        return value.date() if isinstance(value, datetime) else value
    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        raise ValidationError(field, f"{field} must be an ISO-8601 date, got '{value}'.") from None


def _parse_mode(value: PeriodMode | str | None) -> PeriodMode:
    if value is None or isinstance(value, PeriodMode):
        return value or PeriodMode.FISCAL
    text = value.strip().lower()
    if not text:
        return PeriodMode.FISCAL
    try:
        return PeriodMode(text)
    except ValueError:
        allowed = ", ".join(mode.value for mode in PeriodMode)
        raise ValidationError("mode", f"Invalid mode '{value}'. Must be one of: {allowed}.") from None


def _month_start(value: date) -> date:
    return date(value.year, value.month, 1)


def _month_end(value: date) -> date:
    return date(value.year, value.month, monthrange(value.year, value.month)[1])


class PeriodResolver:
    """Turns raw period parameters into a concrete ``PeriodWindow``."""

    def __init__(self, calendar: FiscalCalendar) -> None:
        self.calendar = calendar

    def current_fiscal_year(self, today: date) -> int:
        return self.calendar.fiscal_year_for(today)

    def resolve(
        self,
        *,
        today: date,
        mode: PeriodMode | str | None = None,
        fiscal_year: int | str | None = None,
        fiscal_month: str | None = None,
        start_date: date | str | None = None,
        end_date: date | str | None = None,
    ) -> PeriodWindow:
        resolved_mode = _parse_mode(mode)
        parsed_year = _parse_fiscal_year(fiscal_year)
        month_name = self.calendar.canonical_month(fiscal_month) if fiscal_month and fiscal_month.strip() else None
        parsed_start = _parse_date("start_date", start_date)
        parsed_end = _parse_date("end_date", end_date)

        if resolved_mode is PeriodMode.ALL_TIME:
            return PeriodWindow(mode=PeriodMode.ALL_TIME, start_date=None, end_date=None)

        if resolved_mode is PeriodMode.CUSTOM and parsed_start is not None and parsed_end is not None:
            window_start = _month_start(parsed_start)
            window_end = _month_end(parsed_end)
            if window_end < window_start:
                raise ValidationError("end_date", "end_date must be greater than or equal to start_date.")
            if window_end == date.max:
                raise ValidationError("end_date", f"end_date must be before {date.max.year}-12-01.")
            return PeriodWindow(mode=PeriodMode.CUSTOM, start_date=window_start, end_date=window_end)

        year = parsed_year if parsed_year is not None else self.current_fiscal_year(today)
        year_start, year_end = self.calendar.year_range(year)
        window_end = self.calendar.month_end(year, month_name) if month_name else year_end
        # The query bound is the day after window_end.
        if window_end == date.max:
            raise ValidationError("fiscal_year", f"fiscal_year {year} ends on the last representable date.")
        return PeriodWindow(
            mode=PeriodMode.FISCAL,
            start_date=year_start,
            end_date=window_end,
            fiscal_year=year,
            fiscal_month=month_name,
        )
