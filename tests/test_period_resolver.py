from __future__ import annotations

from datetime import date, datetime

import pytest

from wip_engine.core.errors import ValidationError
from wip_engine.services.period_resolver import FiscalCalendar, PeriodMode, PeriodResolver


def _resolver(start_month: int = 9) -> PeriodResolver:
    return PeriodResolver(FiscalCalendar(start_month))


def test_march_start_fiscal_month_is_cumulative_through_month_end() -> None:
    window = _resolver(3).resolve(today=date(2026, 1, 1), fiscal_year="2024", fiscal_month="November")

    assert window.mode is PeriodMode.FISCAL
    assert window.start_date == date(2023, 3, 1)
    assert window.end_date == date(2023, 11, 30)
    assert window.fiscal_year == 2024
    assert window.fiscal_month == "November"


def test_march_start_full_year_ends_in_leap_february() -> None:
    window = _resolver(3).resolve(today=date(2026, 1, 1), fiscal_year=2024)

    assert (window.start_date, window.end_date) == (date(2023, 3, 1), date(2024, 2, 29))


def test_september_start_month_after_new_year_falls_in_end_year() -> None:
    window = _resolver(9).resolve(today=date(2026, 1, 1), fiscal_year="2024", fiscal_month="feb")

    assert window.start_date == date(2023, 9, 1)
    assert window.end_date == date(2024, 2, 29)
    assert window.fiscal_month == "February"


def test_january_start_matches_calendar_year() -> None:
    window = _resolver(1).resolve(today=date(2026, 1, 1), fiscal_year="2024")

    assert (window.start_date, window.end_date) == (date(2024, 1, 1), date(2024, 12, 31))


def test_default_fiscal_year_comes_from_today() -> None:
    resolver = _resolver(9)

    assert resolver.resolve(today=date(2024, 8, 31)).fiscal_year == 2024
    assert resolver.resolve(today=date(2024, 9, 1)).fiscal_year == 2025


def test_custom_mode_expands_to_whole_months() -> None:
    window = _resolver().resolve(
        today=date(2026, 1, 1), mode="custom", start_date="2024-02-14", end_date="2024-04-03"
    )

    assert window.mode is PeriodMode.CUSTOM
    assert (window.start_date, window.end_date) == (date(2024, 2, 1), date(2024, 4, 30))
    assert window.fiscal_year is None


def test_custom_mode_without_both_dates_falls_back_to_fiscal() -> None:
    window = _resolver().resolve(today=date(2024, 1, 1), mode="custom", start_date="2024-02-14")

    assert window.mode is PeriodMode.FISCAL
    assert window.fiscal_year == 2024


def test_all_time_is_unbounded() -> None:
    window = _resolver().resolve(today=date(2024, 1, 1), mode="all_time", fiscal_year="2020")

    assert window.mode is PeriodMode.ALL_TIME
    assert not window.is_bounded
    assert window.query_bounds() == (None, None)


def test_query_bounds_cover_whole_end_day() -> None:
    window = _resolver(3).resolve(today=date(2026, 1, 1), fiscal_year="2024", fiscal_month="November")

    assert window.query_bounds() == (datetime(2023, 3, 1), datetime(2023, 12, 1))


def test_unknown_fiscal_month_lists_accepted_names() -> None:
    with pytest.raises(ValidationError) as exc_info:
        _resolver(9).resolve(today=date(2024, 1, 1), fiscal_month="Smarch")

    assert exc_info.value.field == "fiscal_month"
    assert exc_info.value.status_code == 422
    assert "September, October" in exc_info.value.message
    assert exc_info.value.message.endswith("August.")


@pytest.mark.parametrize("value", ["abc", "20x4", "1.5"])
def test_non_numeric_fiscal_year_is_rejected(value: str) -> None:
    with pytest.raises(ValidationError) as exc_info:
        _resolver().resolve(today=date(2024, 1, 1), fiscal_year=value)

    assert exc_info.value.field == "fiscal_year"


def test_malformed_date_names_the_field() -> None:
    with pytest.raises(ValidationError) as exc_info:
        _resolver().resolve(today=date(2024, 1, 1), mode="custom", start_date="2024-01-01", end_date="tomorrow")

    assert exc_info.value.field == "end_date"


def test_reversed_custom_range_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        _resolver().resolve(today=date(2024, 1, 1), mode="custom", start_date="2024-05-01", end_date="2024-02-01")

    assert exc_info.value.field == "end_date"


def test_unknown_mode_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        _resolver().resolve(today=date(2024, 1, 1), mode="quarterly")

    assert exc_info.value.field == "mode"


def test_calendar_month_names_follow_start_month() -> None:
    calendar = FiscalCalendar(3)

    assert calendar.month_names[0] == "March"
    assert calendar.month_names[-1] == "February"
    assert len(set(calendar.month_names)) == 12


def test_custom_range_ending_in_last_representable_month_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        _resolver().resolve(today=date(2024, 1, 1), mode="custom", start_date="2024-01-01", end_date="9999-12-05")

    assert exc_info.value.field == "end_date"


def test_fiscal_year_ending_on_last_representable_date_is_rejected() -> None:
    with pytest.raises(ValidationError) as exc_info:
        _resolver(1).resolve(today=date(2024, 1, 1), fiscal_year="9999")

    assert exc_info.value.field == "fiscal_year"


def test_latest_usable_fiscal_year_still_resolves() -> None:
    window = _resolver(9).resolve(today=date(2024, 1, 1), fiscal_year="9999", fiscal_month="November")

    assert window.end_date == date(9998, 11, 30)
    assert window.query_bounds()[1] == datetime(9998, 12, 1)
