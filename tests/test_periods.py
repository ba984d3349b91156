from datetime import date

import pytest

from models import BudgetPeriod
from periods import add_months, month_end, parse_period, resolve_period


def test_weekly_starts_on_monday() -> None:
    period = resolve_period("weekly", today=date(2024, 3, 15))  # Friday
    assert period.slug == "weekly"
    assert period.start == date(2024, 3, 11)
    assert period.end == date(2024, 3, 17)


def test_weekly_on_sunday_stays_in_the_week_that_started_monday() -> None:
    period = resolve_period("weekly", today=date(2024, 3, 17))
    assert period.start == date(2024, 3, 11)
    assert period.end == date(2024, 3, 17)


def test_weekly_on_monday_starts_that_day() -> None:
    period = resolve_period("weekly", today=date(2024, 3, 11))
    assert period.start == date(2024, 3, 11)
    assert period.end == date(2024, 3, 17)


def test_weekly_spans_year_boundary() -> None:
    period = resolve_period("weekly", today=date(2025, 1, 1))
    assert period.start == date(2024, 12, 30)
    assert period.end == date(2025, 1, 5)


def test_monthly_covers_leap_february() -> None:
    period = resolve_period("monthly", today=date(2024, 2, 10))
    assert (period.start, period.end) == (date(2024, 2, 1), date(2024, 2, 29))


def test_monthly_december() -> None:
    period = resolve_period(BudgetPeriod.monthly, today=date(2024, 12, 31))
    assert (period.start, period.end) == (date(2024, 12, 1), date(2024, 12, 31))


def test_yearly_covers_calendar_year() -> None:
    period = resolve_period("yearly", today=date(2024, 6, 15))
    assert (period.start, period.end) == (date(2024, 1, 1), date(2024, 12, 31))


@pytest.mark.parametrize("label", [None, "", "   "])
def test_missing_label_defaults_to_monthly(label) -> None:
    period = resolve_period(label, today=date(2024, 3, 15))
    assert period.slug == "monthly"
    assert period.start == date(2024, 3, 1)


def test_labels_are_case_insensitive() -> None:
    assert parse_period("WEEKLY") == BudgetPeriod.weekly
    assert parse_period(" Yearly ") == BudgetPeriod.yearly


def test_unknown_label_is_rejected() -> None:
    with pytest.raises(ValueError):
        resolve_period("fortnightly", today=date(2024, 3, 15))


def test_contains_is_boundary_inclusive() -> None:
    period = resolve_period("monthly", today=date(2024, 3, 15))
    assert period.contains(date(2024, 3, 1))
    assert period.contains(date(2024, 3, 31))
    assert not period.contains(date(2024, 2, 29))
    assert not period.contains(date(2024, 4, 1))


def test_month_arithmetic() -> None:
    assert add_months(date(2024, 2, 20), -5) == date(2023, 9, 1)
    assert add_months(date(2024, 11, 3), 2) == date(2025, 1, 1)
    assert month_end(date(2023, 2, 14)) == date(2023, 2, 28)
