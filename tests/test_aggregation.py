from datetime import date

from aggregation import (
    CategoryMeta,
    ExpenseRecord,
    budget_utilization,
    category_breakdown,
    compute_stats,
    filter_expenses,
    monthly_trend,
    summarize,
)
from periods import resolve_period

FOOD = CategoryMeta(id=1, name="Food", icon="🍔", color="#f97316")
TRAVEL = CategoryMeta(id=2, name="Transport", icon="🚕", color="#38bdf8")
CATEGORIES = {FOOD.id: FOOD, TRAVEL.id: TRAVEL}


def _rec(
    id: int,
    amount_cents: int,
    on: date,
    category: CategoryMeta = FOOD,
    title: str = "Expense",
) -> ExpenseRecord:
    return ExpenseRecord(
        id=id,
        title=title,
        amount_cents=amount_cents,
        date=on,
        category_id=category.id,
        category_name=category.name,
    )


def test_monthly_scenario_summary() -> None:
    records = [_rec(1, 10_000, date(2024, 3, 5)), _rec(2, 5_000, date(2024, 3, 20))]
    period = resolve_period("monthly", today=date(2024, 3, 15))

    summary = summarize(filter_expenses(records, period))

    assert summary.total_cents == 15_000
    assert summary.average_cents == 7_500
    assert summary.max_cents == 10_000
    assert summary.count == 2


def test_empty_set_reports_zeros() -> None:
    summary = summarize([])
    assert summary.total_cents == 0
    assert summary.average_cents == 0
    assert summary.max_cents == 0
    assert summary.count == 0


def test_filter_keeps_boundaries_and_drops_neighbours() -> None:
    period = resolve_period("weekly", today=date(2024, 3, 13))
    records = [
        _rec(1, 100, date(2024, 3, 10)),
        _rec(2, 100, date(2024, 3, 11)),
        _rec(3, 100, date(2024, 3, 17)),
        _rec(4, 100, date(2024, 3, 18)),
    ]
    kept = filter_expenses(records, period)
    assert [r.id for r in kept] == [2, 3]


def test_search_matches_title_or_category_case_insensitive() -> None:
    period = resolve_period("monthly", today=date(2024, 3, 15))
    records = [
        _rec(1, 100, date(2024, 3, 2), FOOD, title="Coffee Beans"),
        _rec(2, 100, date(2024, 3, 3), TRAVEL, title="Airport taxi"),
        _rec(3, 100, date(2024, 3, 4), FOOD, title="Groceries"),
    ]
    assert [r.id for r in filter_expenses(records, period, "COFFEE")] == [1]
    assert [r.id for r in filter_expenses(records, period, "transp")] == [2]
    assert len(filter_expenses(records, period, "  ")) == 3


def test_breakdown_sums_to_total_and_ranks_descending() -> None:
    records = [
        _rec(1, 1_000, date(2024, 3, 1), FOOD),
        _rec(2, 4_000, date(2024, 3, 2), TRAVEL),
        _rec(3, 2_000, date(2024, 3, 3), FOOD),
    ]
    breakdown = category_breakdown(records, CATEGORIES)

    assert [row.category.name for row in breakdown] == ["Transport", "Food"]
    assert [row.total_cents for row in breakdown] == [4_000, 3_000]
    assert sum(row.total_cents for row in breakdown) == summarize(records).total_cents


def test_categories_without_spend_are_absent() -> None:
    records = [_rec(1, 1_000, date(2024, 3, 1), TRAVEL)]
    names = [row.category.name for row in category_breakdown(records, CATEGORIES)]
    assert "Food" not in names


def test_unknown_category_degrades_to_placeholder() -> None:
    orphan = ExpenseRecord(
        id=1, title="Mystery", amount_cents=500, date=date(2024, 3, 1), category_id=99
    )
    (row,) = category_breakdown([orphan], CATEGORIES)
    assert row.category.id == 99
    assert (row.category.name, row.category.icon, row.category.color) == (
        "Unknown",
        "?",
        "#cccccc",
    )
    assert row.total_cents == 500


def test_monthly_trend_has_six_points_with_zero_fill() -> None:
    records = [
        _rec(1, 1_000, date(2023, 9, 30)),
        _rec(2, 2_500, date(2024, 1, 15)),
        _rec(3, 500, date(2024, 1, 16)),
        _rec(4, 9_999, date(2023, 8, 31)),
    ]
    trend = monthly_trend(records, today=date(2024, 2, 10))

    assert [p.key for p in trend] == [
        "2023-09",
        "2023-10",
        "2023-11",
        "2023-12",
        "2024-01",
        "2024-02",
    ]
    assert [p.label for p in trend] == ["Sep", "Oct", "Nov", "Dec", "Jan", "Feb"]
    assert [p.total_cents for p in trend] == [1_000, 0, 0, 0, 3_000, 0]


def test_monthly_trend_without_data_is_still_six_points() -> None:
    trend = monthly_trend([], today=date(2024, 6, 1))
    assert len(trend) == 6
    assert all(p.total_cents == 0 for p in trend)


def test_stats_trend_ignores_active_period() -> None:
    today = date(2024, 3, 13)
    records = [
        _rec(1, 1_000, date(2024, 1, 5)),
        _rec(2, 2_000, date(2024, 3, 12)),
    ]
    stats = compute_stats(
        records, resolve_period("weekly", today=today), CATEGORIES, today
    )

    assert stats.summary.count == 1
    assert stats.summary.total_cents == 2_000
    trend = {p.key: p.total_cents for p in stats.monthly_trend}
    assert trend["2024-01"] == 1_000
    assert trend["2024-03"] == 2_000


def test_budget_over_spent() -> None:
    usage = budget_utilization(spent_cents=120_000, budget_cents=100_000)
    assert usage.is_over_budget is True
    assert usage.remaining_cents == -20_000
    assert usage.exceeded_cents == 20_000
    assert usage.used_pct == 120


def test_budget_within_limit() -> None:
    usage = budget_utilization(spent_cents=25_000, budget_cents=100_000)
    assert usage.is_over_budget is False
    assert usage.remaining_cents == 75_000
    assert usage.exceeded_cents == 0
    assert usage.used_pct == 25


def test_zero_budget_reports_zero_percent() -> None:
    usage = budget_utilization(spent_cents=5_000, budget_cents=0)
    assert usage.used_pct == 0
    assert usage.remaining_cents == -5_000
