"""Period reductions over a user's expenses.

Everything here is a pure function of its inputs: the same expense list,
period and ``today`` always produce the same numbers. The JSON endpoints,
the budget card and the dashboard all go through these helpers so the
figures they show cannot drift apart.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Iterable, Mapping, Optional, Sequence

from periods import Period, add_months, month_start

if TYPE_CHECKING:
    from models import Category, Expense


@dataclass(frozen=True)
class CategoryMeta:
    id: Optional[int]
    name: str
    icon: str
    color: str

    @classmethod
    def from_model(cls, category: "Category") -> "CategoryMeta":
        return cls(
            id=category.id,
            name=category.name,
            icon=category.icon,
            color=category.color,
        )


UNKNOWN_CATEGORY = CategoryMeta(id=None, name="Unknown", icon="?", color="#cccccc")


@dataclass(frozen=True)
class ExpenseRecord:
    id: int
    title: str
    amount_cents: int
    date: date
    category_id: Optional[int]
    category_name: Optional[str] = None

    @classmethod
    def from_model(cls, expense: "Expense") -> "ExpenseRecord":
        category = expense.category
        return cls(
            id=expense.id,
            title=expense.title,
            amount_cents=expense.amount_cents,
            date=expense.date,
            category_id=expense.category_id,
            category_name=category.name if category is not None else None,
        )


@dataclass(frozen=True)
class Summary:
    total_cents: int
    count: int
    average_cents: float
    max_cents: int


@dataclass(frozen=True)
class CategoryTotal:
    category: CategoryMeta
    total_cents: int


@dataclass(frozen=True)
class MonthlyPoint:
    year: int
    month: int
    total_cents: int

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def label(self) -> str:
        return date(self.year, self.month, 1).strftime("%b")


@dataclass(frozen=True)
class BudgetUtilization:
    budget_cents: int
    spent_cents: int
    used_pct: float
    is_over_budget: bool
    remaining_cents: int

    @property
    def exceeded_cents(self) -> int:
        return -self.remaining_cents if self.remaining_cents < 0 else 0


@dataclass(frozen=True)
class Stats:
    period: Period
    summary: Summary
    category_breakdown: list[CategoryTotal]
    monthly_trend: list[MonthlyPoint]


def matches_search(record: ExpenseRecord, search: Optional[str]) -> bool:
    term = (search or "").strip().lower()
    if not term:
        return True
    if term in record.title.lower():
        return True
    return bool(record.category_name) and term in record.category_name.lower()


def filter_expenses(
    records: Iterable[ExpenseRecord],
    period: Period,
    search: Optional[str] = None,
) -> list[ExpenseRecord]:
    return [
        r for r in records if period.contains(r.date) and matches_search(r, search)
    ]


def summarize(records: Sequence[ExpenseRecord]) -> Summary:
    count = len(records)
    total = sum(r.amount_cents for r in records)
    return Summary(
        total_cents=total,
        count=count,
        average_cents=(total / count) if count else 0.0,
        max_cents=max((r.amount_cents for r in records), default=0),
    )


def category_breakdown(
    records: Iterable[ExpenseRecord],
    categories: Mapping[int, CategoryMeta],
) -> list[CategoryTotal]:
    sums: dict[Optional[int], int] = defaultdict(int)
    for record in records:
        sums[record.category_id] += record.amount_cents

    breakdown: list[CategoryTotal] = []
    for category_id, total in sums.items():
        if total <= 0:
            continue
        meta = categories.get(category_id) if category_id is not None else None
        if meta is None:
            meta = CategoryMeta(
                id=category_id,
                name=UNKNOWN_CATEGORY.name,
                icon=UNKNOWN_CATEGORY.icon,
                color=UNKNOWN_CATEGORY.color,
            )
        breakdown.append(CategoryTotal(category=meta, total_cents=total))

    breakdown.sort(
        key=lambda row: (-row.total_cents, row.category.name, row.category.id or 0)
    )
    return breakdown


def trend_months(today: date, months: int = 6) -> list[date]:
    """First days of the ``months`` calendar months ending with today's month."""
    current = month_start(today)
    return [add_months(current, offset) for offset in range(-(months - 1), 1)]


def monthly_trend(
    records: Iterable[ExpenseRecord], today: date, months: int = 6
) -> list[MonthlyPoint]:
    totals: dict[tuple[int, int], int] = defaultdict(int)
    for record in records:
        totals[(record.date.year, record.date.month)] += record.amount_cents

    return [
        MonthlyPoint(
            year=m.year, month=m.month, total_cents=totals.get((m.year, m.month), 0)
        )
        for m in trend_months(today, months)
    ]


def budget_utilization(spent_cents: int, budget_cents: int) -> BudgetUtilization:
    used_pct = (spent_cents * 100 / budget_cents) if budget_cents > 0 else 0.0
    return BudgetUtilization(
        budget_cents=budget_cents,
        spent_cents=spent_cents,
        used_pct=used_pct,
        is_over_budget=spent_cents > budget_cents,
        remaining_cents=budget_cents - spent_cents,
    )


def compute_stats(
    records: Sequence[ExpenseRecord],
    period: Period,
    categories: Mapping[int, CategoryMeta],
    today: date,
    *,
    search: Optional[str] = None,
) -> Stats:
    in_period = filter_expenses(records, period, search)
    return Stats(
        period=period,
        summary=summarize(in_period),
        category_breakdown=category_breakdown(in_period, categories),
        # The trend always covers the trailing months, whatever the active period.
        monthly_trend=monthly_trend(records, today),
    )
