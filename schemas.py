import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from aggregation import BudgetUtilization, CategoryTotal, MonthlyPoint, Stats
from models import BudgetPeriod, Expense
from money import cents_to_units
from periods import Period, parse_period


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class CategoryIn(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    icon: str = Field(..., min_length=1, max_length=16)
    color: str = Field(..., min_length=1, max_length=32)


class CategoryOut(ApiModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    icon: str
    color: str
    is_default: bool
    user_id: Optional[int] = None


class ExpenseIn(ApiModel):
    title: str = Field(..., min_length=1, max_length=200)
    amount: float = Field(..., gt=0, allow_inf_nan=False)
    category_id: int
    date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=2000)


class ExpenseUpdate(ApiModel):
    """Partial update; only fields present in the payload are applied."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)
    category_id: Optional[int] = None
    date: Optional[dt.date] = None
    description: Optional[str] = Field(default=None, max_length=2000)


class ExpenseOut(ApiModel):
    id: int
    title: str
    amount: float
    category_id: int
    user_id: int
    date: dt.date
    description: Optional[str] = None
    category: Optional[CategoryOut] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    @classmethod
    def from_model(cls, expense: Expense) -> "ExpenseOut":
        return cls(
            id=expense.id,
            title=expense.title,
            amount=cents_to_units(expense.amount_cents),
            category_id=expense.category_id,
            user_id=expense.user_id,
            date=expense.date,
            description=expense.description,
            category=(
                CategoryOut.model_validate(expense.category)
                if expense.category is not None
                else None
            ),
            created_at=expense.created_at,
            updated_at=expense.updated_at,
        )


class BudgetIn(ApiModel):
    amount: float = Field(..., ge=0, allow_inf_nan=False)
    period: BudgetPeriod = BudgetPeriod.monthly

    @field_validator("period", mode="before")
    @classmethod
    def _normalize_period(cls, value):
        return parse_period(value)


class BudgetOut(ApiModel):
    id: Optional[int] = None
    amount: float
    period: BudgetPeriod
    updated_at: Optional[dt.datetime] = None


class BudgetStatusOut(ApiModel):
    period: BudgetPeriod
    start: dt.date
    end: dt.date
    amount: float
    spent: float
    used_pct: float
    is_over_budget: bool
    remaining: float

    @classmethod
    def build(cls, period: Period, usage: BudgetUtilization) -> "BudgetStatusOut":
        return cls(
            period=BudgetPeriod(period.slug),
            start=period.start,
            end=period.end,
            amount=cents_to_units(usage.budget_cents),
            spent=cents_to_units(usage.spent_cents),
            used_pct=round(usage.used_pct, 2),
            is_over_budget=usage.is_over_budget,
            remaining=cents_to_units(usage.remaining_cents),
        )


class CategoryTotalOut(ApiModel):
    id: Optional[int] = None
    name: str
    icon: str
    color: str
    total: float

    @classmethod
    def build(cls, row: CategoryTotal) -> "CategoryTotalOut":
        return cls(
            id=row.category.id,
            name=row.category.name,
            icon=row.category.icon,
            color=row.category.color,
            total=cents_to_units(row.total_cents),
        )


class MonthlyPointOut(ApiModel):
    key: str
    month: str
    total: float

    @classmethod
    def build(cls, point: MonthlyPoint) -> "MonthlyPointOut":
        return cls(
            key=point.key, month=point.label, total=cents_to_units(point.total_cents)
        )


class StatsOut(ApiModel):
    period: BudgetPeriod
    start: dt.date
    end: dt.date
    total_sum: float
    avg_expense: float
    max_expense: float
    transaction_count: int
    category_breakdown: list[CategoryTotalOut]
    monthly_trend: list[MonthlyPointOut]

    @classmethod
    def build(cls, stats: Stats) -> "StatsOut":
        summary = stats.summary
        return cls(
            period=BudgetPeriod(stats.period.slug),
            start=stats.period.start,
            end=stats.period.end,
            total_sum=cents_to_units(summary.total_cents),
            avg_expense=round(cents_to_units(summary.average_cents), 2),
            max_expense=cents_to_units(summary.max_cents),
            transaction_count=summary.count,
            category_breakdown=[
                CategoryTotalOut.build(row) for row in stats.category_breakdown
            ],
            monthly_trend=[MonthlyPointOut.build(p) for p in stats.monthly_trend],
        )


class MessageOut(ApiModel):
    message: str
