from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

from config import get_settings
from models import BudgetPeriod


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def contains(self, value: date) -> bool:
        return self.start <= value <= self.end


def local_today() -> date:
    return datetime.now(ZoneInfo(get_settings().timezone)).date()


def month_start(d: date) -> date:
    return d.replace(day=1)


def add_months(d: date, count: int) -> date:
    month_index = (d.year * 12) + (d.month - 1) + count
    year = month_index // 12
    month = (month_index % 12) + 1
    return date(year, month, 1)


def month_end(d: date) -> date:
    return add_months(d, 1) - date.resolution


def parse_period(value: Union[str, BudgetPeriod, None]) -> BudgetPeriod:
    if isinstance(value, BudgetPeriod):
        return value
    if not value or not value.strip():
        return BudgetPeriod.monthly
    try:
        return BudgetPeriod(value.strip().lower())
    except ValueError as exc:
        raise ValueError(
            f"Unknown period '{value}'; expected weekly, monthly or yearly"
        ) from exc


def resolve_period(
    period: Union[str, BudgetPeriod, None],
    *,
    today: Optional[date] = None,
) -> Period:
    """Map a period label to the inclusive calendar range containing ``today``.

    Weeks run Monday through Sunday. An empty label means ``monthly``.
    """
    kind = parse_period(period)
    today = today or local_today()

    if kind == BudgetPeriod.weekly:
        start = today - timedelta(days=today.weekday())
        return Period(kind.value, start, start + timedelta(days=6))
    if kind == BudgetPeriod.yearly:
        return Period(kind.value, date(today.year, 1, 1), date(today.year, 12, 31))

    return Period(kind.value, month_start(today), month_end(today))
