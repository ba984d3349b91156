from dataclasses import asdict, dataclass, replace
from typing import Mapping
from urllib.parse import urlencode

from models import BudgetPeriod
from periods import parse_period

TABS = ("overview", "transactions", "analytics")


@dataclass(frozen=True)
class DashboardState:
    """Everything the dashboard needs to know about what the user is looking at.

    The page is a pure function of this state; links carry it in the query
    string instead of keeping it in the browser between tab switches.
    """

    period: BudgetPeriod = BudgetPeriod.monthly
    search: str = ""
    tab: str = "overview"

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> "DashboardState":
        tab = (params.get("tab") or "overview").strip().lower()
        return cls(
            period=parse_period(params.get("period")),
            search=(params.get("search") or "").strip(),
            tab=tab if tab in TABS else "overview",
        )

    def to_dict(self) -> dict[str, str]:
        data = asdict(self)
        data["period"] = self.period.value
        return data

    def to_query(self, **changes) -> str:
        if "period" in changes:
            changes["period"] = parse_period(changes["period"])
        state = replace(self, **changes) if changes else self
        params = {k: v for k, v in state.to_dict().items() if v}
        return urlencode(params)
