"""
insight_service.py - Budget insights
Read-only. Builds short warnings and tips from the live category summaries
of the current period and compares spending pace with the previous one.
"""

from dataclasses import asdict, dataclass
from decimal import Decimal

from money import ZERO
from record_store import RecordStore
from services.activity_service import ActivityService
from services.period_service import BudgetPeriod, parse_date, previous_period

MAX_INSIGHTS = 5
TREND_FACTOR = Decimal("1.3")
TREND_MIN_SPENT = Decimal("100")
TREND_MIN_INCREASE = 30

_TYPE_ORDER = {"warning": 0, "info": 1, "tip": 2}


@dataclass
class Insight:
    id: str
    type: str  # warning | info | tip
    title: str
    message: str
    category: str | None = None
    value: Decimal | int | None = None
    category_id: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def _category_insights(row: dict) -> list[Insight]:
    name = row["category_name"]
    cid = row["category_id"]
    budgeted = row["budgeted"]
    spent = abs(row["activity"])
    found = []

    if row["signal"] == "overspent":
        found.append(Insight(f"overspent-{cid}", "warning", f"Overspent: {name}",
                             f"You've exceeded your budget by {spent - budgeted}", name, spent - budgeted,
                             category_id=cid))
    elif row["signal"] == "at_risk":
        remaining = budgeted - spent
        found.append(Insight(f"atrisk-{cid}", "info", f"{name}: {round(row['percent_used'])}% used",
                             f"Only {remaining} remaining this month", name, remaining, category_id=cid))

    if row["available"] < ZERO and not any(i.id == f"overspent-{cid}" for i in found):
        found.append(Insight(f"negative-{cid}", "warning", f"{name} is overbudget",
                             f"Cover {abs(row['available'])} from another category", name, row["available"],
                             category_id=cid))
    return found


class InsightService:
    @staticmethod
    async def insights(store: RecordStore, budget_id: str, period: BudgetPeriod, today=None) -> list[dict]:
        """
        At most MAX_INSIGHTS insights for `period`, warnings first, then info, then tips.

        `today` positions the spending-pace comparison inside the period and
        defaults to the period's last day.
        """
        current = await ActivityService.category_summaries(store, budget_id, period)
        found: list[Insight] = []
        for row in current:
            found.extend(_category_insights(row))

        day = parse_date(today) if today is not None else period.end
        if period.contains(day):
            progress = Decimal((day - period.start).days + 1) / Decimal(period.days)
            last = await ActivityService.category_summaries(store, budget_id, previous_period(period))
            last_spent = {r["category_id"]: abs(r["activity"]) for r in last}
            flagged = {i.category_id for i in found}
            for row in current:
                projected = last_spent.get(row["category_id"], ZERO) * progress
                spent = abs(row["activity"])
                if projected <= ZERO or row["category_id"] in flagged:
                    continue
                if spent > projected * TREND_FACTOR and spent > TREND_MIN_SPENT:
                    increase = round((spent / projected - 1) * 100)
                    if increase > TREND_MIN_INCREASE:
                        found.append(Insight(f"trend-{row['category_id']}", "tip",
                                             f"Spending up in {row['category_name']}",
                                             f"{increase}% higher than this time last month",
                                             row["category_name"], increase, category_id=row["category_id"]))

        found.sort(key=lambda i: _TYPE_ORDER[i.type])
        return [i.to_dict() for i in found[:MAX_INSIGHTS]]
