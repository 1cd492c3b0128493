"""
activity_service.py - Category activity aggregation
Activity is summed from live transactions for a period; available is
budgeted + activity. The cached activity/available columns on
monthly_budgets are never read here.
"""

from decimal import Decimal

from money import ZERO, to_decimal, total
from record_store import RecordStore
from services.period_service import BudgetPeriod

OVERSPENT_PERCENT = Decimal("100")
AT_RISK_PERCENT = Decimal("80")


def percent_used(activity, budgeted) -> Decimal | None:
    """abs(activity) / budgeted * 100, or None when nothing is budgeted."""
    budgeted = to_decimal(budgeted)
    if budgeted <= ZERO:
        return None
    return (abs(to_decimal(activity)) / budgeted * 100).quantize(Decimal("0.01"))


def spending_signal(activity, budgeted) -> str | None:
    """'overspent' at >= 100% used, 'at_risk' in [80, 100), else None."""
    pct = percent_used(activity, budgeted)
    if pct is None:
        return None
    if pct >= OVERSPENT_PERCENT:
        return "overspent"
    if pct >= AT_RISK_PERCENT:
        return "at_risk"
    return None


def _range(period: BudgetPeriod) -> tuple[dict, dict]:
    return {"date": period.start.isoformat()}, {"date": period.end.isoformat()}


class ActivityService:
    @staticmethod
    async def activity(store: RecordStore, category_id: str, period: BudgetPeriod) -> Decimal:
        gte, lte = _range(period)
        txs = await store.select("transactions", {"category_id": category_id}, gte=gte, lte=lte)
        return total(t["amount"] for t in txs)

    @staticmethod
    async def budgeted(store: RecordStore, category_id: str, period: BudgetPeriod) -> Decimal:
        rows = await store.select("monthly_budgets", {"category_id": category_id, "month": period.month_key})
        return to_decimal(rows[0]["budgeted"]) if rows else ZERO

    @staticmethod
    async def available(store: RecordStore, category_id: str, period: BudgetPeriod) -> Decimal:
        budgeted = await ActivityService.budgeted(store, category_id, period)
        return budgeted + await ActivityService.activity(store, category_id, period)

    @staticmethod
    async def summary(store: RecordStore, category_id: str, period: BudgetPeriod) -> dict:
        budgeted = await ActivityService.budgeted(store, category_id, period)
        activity = await ActivityService.activity(store, category_id, period)
        return _summary_row(category_id, budgeted, activity)

    @staticmethod
    async def category_summaries(store: RecordStore, budget_id: str, period: BudgetPeriod) -> list[dict]:
        """Budgeted / activity / available for every category of a budget in one pass."""
        groups = await store.select("category_groups", {"budget_id": budget_id}, order_by="sort_order")
        if not groups:
            return []
        categories = await store.select("categories", in_={"category_group_id": [g["id"] for g in groups]},
                                        order_by="sort_order")
        if not categories:
            return []
        category_ids = [c["id"] for c in categories]

        accounts = await store.select("accounts", {"budget_id": budget_id})
        activity_by_category: dict[str, Decimal] = {cid: ZERO for cid in category_ids}
        if accounts:
            gte, lte = _range(period)
            txs = await store.select("transactions", in_={"account_id": [a["id"] for a in accounts]},
                                     gte=gte, lte=lte)
            for t in txs:
                if t.get("category_id") in activity_by_category:
                    activity_by_category[t["category_id"]] += to_decimal(t["amount"])

        monthly = await store.select("monthly_budgets", {"month": period.month_key},
                                     in_={"category_id": category_ids})
        budgeted_by_category = {m["category_id"]: to_decimal(m["budgeted"]) for m in monthly}

        result = []
        for c in categories:
            row = _summary_row(c["id"], budgeted_by_category.get(c["id"], ZERO), activity_by_category[c["id"]])
            row.update({"category_name": c["name"], "category_group_id": c["category_group_id"]})
            result.append(row)
        return result


def _summary_row(category_id: str, budgeted: Decimal, activity: Decimal) -> dict:
    return {
        "category_id": category_id,
        "budgeted": budgeted,
        "activity": activity,
        "available": budgeted + activity,
        "percent_used": percent_used(activity, budgeted),
        "signal": spending_signal(activity, budgeted),
    }
