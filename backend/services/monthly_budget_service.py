"""
monthly_budget_service.py - Monthly Budget Reconciler
Owns the budgeted amount per (category, month) and the "ready to assign"
figure. Ready to assign is recomputed on every read and never stored, so a
budgeted change or a balance-moving transaction is reflected immediately.
The activity/available columns on monthly_budgets are refreshed as hints;
ActivityService stays the source of truth.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal

from errors import ValidationError
from money import ZERO, to_decimal, total
from record_store import RecordStore
from services.activity_service import ActivityService
from services.period_service import BudgetPeriod

logger = logging.getLogger(__name__)


class MonthlyBudgetService:
    @staticmethod
    async def budget_id_for_category(store: RecordStore, category_id: str) -> str:
        category = await store.get("categories", category_id)
        group = await store.get("category_groups", category["category_group_id"])
        return group["budget_id"]

    @staticmethod
    async def category_ids(store: RecordStore, budget_id: str) -> list[str]:
        groups = await store.select("category_groups", {"budget_id": budget_id})
        if not groups:
            return []
        categories = await store.select("categories", in_={"category_group_id": [g["id"] for g in groups]})
        return [c["id"] for c in categories]

    @staticmethod
    async def set_budgeted(store: RecordStore, category_id: str, period: BudgetPeriod, amount) -> Decimal:
        """
        Upsert the budgeted amount for (category, period month) and return the
        recomputed ready to assign for the category's budget.
        """
        try:
            budgeted = to_decimal(amount)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        budget_id = await MonthlyBudgetService.budget_id_for_category(store, category_id)
        activity = await ActivityService.activity(store, category_id, period)
        await store.upsert("monthly_budgets", {
            "category_id": category_id,
            "month": period.month_key,
            "budgeted": budgeted,
            "activity": activity,
            "available": budgeted + activity,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }, on_conflict=("category_id", "month"))
        logger.info(f"Budgeted {budgeted} to category {category_id} for {period.month_key}")
        return await MonthlyBudgetService.ready_to_assign(store, budget_id, period)

    @staticmethod
    async def ready_to_assign(store: RecordStore, budget_id: str, period: BudgetPeriod) -> Decimal:
        """Σ balance of on-budget accounts - Σ budgeted across the budget's categories for this month."""
        accounts = await store.select("accounts", {"budget_id": budget_id, "is_on_budget": True})
        on_budget = total(a["balance"] for a in accounts)

        category_ids = await MonthlyBudgetService.category_ids(store, budget_id)
        assigned = ZERO
        if category_ids:
            rows = await store.select("monthly_budgets", {"month": period.month_key},
                                      in_={"category_id": category_ids})
            assigned = total(r["budgeted"] for r in rows)
        return on_budget - assigned

    @staticmethod
    async def refresh_category(store: RecordStore, category_id: str, period: BudgetPeriod) -> dict | None:
        """Rewrite the cached activity/available of an existing monthly row. No row, no write."""
        rows = await store.select("monthly_budgets", {"category_id": category_id, "month": period.month_key})
        if not rows:
            return None
        row = rows[0]
        activity = await ActivityService.activity(store, category_id, period)
        available = to_decimal(row["budgeted"]) + activity
        if to_decimal(row.get("activity")) == activity and to_decimal(row.get("available")) == available:
            return row
        return await store.update("monthly_budgets", row["id"], {
            "activity": activity,
            "available": available,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        })

    @staticmethod
    async def budget_month(store: RecordStore, budget_id: str, period: BudgetPeriod) -> dict:
        """Groups with their category summaries, group totals and ready to assign for one period."""
        groups = await store.select("category_groups", {"budget_id": budget_id}, order_by="sort_order")
        summaries = await ActivityService.category_summaries(store, budget_id, period)
        by_group: dict[str, list[dict]] = {}
        for row in summaries:
            by_group.setdefault(row["category_group_id"], []).append(row)

        result_groups = []
        for g in groups:
            rows = by_group.get(g["id"], [])
            result_groups.append({
                "id": g["id"],
                "name": g["name"],
                "is_hidden": bool(g.get("is_hidden")),
                "budgeted": total(r["budgeted"] for r in rows),
                "activity": total(r["activity"] for r in rows),
                "available": total(r["available"] for r in rows),
                "categories": rows,
            })

        return {
            "budget_id": budget_id,
            "period": period.to_dict(),
            "ready_to_assign": await MonthlyBudgetService.ready_to_assign(store, budget_id, period),
            "budgeted": total(r["budgeted"] for r in summaries),
            "activity": total(r["activity"] for r in summaries),
            "available": total(r["available"] for r in summaries),
            "groups": result_groups,
        }
