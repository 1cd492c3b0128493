"""
report_service.py - Spending reports and net worth
Read-only. Transfer legs move money between the user's own accounts and are
left out of income, expenses and spending.
"""

from collections import OrderedDict
from decimal import Decimal

from errors import ValidationError
from money import ZERO, to_decimal, total
from record_store import RecordStore
from services.period_service import parse_date

ASSET_TYPES = ("checking", "savings", "investment", "asset", "cash")
LIABILITY_TYPES = ("credit", "credit_card", "loan", "mortgage", "line_of_credit")

UNCATEGORIZED = "Uncategorized"
OTHER_GROUP = "Other"


class ReportService:
    @staticmethod
    async def _transactions(store: RecordStore, budget_id: str, start, end) -> list[dict]:
        start_day, end_day = parse_date(start), parse_date(end)
        if start_day > end_day:
            raise ValidationError("start must not be after end")
        accounts = await store.select("accounts", {"budget_id": budget_id})
        if not accounts:
            return []
        txs = await store.select("transactions", in_={"account_id": [a["id"] for a in accounts]},
                                 gte={"date": start_day.isoformat()}, lte={"date": end_day.isoformat()},
                                 order_by="date")
        return [t for t in txs if not t.get("transfer_account_id")]

    @staticmethod
    async def spending_report(store: RecordStore, budget_id: str, start, end) -> dict:
        """Income / expense totals, spending per category (largest first) and a per-month trend."""
        txs = await ReportService._transactions(store, budget_id, start, end)

        income = total(t["amount"] for t in txs if to_decimal(t["amount"]) > ZERO)
        expenses = total(-to_decimal(t["amount"]) for t in txs if to_decimal(t["amount"]) < ZERO)

        groups = await store.select("category_groups", {"budget_id": budget_id})
        group_names = {g["id"]: g["name"] for g in groups}
        categories = {}
        if groups:
            for c in await store.select("categories", in_={"category_group_id": list(group_names)}):
                categories[c["id"]] = c

        by_category: dict[str | None, Decimal] = {}
        for t in txs:
            amount = to_decimal(t["amount"])
            if amount < ZERO:
                by_category[t.get("category_id")] = by_category.get(t.get("category_id"), ZERO) - amount

        spending = []
        for category_id, spent in by_category.items():
            category = categories.get(category_id)
            spending.append({
                "category_id": category_id,
                "category": category["name"] if category else UNCATEGORIZED,
                "category_group": group_names.get(category["category_group_id"], OTHER_GROUP) if category else OTHER_GROUP,
                "total": spent,
                "percent": (spent / expenses * 100).quantize(Decimal("0.1")) if expenses else ZERO,
            })
        spending.sort(key=lambda r: r["total"], reverse=True)

        by_group: dict[str, Decimal] = {}
        for row in spending:
            by_group[row["category_group"]] = by_group.get(row["category_group"], ZERO) + row["total"]

        trend: OrderedDict[str, dict] = OrderedDict()
        for t in txs:
            key = str(t["date"])[:7]
            month = trend.setdefault(key, {"month": key, "income": ZERO, "expenses": ZERO})
            amount = to_decimal(t["amount"])
            if amount > ZERO:
                month["income"] += amount
            else:
                month["expenses"] -= amount

        return {
            "start": parse_date(start).isoformat(),
            "end": parse_date(end).isoformat(),
            "income": income,
            "expenses": expenses,
            "net": income - expenses,
            "spending_by_category": spending,
            "spending_by_group": [{"category_group": k, "total": v}
                                  for k, v in sorted(by_group.items(), key=lambda kv: kv[1], reverse=True)],
            "monthly_trend": list(trend.values()),
        }

    @staticmethod
    async def net_worth(store: RecordStore, budget_id: str) -> dict:
        """Assets minus liabilities over open accounts. Liabilities count by magnitude."""
        accounts = [a for a in await store.select("accounts", {"budget_id": budget_id}, order_by="sort_order")
                    if not a.get("closed")]
        assets = [a for a in accounts if a["account_type"] in ASSET_TYPES]
        liabilities = [a for a in accounts if a["account_type"] in LIABILITY_TYPES]
        total_assets = total(a["balance"] for a in assets)
        total_liabilities = total(abs(to_decimal(a["balance"])) for a in liabilities)
        return {
            "assets": total_assets,
            "liabilities": total_liabilities,
            "net_worth": total_assets - total_liabilities,
            "asset_accounts": assets,
            "liability_accounts": liabilities,
        }
